"""Task documentation resolution and extraction."""

from azure_pipelines_docs.resolver.models import TaskCategory, TaskInput, TaskRecord, TaskSource
from azure_pipelines_docs.resolver.service import TaskResolver

__all__ = ["TaskCategory", "TaskInput", "TaskRecord", "TaskResolver", "TaskSource"]
