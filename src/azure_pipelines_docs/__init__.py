"""Azure Pipelines task reference resolver.

Resolves `TaskName@Version` lookups and free-text task searches against:
- the task inventory of an Azure DevOps organization (when configured)
- the public task reference markdown published by MicrosoftDocs
"""

__version__ = "0.1.0"

from azure_pipelines_docs.resolver.config import ResolverSettings

__all__ = ["__version__", "ResolverSettings"]
