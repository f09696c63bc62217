"""Cached, retrying document fetch layer."""

from azure_pipelines_docs.resolver.http.cache import TTLCache
from azure_pipelines_docs.resolver.http.fetcher import DocumentFetcher

__all__ = ["DocumentFetcher", "TTLCache"]
