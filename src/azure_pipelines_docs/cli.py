"""Console script target.

The CLI itself is implemented in `azure_pipelines_docs.resolver.main`.
"""

from __future__ import annotations

from azure_pipelines_docs.resolver.main import main

__all__ = ["main"]


if __name__ == "__main__":
    raise SystemExit(main())
