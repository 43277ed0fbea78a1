"""Adapters — bindings for the package catalog command-line tools.

Public re-exports for convenient access.
"""

from pkgbridge.adapters.base import Adapter, ExecutionContext
from pkgbridge.adapters.mock import MockCatalogAdapter
from pkgbridge.adapters.registry import AdapterRegistry
from pkgbridge.adapters.shell.command import CatalogSearchAdapter

__all__ = [
    "Adapter",
    "AdapterRegistry",
    "CatalogSearchAdapter",
    "ExecutionContext",
    "MockCatalogAdapter",
]
