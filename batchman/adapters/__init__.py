"""
Batchman Adapters.

Implementations of protocols for external systems.
"""

from batchman.adapters.catalog import (
    ProductAttributeCatalog,
    get_catalog_backend,
    reset_catalog_backend,
)

__all__ = [
    "ProductAttributeCatalog",
    "get_catalog_backend",
    "reset_catalog_backend",
]
