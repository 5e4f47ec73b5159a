"""
Batchman Protocols.

Defines interfaces for external system integration.
"""

from batchman.protocols.catalog import (
    CatalogBackend,
    ConvertibleProduct,
    ProductInfo,
    UnitConversion,
)

__all__ = [
    "CatalogBackend",
    "ConvertibleProduct",
    "ProductInfo",
    "UnitConversion",
]
