"""
Batchman Catalog Adapter — product master data lookups.

This adapter loads the configured CatalogBackend from settings.

Usage:
    from batchman.adapters import get_catalog_backend

    backend = get_catalog_backend()
    info = backend.resolve_product(product)

Settings:
    BATCHMAN = {
        "CATALOG_BACKEND": "batchman.adapters.catalog.ProductAttributeCatalog",
    }
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping

from django.core.exceptions import ImproperlyConfigured
from django.utils.module_loading import import_string

from batchman.conf import batchman_settings
from batchman.protocols.catalog import CatalogBackend, ProductInfo, UnitConversion

logger = logging.getLogger(__name__)


class ProductAttributeCatalog:
    """
    Default backend: reads unit data straight from the product object.

    The product must implement ``ConvertibleProduct``:
    a ``main_unit`` attribute and a ``get_unit_conversions()`` method.
    The product row is re-read on every lookup, so a product deleted since
    it was loaded is reported as unknown and its factors are never stale.
    """

    def resolve_product(self, product) -> ProductInfo | None:
        fresh = _fetch(product)
        if fresh is None:
            return None

        return ProductInfo(
            main_unit=_unit_code(getattr(fresh, 'main_unit', None)),
            name=str(fresh),
        )

    def list_unit_conversions(self, product) -> list[UnitConversion]:
        fresh = _fetch(product)
        if fresh is None:
            return []

        getter = getattr(fresh, 'get_unit_conversions', None)
        if getter is None:
            raise ImproperlyConfigured(
                f"{type(product).__name__} must implement get_unit_conversions() "
                "to be used with ProductAttributeCatalog."
            )

        raw = getter()
        pairs = raw.items() if isinstance(raw, Mapping) else raw
        return [
            UnitConversion(unit=_unit_code(unit), factor=factor)
            for unit, factor in pairs
        ]


def _fetch(product):
    """The product row as stored now, or None if it no longer exists."""
    if product is None or getattr(product, 'pk', None) is None:
        return None
    return type(product)._default_manager.filter(pk=product.pk).first()


def _unit_code(unit) -> str | None:
    if unit is None or unit == '':
        return None
    return str(getattr(unit, 'code', unit))


# Cached backend instance
_lock = threading.Lock()
_catalog_backend: CatalogBackend | None = None


def get_catalog_backend() -> CatalogBackend:
    """
    Return the configured catalog backend.

    Returns:
        CatalogBackend instance

    Raises:
        ImproperlyConfigured: If CATALOG_BACKEND is empty or import fails
    """
    global _catalog_backend

    if _catalog_backend is None:
        with _lock:
            if _catalog_backend is None:  # double-checked
                backend_path = batchman_settings.CATALOG_BACKEND

                if not backend_path:
                    raise ImproperlyConfigured(
                        "BATCHMAN['CATALOG_BACKEND'] must be configured. "
                        "Example: 'batchman.adapters.catalog.ProductAttributeCatalog'"
                    )

                try:
                    backend_class = import_string(backend_path)
                except ImportError as e:
                    raise ImproperlyConfigured(
                        f"Failed to import catalog backend '{backend_path}': {e}"
                    ) from e

                _catalog_backend = backend_class()
                logger.debug("Loaded catalog backend: %s", backend_path)

    return _catalog_backend


def reset_catalog_backend() -> None:
    """Reset the cached backend. Useful for testing."""
    global _catalog_backend
    _catalog_backend = None
