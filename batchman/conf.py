"""
Batchman configuration.

Usage in settings.py:
    BATCHMAN = {
        "CATALOG_BACKEND": "batchman.adapters.catalog.ProductAttributeCatalog",
        "RETIRE_EMPTY_ON_CREATE": True,
        "BATCH_NUMBER_PREFIX": "LOT-",
    }
"""

from dataclasses import dataclass
from typing import Any

from django.conf import settings


@dataclass
class BatchmanSettings:
    """Batchman configuration settings."""

    # Catalog backend providing main unit + conversion factors (dotted path)
    CATALOG_BACKEND: str = "batchman.adapters.catalog.ProductAttributeCatalog"

    # Soft-delete empty batches of the same product/location before creating a new one
    RETIRE_EMPTY_ON_CREATE: bool = True

    # Prefix for generated batch numbers
    BATCH_NUMBER_PREFIX: str = "LOT-"


def get_batchman_settings() -> BatchmanSettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "BATCHMAN", {})
    return BatchmanSettings(**{
        k: v for k, v in user_settings.items()
        if k in BatchmanSettings.__dataclass_fields__
    })


class _LazySettings:
    """Lazy proxy that re-reads settings on every attribute access."""

    def __getattr__(self, name):
        return getattr(get_batchman_settings(), name)


batchman_settings = _LazySettings()
