"""
Catalog Protocol — Interface for product master data.

Batchman defines this protocol, the catalog app (or any product system)
implements it. The ledger only needs two things from a product: its main
unit and the conversion factor of every unit it is tracked in.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class ProductInfo:
    """Basic product information needed by the ledger."""

    main_unit: str | None
    name: str = ''


@dataclass(frozen=True)
class UnitConversion:
    """Conversion factor of one unit relative to the product's main unit."""

    unit: str
    factor: Decimal


@runtime_checkable
class CatalogBackend(Protocol):
    """
    Protocol for product master data lookups.

    Implementations must read from the same database connection the
    ledger writes to, so lookups happen inside the ledger's transaction.
    """

    def resolve_product(self, product) -> ProductInfo | None:
        """
        Resolve a product reference.

        Args:
            product: Product object

        Returns:
            ProductInfo or None if the product does not exist
        """
        ...

    def list_unit_conversions(self, product) -> list[UnitConversion]:
        """
        List the units the product is tracked in.

        Args:
            product: Product object

        Returns:
            List of UnitConversion, main unit included
        """
        ...


@runtime_checkable
class ConvertibleProduct(Protocol):
    """
    What the default catalog backend expects from a product model.

    ``main_unit`` may be a plain code or an object exposing ``code``.
    """

    pk: object
    main_unit: object

    def get_unit_conversions(self) -> Mapping[str, Decimal] | Iterable[tuple[str, Decimal]]:
        ...
