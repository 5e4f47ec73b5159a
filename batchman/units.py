"""
Unit conversion — isolated, testable, reusable.

Every product has a main unit and a conversion factor per tracked unit,
relative to the main unit. A quantity in unit ``u`` is worth
``quantity * f(main) / f(u)`` main units.

Examples (main unit "case", factor 1):
    - piece, factor 12: 1 case = 12 pieces
    - pallet, factor 0.025: 1 case = 0.025 pallets (40 cases per pallet)

Quantities are held to 3 decimal places, prices to 2 and factors to 6.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal

from batchman.exceptions import (
    LedgerError,
    MissingConversionError,
    NoMainUnitError,
    UnknownProductError,
    UnknownUnitError,
)

QUANTITY_PLACES = Decimal('0.001')
PRICE_PLACES = Decimal('0.01')
FACTOR_PLACES = Decimal('0.000001')

# Tolerance for cross-unit consistency checks
TOLERANCE = QUANTITY_PLACES


def to_decimal(value) -> Decimal:
    """Coerce int/str/float/Decimal into Decimal without float artifacts."""
    if isinstance(value, Decimal):
        return value
    if value is None or isinstance(value, bool):
        raise LedgerError('INVALID_QUANTITY', value=value)
    try:
        return Decimal(str(value))
    except ArithmeticError as exc:
        raise LedgerError('INVALID_QUANTITY', value=value) from exc


def quantize_quantity(value) -> Decimal:
    return to_decimal(value).quantize(QUANTITY_PLACES, rounding=ROUND_HALF_UP)


def quantize_price(value) -> Decimal:
    return to_decimal(value).quantize(PRICE_PLACES, rounding=ROUND_HALF_UP)


def quantize_factor(value) -> Decimal:
    return to_decimal(value).quantize(FACTOR_PLACES, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class UnitTable:
    """
    Conversion factors of one product.

    Built once per operation, inside the operation's transaction,
    from the catalog backend (see ``load_unit_table``).
    """

    main_unit: str
    factors: Mapping[str, Decimal] = field(default_factory=dict)
    product_name: str = ''

    def __post_init__(self):
        if not self.main_unit:
            raise NoMainUnitError(product=self.product_name)
        if self.main_unit not in self.factors:
            raise MissingConversionError(
                product=self.product_name, unit=self.main_unit,
            )

    def __contains__(self, unit) -> bool:
        return unit in self.factors

    def __iter__(self):
        # Main unit first, then the rest in a stable order
        yield self.main_unit
        yield from sorted(u for u in self.factors if u != self.main_unit)

    @property
    def units(self) -> list[str]:
        return list(self)

    def factor(self, unit: str) -> Decimal:
        if not unit:
            raise UnknownUnitError(product=self.product_name, unit=unit)
        try:
            return self.factors[unit]
        except KeyError:
            raise MissingConversionError(product=self.product_name, unit=unit) from None

    def to_main(self, quantity, unit: str) -> Decimal:
        """Quantity in ``unit`` → main units, rounded to 3 places."""
        return self.convert(quantity, unit, self.main_unit)

    def from_main(self, quantity, unit: str) -> Decimal:
        """Main-unit quantity → ``unit``, rounded to 3 places."""
        return self.convert(quantity, self.main_unit, unit)

    def convert(self, quantity, from_unit: str, to_unit: str) -> Decimal:
        quantity = to_decimal(quantity)
        if from_unit == to_unit:
            self.factor(from_unit)
            return quantize_quantity(quantity)
        return quantize_quantity(
            quantity * self.factor(to_unit) / self.factor(from_unit)
        )

    def convert_price(self, price, from_unit: str, to_unit: str) -> Decimal:
        """
        Price per ``from_unit`` → price per ``to_unit``.

        A case holding 12 pieces costs 12 times a piece.
        """
        return quantize_price(
            to_decimal(price) * self.factor(from_unit) / self.factor(to_unit)
        )

    def is_consistent(self, quantities: Mapping[str, Decimal]) -> bool:
        """Do all given unit quantities describe the same main-unit amount?"""
        return not self.inconsistencies(quantities)

    def inconsistencies(self, quantities: Mapping[str, Decimal]) -> dict[str, Decimal]:
        """
        Units whose quantity deviates from the main unit's.

        Returns:
            Dict[unit, expected quantity] for each deviating unit.
        """
        if self.main_unit not in quantities:
            return {}
        main_quantity = quantities[self.main_unit]
        off = {}
        for unit, quantity in quantities.items():
            if unit == self.main_unit or unit not in self.factors:
                continue
            expected = self.from_main(main_quantity, unit)
            if abs(quantity - expected) > self.slack(unit):
                off[unit] = expected
        return off

    def slack(self, unit: str) -> Decimal:
        """Rounding tolerance for ``unit``; main-unit rounding is amplified by the factor ratio."""
        return TOLERANCE * max(Decimal('1'), self.factor(unit) / self.factor(self.main_unit))


def build_unit_table(main_unit: str, conversions: Iterable, product_name: str = '') -> UnitTable:
    """
    Build a UnitTable from ``(unit, factor)`` pairs or objects with
    ``unit``/``factor`` attributes.
    """
    factors = {}
    for conversion in conversions:
        if isinstance(conversion, tuple):
            unit, factor = conversion
        else:
            unit, factor = conversion.unit, conversion.factor
        factor = quantize_factor(factor)
        if factor <= 0:
            raise MissingConversionError(
                'MISSING_CONVERSION',
                'Fator de conversão deve ser positivo',
                product=product_name, unit=unit, factor=factor,
            )
        factors[str(unit)] = factor
    return UnitTable(main_unit=main_unit, factors=factors, product_name=product_name)


def load_unit_table(product) -> UnitTable:
    """
    Resolve a product's unit table through the configured catalog backend.

    Raises:
        UnknownProductError: product cannot be resolved
        NoMainUnitError: product has no main unit
        MissingConversionError: main unit has no conversion entry
    """
    from batchman.adapters.catalog import get_catalog_backend

    backend = get_catalog_backend()
    info = backend.resolve_product(product)
    if info is None:
        raise UnknownProductError(product=str(product) if product is not None else None)

    return build_unit_table(
        info.main_unit,
        backend.list_unit_conversions(product),
        product_name=info.name,
    )
