"""
Stock queries — read-only operations.

No locking: callers that read-then-write must use the state-changing
methods, which lock before reading.
"""

from decimal import Decimal

from django.db.models import Prefetch, Sum
from django.db.models.functions import Coalesce

from batchman.exceptions import LedgerError
from batchman.models.batch import StockBatch
from batchman.models.entry import StockEntry
from batchman.results import AvailableBatch
from batchman.services.base import LedgerBase


class LedgerQueries(LedgerBase):
    """Read-only ledger query methods."""

    def available(self, product, location, unit: str | None = None) -> Decimal:
        """
        Total stock of (product, location) across active batches.

        Summed in main units and converted to ``unit`` (default: main unit).
        May be negative after forced reductions.
        """
        table = self._unit_table(product)
        total_main = (
            self._entries()
            .for_product(product)
            .at_location(location)
            .in_active_batches()
            .in_unit(table.main_unit)
            .aggregate(t=Coalesce(Sum('quantity'), Decimal('0')))['t']
        )
        return table.from_main(total_main, unit or table.main_unit)

    def list_available(self, product, location, unit: str | None = None) -> list[AvailableBatch]:
        """
        Active batches with stock, in consumption order (newest first).

        Args:
            unit: Only include entries of this unit

        Returns:
            List of AvailableBatch(batch, entries) — only entries with
            positive quantity; batches without any are left out.
        """
        entries = self._entries().filter(quantity__gt=0).order_by('pk')
        if unit:
            entries = entries.filter(unit=unit)

        batches = (
            self._batches()
            .active()
            .for_product(product)
            .at_location(location)
            .filter(pk__in=entries.values('batch_id'))
            .consumption_order()
            .prefetch_related(Prefetch('entries', queryset=entries, to_attr='available_entries'))
        )
        return [
            AvailableBatch(batch=batch, entries=list(batch.available_entries))
            for batch in batches
        ]

    def list_batches(self, product=None, location=None, include_retired: bool = False):
        """List batches with filters, newest first."""
        qs = self._batches().all()

        if product is not None:
            qs = qs.for_product(product)

        if location is not None:
            qs = qs.at_location(location)

        if not include_retired:
            qs = qs.active()

        return qs.consumption_order()

    def get_batch(self, batch_id, include_retired: bool = False) -> StockBatch:
        """
        Raises:
            LedgerError('BATCH_NOT_FOUND'): Missing, or retired and not requested
        """
        batch = self._get_batch(batch_id)
        if batch.deleted and not include_retired:
            raise LedgerError('BATCH_NOT_FOUND', batch=batch.pk)
        return batch

    def get_entry(self, entry_id) -> StockEntry:
        """Entry with its batch (retired batches included, for audit)."""
        return self._get_entry(entry_id)

    def batch_entries(self, batch) -> list[StockEntry]:
        """All entries of a batch, in creation order."""
        pk = getattr(batch, 'pk', batch)
        return list(self._entries().filter(batch_id=pk).order_by('pk'))

    def batch_with_entries(self, batch_id) -> AvailableBatch:
        """Active batch and all of its entries."""
        batch = self.get_batch(batch_id)
        return AvailableBatch(batch=batch, entries=self.batch_entries(batch))

    def check_consistency(self, batch) -> dict[str, Decimal]:
        """
        Units of a batch that drifted from the main unit.

        Returns:
            Dict[unit, expected quantity] — empty when consistent
        """
        batch = self._get_batch(batch)
        table = self._unit_table(self._product_of(batch))
        quantities = dict(
            self._entries().filter(batch=batch).values_list('unit', 'quantity')
        )
        return table.inconsistencies(quantities)

    def list_empty_batches(self, product, location):
        """Active batches of (product, location) whose main quantity is exactly zero."""
        table = self._unit_table(product)
        return (
            self._batches()
            .active()
            .for_product(product)
            .at_location(location)
            .holding(table.main_unit, positive=False)
            .consumption_order()
        )
