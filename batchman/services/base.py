"""
Ledger base — database binding shared by every service mixin.
"""

from django.contrib.contenttypes.models import ContentType
from django.db import DEFAULT_DB_ALIAS, transaction

from batchman.exceptions import LedgerError, UnknownProductError
from batchman.models.batch import StockBatch
from batchman.models.entry import StockEntry
from batchman.models.move import StockMove
from batchman.units import load_unit_table, quantize_quantity


class LedgerBase:
    """
    A ledger bound to one database alias.

    Every public operation runs inside ``self.atomic()``. When the caller
    is already inside ``transaction.atomic(using=...)`` for the same alias,
    the operation joins that transaction (as a savepoint), so the caller's
    commit/rollback decides the outcome of everything done here.
    """

    def __init__(self, using: str = DEFAULT_DB_ALIAS):
        self.using = using

    def __repr__(self) -> str:
        return f"{type(self).__name__}(using={self.using!r})"

    def atomic(self):
        return transaction.atomic(using=self.using)

    # ══════════════════════════════════════════════════════════════
    # QUERYSETS
    # ══════════════════════════════════════════════════════════════

    def _batches(self):
        return StockBatch.objects.using(self.using)

    def _entries(self):
        return StockEntry.objects.using(self.using)

    def _moves(self):
        return StockMove.objects.using(self.using)

    def _content_type(self, product) -> ContentType:
        return ContentType.objects.db_manager(self.using).get_for_model(product)

    # ══════════════════════════════════════════════════════════════
    # RESOLUTION
    # ══════════════════════════════════════════════════════════════

    def _unit_table(self, product):
        return load_unit_table(product)

    def _product_of(self, batch: StockBatch):
        """The batch's product, re-resolved (raises if it no longer exists)."""
        product = batch.product
        if product is None:
            raise UnknownProductError(batch=batch.pk, product_id=batch.object_id)
        return product

    def _get_batch(self, batch, lock: bool = False) -> StockBatch:
        """Accept a StockBatch or its pk; optionally lock the row."""
        pk = getattr(batch, 'pk', batch)
        qs = self._batches()
        if lock:
            qs = qs.select_for_update()
        try:
            return qs.get(pk=pk)
        except StockBatch.DoesNotExist:
            raise LedgerError('BATCH_NOT_FOUND', batch=pk) from None

    def _get_entry(self, entry, lock: bool = False) -> StockEntry:
        """Accept a StockEntry or its pk; optionally lock the row."""
        pk = getattr(entry, 'pk', entry)
        if lock:
            qs = self._entries().select_for_update()
        else:
            qs = self._entries().select_related('batch')
        try:
            return qs.get(pk=pk)
        except StockEntry.DoesNotExist:
            raise LedgerError('ENTRY_NOT_FOUND', entry=pk) from None

    def _lock_batches(self, batches) -> list[StockBatch]:
        """
        Lock batch rows in primary-key order.

        Every operation locks batch rows before their entries, always in
        this order, so two operations on the same lots cannot deadlock.
        """
        return list(batches.select_for_update().order_by('pk'))

    def _lock_stock(self, product, location) -> list[StockEntry]:
        """
        Lock the active batches of (product, location), then their entries.

        Must run before reading quantities for a sufficiency check, so two
        concurrent reductions cannot both see the same stock.
        """
        self._lock_batches(
            self._batches().active().for_product(product).at_location(location)
        )
        return list(
            self._entries()
            .select_for_update()
            .for_product(product)
            .at_location(location)
            .in_active_batches()
            .order_by('pk')
        )

    def _to_main(self, table, quantity, unit: str):
        """Caller quantity in main units; an amount that rounds to nothing is rejected."""
        main_quantity = table.to_main(quantity, unit)
        if main_quantity <= 0:
            raise LedgerError('INVALID_QUANTITY', requested=quantity, unit=unit)
        return main_quantity

    @staticmethod
    def _positive(quantity):
        quantity = quantize_quantity(quantity)
        if quantity <= 0:
            raise LedgerError('INVALID_QUANTITY', requested=quantity)
        return quantity
