"""
Entry updates — the two primitives every ledger operation is built on:

1. Proportional cross-unit update: a change expressed in main units is
   applied to the main entry, and every other entry is moved to the new
   main quantity converted to its unit, so all entries keep describing
   the same physical amount.
2. Retirement: a batch emptied by a reduction is soft-deleted while a
   sibling batch still holds stock.

Callers must already be inside ``self.atomic()``.
"""

import logging
from decimal import Decimal

from django.utils import timezone

from batchman.exceptions import InsufficientStockError, LedgerError
from batchman.results import EntryUpdate
from batchman.services.base import LedgerBase

logger = logging.getLogger('batchman')


class EntryUpdates(LedgerBase):
    """Internal primitives shared by batch and reduction operations."""

    def _apply_main_delta(self, batch, table, main_delta: Decimal, *, kind: str,
                          reason: str, allow_negative: bool = False,
                          reference=None, user=None, metadata=None) -> list[EntryUpdate]:
        """
        Apply a main-unit change to every unit of ``batch``.

        Args:
            batch: StockBatch to update (its row already locked by the caller)
            table: UnitTable of the batch's product
            main_delta: Positive = remove stock, Negative = add stock
            allow_negative: Let quantities drop below zero (forced reductions)

        The main entry moves by ``main_delta``; every other unit moves to
        ``round3(new_main * f(u) / f(main))``. That is the same as moving
        by ``round3(main_delta * f(u) / f(main))`` up to rounding, but the
        rounding never accumulates: each entry stays anchored to the main one.

        Raises:
            InsufficientStockError: A unit would go negative without allowance
            LedgerError('ENTRY_NOT_FOUND'): Batch has no main-unit entry

        Concurrency:
            - Locks the batch's entries with select_for_update()
            - Validates every unit before writing any move
        """
        entries = list(
            self._entries().select_for_update().filter(batch=batch).order_by('pk')
        )
        main_entry = next((e for e in entries if e.unit == table.main_unit), None)
        if main_entry is None:
            raise LedgerError('ENTRY_NOT_FOUND', batch=batch.pk, unit=table.main_unit)

        new_main = main_entry.quantity - main_delta

        planned = []
        for entry in entries:
            if entry.unit not in table:
                logger.warning(
                    "ledger.unit_without_conversion",
                    extra={"batch_id": batch.pk, "unit": entry.unit},
                )
                continue

            new_quantity = table.from_main(new_main, entry.unit)
            if new_quantity < 0 and not allow_negative:
                raise InsufficientStockError(
                    product=table.product_name,
                    location=str(batch.location_id),
                    batch=batch.pk,
                    unit=entry.unit,
                    available=entry.quantity,
                    required=entry.quantity - new_quantity,
                )
            planned.append((entry, new_quantity))

        updates = []
        for entry, new_quantity in planned:
            previous = entry.quantity
            delta = new_quantity - previous
            if delta:
                self._moves().create(
                    entry=entry,
                    delta=delta,
                    kind=kind,
                    reason=reason,
                    reference=reference,
                    user=user,
                    metadata=metadata or {},
                )
            entry.quantity = new_quantity
            updates.append(EntryUpdate(
                entry=entry,
                unit=entry.unit,
                previous_quantity=previous,
                delta=delta,
                new_quantity=new_quantity,
            ))

        return updates

    def _retire_if_depleted(self, batch, table) -> bool:
        """
        Soft-delete ``batch`` if its main quantity is exactly zero and a
        sibling batch still holds stock.

        The last batch of a (product, location) is never retired, so there
        is always a batch to add stock back into.

        Returns:
            True if the batch was retired
        """
        if batch.deleted:
            return False

        main_quantity = (
            self._entries()
            .filter(batch=batch, unit=table.main_unit)
            .values_list('quantity', flat=True)
            .first()
        )
        if main_quantity is None or main_quantity != 0:
            return False

        if not batch.siblings().holding(table.main_unit).exists():
            return False

        self._batches().filter(pk=batch.pk).update(deleted=True, updated_at=timezone.now())
        batch.deleted = True
        logger.info(
            "ledger.retire_batch",
            extra={"batch_id": batch.pk, "batch_number": batch.batch_number},
        )
        return True
