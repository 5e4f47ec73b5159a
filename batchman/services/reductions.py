"""
Stock reductions — FIFO-by-recency across batches, or targeted at one
batch/entry when the caller already knows which lot to debit.

All methods use self.atomic() and lock batch rows, then their entries,
before checking stock.
"""

import logging
from decimal import Decimal

from batchman.exceptions import InsufficientStockError, LedgerError, NoActiveBatchError
from batchman.models.enums import MoveKind
from batchman.results import BatchReduction, FifoReduction, TargetedReduction
from batchman.services.batches import LedgerBatches
from batchman.units import quantize_price

logger = logging.getLogger('batchman')


class LedgerReductions(LedgerBatches):
    """Stock-removing methods. Forced reductions may open a batch."""

    def reduce_fifo(self, product, location, quantity, unit: str, force: bool = False,
                    fallback_price=None, reference=None, user=None,
                    reason: str = 'Saída') -> FifoReduction:
        """
        Remove stock from (product, location), newest batch first.

        Args:
            product: Product object
            location: Location
            quantity: Amount to remove, in ``unit``
            unit: Any unit the product is tracked in
            force: Allow the oldest batch to go negative when stock runs out
            fallback_price: Price per ``unit`` for the batch created when
                forcing a reduction with no batches at all

        Raises:
            NoActiveBatchError: No batches and force is not set
            InsufficientStockError: Not enough stock and force is not set
                (available/required in ``unit``)

        Concurrency:
            - Runs under self.atomic()
            - Locks the active batches of (product, location), then their
              entries, with select_for_update()
            - Checks sufficiency after the lock
        """
        quantity = self._positive(quantity)

        with self.atomic():
            table = self._unit_table(product)
            required_main = self._to_main(table, quantity, unit)

            self._lock_stock(product, location)
            batches = list(
                self._batches()
                .active()
                .for_product(product)
                .at_location(location)
                .consumption_order()
            )

            if not batches:
                if not force:
                    raise NoActiveBatchError(
                        product=table.product_name,
                        location=str(location),
                        unit=unit,
                        required=quantity,
                    )
                batches = [self._open_forced_batch(product, location, table, unit, fallback_price, user)]

            main_by_batch = dict(
                self._entries()
                .filter(batch__in=batches, unit=table.main_unit)
                .values_list('batch_id', 'quantity')
            )
            total_main = sum(main_by_batch.values(), Decimal('0'))

            if total_main < required_main and not force:
                raise InsufficientStockError(
                    product=table.product_name,
                    location=str(location),
                    unit=unit,
                    available=table.from_main(total_main, unit),
                    required=quantity,
                )

            remaining = required_main
            affected = []
            forced = False
            last = len(batches) - 1

            for index, batch in enumerate(batches):
                if remaining <= 0:
                    break

                held = main_by_batch.get(batch.pk)
                if held is None:
                    logger.warning(
                        "ledger.batch_without_main_entry",
                        extra={"batch_id": batch.pk, "unit": table.main_unit},
                    )
                    continue

                take = min(held, remaining)
                overdraw = force and index == last and remaining > take
                if overdraw:
                    take = remaining
                    forced = True
                    logger.warning(
                        "ledger.force_negative",
                        extra={
                            "batch_id": batch.pk,
                            "held": str(held),
                            "taken": str(take),
                        },
                    )

                if take <= 0:
                    continue

                updates = self._apply_main_delta(
                    batch, table, take,
                    kind=MoveKind.REDUCTION,
                    reason=reason,
                    allow_negative=overdraw,
                    reference=reference,
                    user=user,
                )
                retired = self._retire_if_depleted(batch, table)
                affected.append(BatchReduction(
                    batch=batch, main_reduced=take, updates=updates, retired=retired,
                ))
                remaining -= take

            if remaining > 0:
                raise InsufficientStockError(
                    product=table.product_name,
                    location=str(location),
                    unit=unit,
                    available=table.from_main(required_main - remaining, unit),
                    required=quantity,
                )

        logger.info(
            "ledger.reduce_fifo",
            extra={
                "product": str(product),
                "location": str(location),
                "unit": unit,
                "qty": str(quantity),
                "batches": [b.batch.pk for b in affected],
                "forced": forced,
            },
        )
        return FifoReduction(
            product=product,
            location=location,
            unit=unit,
            total_reduced=quantity,
            main_reduced=required_main,
            batches_affected=affected,
            forced=forced,
        )

    def reduce_entry(self, entry, quantity, unit: str | None = None,
                     reference=None, user=None, reason: str = 'Saída') -> TargetedReduction:
        """
        Remove stock from the batch of a specific entry.

        Args:
            entry: StockEntry (or pk) that must be debited
            quantity: Amount to remove, in ``unit``
            unit: Unit of ``quantity`` (defaults to the entry's unit)

        Raises:
            LedgerError('ENTRY_NOT_FOUND'): Entry does not exist
            LedgerError('BATCH_NOT_AVAILABLE'): Entry's batch is retired
            InsufficientStockError: The entry alone does not hold enough
        """
        with self.atomic():
            # Batch row first, then the entry: the order every operation locks in
            batch_id = self._get_entry(entry).batch_id
            batch = self._get_batch(batch_id, lock=True)
            entry = self._get_entry(entry, lock=True)
            return self._reduce_targeted(batch, entry, quantity, unit or entry.unit,
                                         reference=reference, user=user, reason=reason)

    def reduce_batch(self, batch, unit: str, quantity, quantity_unit: str | None = None,
                     reference=None, user=None, reason: str = 'Saída') -> TargetedReduction:
        """
        Remove stock from a specific batch, checked against its ``unit`` entry.

        Args:
            batch: StockBatch (or pk)
            unit: Which entry of the batch must hold the stock
            quantity: Amount to remove, in ``quantity_unit``
            quantity_unit: Unit of ``quantity`` (defaults to ``unit``)
        """
        with self.atomic():
            batch = self._get_batch(batch, lock=True)
            entry = self._entries().select_for_update().filter(batch=batch, unit=unit).first()
            if entry is None:
                raise LedgerError('ENTRY_NOT_FOUND', batch=batch.pk, unit=unit)
            return self._reduce_targeted(batch, entry, quantity, quantity_unit or unit,
                                         reference=reference, user=user, reason=reason)

    def reduce_batches(self, items, reference=None, user=None,
                       reason: str = 'Saída') -> list[TargetedReduction]:
        """
        Reduce several ``(batch, unit, quantity)`` items atomically.

        Any failure rolls back every item.
        """
        with self.atomic():
            pks = [getattr(batch, 'pk', batch) for batch, _, _ in items]
            self._lock_batches(self._batches().filter(pk__in=pks))
            return [
                self.reduce_batch(batch, unit, quantity,
                                  reference=reference, user=user, reason=reason)
                for batch, unit, quantity in items
            ]

    # ══════════════════════════════════════════════════════════════
    # INTERNALS
    # ══════════════════════════════════════════════════════════════

    def _reduce_targeted(self, batch, entry, quantity, unit: str, reference=None,
                         user=None, reason: str = 'Saída') -> TargetedReduction:
        """``batch`` and ``entry`` must already be locked, batch first."""
        quantity = self._positive(quantity)

        if batch.deleted:
            raise LedgerError('BATCH_NOT_AVAILABLE', batch=batch.pk)

        table = self._unit_table(self._product_of(batch))
        main_quantity = self._to_main(table, quantity, unit)

        # The addressed entry alone must cover the request, in its own unit
        required_own = table.convert(quantity, unit, entry.unit)
        if entry.quantity < required_own:
            raise InsufficientStockError(
                product=table.product_name,
                location=str(batch.location_id),
                batch=batch.pk,
                unit=unit,
                available=table.convert(entry.quantity, entry.unit, unit),
                required=quantity,
            )

        updates = self._apply_main_delta(
            batch, table, main_quantity,
            kind=MoveKind.REDUCTION,
            reason=reason,
            reference=reference,
            user=user,
        )
        retired = self._retire_if_depleted(batch, table)

        logger.info(
            "ledger.reduce_targeted",
            extra={
                "batch_id": batch.pk,
                "entry_id": entry.pk,
                "unit": unit,
                "qty": str(quantity),
                "retired": retired,
            },
        )
        return TargetedReduction(
            batch=batch,
            unit=unit,
            quantity=quantity,
            main_reduced=main_quantity,
            updates=updates,
            retired=retired,
        )

    def _open_forced_batch(self, product, location, table, unit: str, fallback_price, user):
        """Zero-quantity batch for a forced reduction with nothing to draw from."""
        price = quantize_price(fallback_price or 0)
        prices = {u: table.convert_price(price, unit, u) for u in table}
        logger.warning(
            "ledger.force_open_batch",
            extra={"product": str(product), "location": str(location), "price": str(price)},
        )
        return self._create_batch(
            product, location, table, Decimal('0'), prices,
            user=user, reason='Lote aberto por saída forçada',
        ).batch
