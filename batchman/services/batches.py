"""
Batch operations — creating lots, replenishing the latest lot, restoring
reduced stock and housekeeping.

All methods use self.atomic() with appropriate locking.
"""

import logging
import uuid
from collections.abc import Mapping
from decimal import Decimal

from django.db import DatabaseError
from django.utils import timezone

from batchman.conf import batchman_settings
from batchman.exceptions import LedgerError, MissingPriceError, UnknownUnitError
from batchman.models.enums import MoveKind
from batchman.results import BatchCreation, Restoration
from batchman.services.entries import EntryUpdates
from batchman.units import quantize_price, quantize_quantity

logger = logging.getLogger('batchman')


class LedgerBatches(EntryUpdates):
    """Batch-level state-changing methods."""

    def create_batch(self, product, location, main_quantity, prices: Mapping,
                     batch_number: str = '', production_date=None,
                     reference=None, user=None, reason: str = 'Recebimento') -> BatchCreation:
        """
        Start a new lot.

        Every tracked unit gets an entry with
        ``quantity(u) = main_quantity * f(u) / f(main)`` and its own price.

        Args:
            product: Product object
            location: Location
            main_quantity: Quantity in the product's main unit (>= 0)
            prices: Dict[unit, price per unit] — required for every tracked unit
            batch_number: Lot identifier (generated when empty)
            production_date: Defaults to today

        Raises:
            MissingPriceError: A tracked unit has no price
            UnknownProductError / NoMainUnitError / MissingConversionError

        Concurrency:
            - Runs under self.atomic()
            - Empty-batch cleanup runs in a savepoint; its failure is logged
              and does not abort the creation
        """
        main_quantity = quantize_quantity(main_quantity)
        if main_quantity < 0:
            raise LedgerError('INVALID_QUANTITY', requested=main_quantity)

        with self.atomic():
            table = self._unit_table(product)
            creation = self._create_batch(
                product, location, table, main_quantity, prices,
                batch_number=batch_number, production_date=production_date,
                reference=reference, user=user, reason=reason,
            )

        logger.info(
            "ledger.create_batch",
            extra={
                "product": str(product),
                "location": str(location),
                "batch_id": creation.batch.pk,
                "main_qty": str(main_quantity),
            },
        )
        return creation

    def upsert_latest_batch(self, product, location, main_quantity, prices: Mapping,
                            production_date=None, reference=None, user=None,
                            reason: str = 'Reposição'):
        """
        Replenish without fragmenting lots.

        Adds to the newest active batch of (product, location); creates a
        batch when there is none. Supplied prices overwrite the batch's
        current prices (last write wins); the previous price is kept in
        the move metadata.

        Raises:
            MissingPriceError: A unit needs a new entry but has no price

        Returns:
            The StockBatch that received the stock
        """
        main_quantity = self._positive(main_quantity)

        with self.atomic():
            table = self._unit_table(product)
            prices = self._normalize_prices(prices)

            latest = (
                self._batches()
                .select_for_update()
                .active()
                .for_product(product)
                .at_location(location)
                .consumption_order()
                .first()
            )

            if latest is None:
                return self._create_batch(
                    product, location, table, main_quantity, prices,
                    production_date=production_date,
                    reference=reference, user=user, reason=reason,
                ).batch

            entries = {
                e.unit: e
                for e in self._entries().select_for_update().filter(batch=latest)
            }
            main_entry = entries.get(table.main_unit)
            existing_main = main_entry.quantity if main_entry else Decimal('0')

            price_changes = {}
            for unit in table:
                price = prices.get(unit)
                entry = entries.get(unit)

                if entry is None:
                    if price is None:
                        raise MissingPriceError(
                            product=table.product_name, unit=unit, batch=latest.pk,
                        )
                    entry = self._entries().create(batch=latest, unit=unit, price_per_unit=price)
                    # A unit new to the batch starts at what the batch already holds
                    seed = table.from_main(existing_main, unit)
                    if seed:
                        self._moves().create(
                            entry=entry, delta=seed, kind=MoveKind.ADJUSTMENT,
                            reason='Nova unidade no lote', user=user,
                        )
                    continue

                if price is not None and price != entry.price_per_unit:
                    price_changes[unit] = str(entry.price_per_unit)
                    entry.price_per_unit = price
                    entry.save(update_fields=['price_per_unit', 'updated_at'])

            self._apply_main_delta(
                latest, table, -main_quantity,
                kind=MoveKind.RECEIPT,
                reason=reason,
                allow_negative=True,
                reference=reference,
                user=user,
                metadata={'previous_prices': price_changes} if price_changes else None,
            )

            if production_date:
                latest.production_date = production_date
                latest.save(update_fields=['production_date', 'updated_at'])

        logger.info(
            "ledger.upsert_latest_batch",
            extra={
                "product": str(product),
                "location": str(location),
                "batch_id": latest.pk,
                "main_qty": str(main_quantity),
                "price_changes": price_changes,
            },
        )
        return latest

    def restore_batch(self, batch, unit: str, quantity, reference=None,
                      user=None, reason: str = 'Devolução') -> Restoration:
        """
        Put previously reduced stock back into a specific batch.

        A retired batch is reactivated, since it holds stock again.
        """
        quantity = self._positive(quantity)

        with self.atomic():
            batch = self._get_batch(batch, lock=True)
            table = self._unit_table(self._product_of(batch))
            main_quantity = self._to_main(table, quantity, unit)

            updates = self._apply_main_delta(
                batch, table, -main_quantity,
                kind=MoveKind.RESTORATION,
                reason=reason,
                allow_negative=True,
                reference=reference,
                user=user,
            )

            reactivated = False
            if batch.deleted:
                self._batches().filter(pk=batch.pk).update(deleted=False, updated_at=timezone.now())
                batch.deleted = False
                reactivated = True

        logger.info(
            "ledger.restore_batch",
            extra={
                "batch_id": batch.pk,
                "unit": unit,
                "qty": str(quantity),
                "reactivated": reactivated,
            },
        )
        return Restoration(
            batch=batch,
            unit=unit,
            quantity=quantity,
            main_restored=main_quantity,
            updates=updates,
            reactivated=reactivated,
        )

    def restore_batches(self, items, reference=None, user=None,
                        reason: str = 'Devolução') -> list[Restoration]:
        """
        Restore several ``(batch, unit, quantity)`` items atomically.

        Any failure rolls back every item.
        """
        with self.atomic():
            pks = [getattr(batch, 'pk', batch) for batch, _, _ in items]
            self._lock_batches(self._batches().filter(pk__in=pks))
            return [
                self.restore_batch(batch, unit, quantity,
                                   reference=reference, user=user, reason=reason)
                for batch, unit, quantity in items
            ]

    def retire_empty_batches(self, product, location) -> int:
        """
        Soft-delete every active batch of (product, location) whose main
        quantity is exactly zero.

        Returns:
            Number of batches retired
        """
        with self.atomic():
            table = self._unit_table(product)
            count = self._retire_empty(product, location, table)

        if count:
            logger.info(
                "ledger.retire_empty_batches",
                extra={"product": str(product), "location": str(location), "count": count},
            )
        return count

    # ══════════════════════════════════════════════════════════════
    # NARROW UPDATES
    # ══════════════════════════════════════════════════════════════

    def update_batch_details(self, batch, batch_number: str | None = None,
                             production_date=None):
        """Change a batch's number and/or production date. Quantities are untouched."""
        fields = []
        with self.atomic():
            batch = self._get_batch(batch, lock=True)
            if batch_number:
                batch.batch_number = batch_number
                fields.append('batch_number')
            if production_date:
                batch.production_date = production_date
                fields.append('production_date')
            if fields:
                batch.save(update_fields=[*fields, 'updated_at'])
        return batch

    def update_prices(self, batch, prices: Mapping) -> list:
        """
        Price-only update of a batch's entries.

        Raises:
            UnknownUnitError: The batch has no entry for a given unit
        """
        prices = self._normalize_prices(prices)
        updated = []

        with self.atomic():
            batch = self._get_batch(batch, lock=True)
            entries = {
                e.unit: e
                for e in self._entries().select_for_update().filter(batch=batch)
            }
            for unit, price in prices.items():
                entry = entries.get(unit)
                if entry is None:
                    raise UnknownUnitError(batch=batch.pk, unit=unit)
                entry.price_per_unit = price
                entry.save(update_fields=['price_per_unit', 'updated_at'])
                updated.append(entry)

        logger.info(
            "ledger.update_prices",
            extra={"batch_id": batch.pk, "prices": {u: str(p) for u, p in prices.items()}},
        )
        return updated

    # ══════════════════════════════════════════════════════════════
    # INTERNALS
    # ══════════════════════════════════════════════════════════════

    def _create_batch(self, product, location, table, main_quantity: Decimal, prices,
                      batch_number: str = '', production_date=None,
                      reference=None, user=None, reason: str = 'Recebimento') -> BatchCreation:
        prices = self._normalize_prices(prices)
        missing = [unit for unit in table if unit not in prices]
        if missing:
            raise MissingPriceError(product=table.product_name, unit=missing[0], units=missing)

        if batchman_settings.RETIRE_EMPTY_ON_CREATE:
            try:
                with self.atomic():
                    self._retire_empty(product, location, table)
            except DatabaseError:
                logger.exception(
                    "ledger.retire_empty_failed",
                    extra={"product": str(product), "location": str(location)},
                )

        fields = {}
        if production_date:
            fields['production_date'] = production_date

        batch = self._batches().create(
            content_type=self._content_type(product),
            object_id=product.pk,
            location=location,
            batch_number=batch_number or self._generate_batch_number(),
            **fields,
        )

        entries = []
        for unit in table:
            quantity = table.from_main(main_quantity, unit)
            entry = self._entries().create(batch=batch, unit=unit, price_per_unit=prices[unit])
            if quantity:
                self._moves().create(
                    entry=entry,
                    delta=quantity,
                    kind=MoveKind.RECEIPT,
                    reason=reason,
                    reference=reference,
                    user=user,
                )
                entry.quantity = quantity
            entries.append(entry)

        return BatchCreation(batch=batch, entries=entries)

    def _retire_empty(self, product, location, table) -> int:
        empty = (
            self._batches()
            .active()
            .for_product(product)
            .at_location(location)
            .holding(table.main_unit, positive=False)
        )
        ids = [batch.pk for batch in self._lock_batches(empty)]
        if ids:
            self._batches().filter(pk__in=ids).update(deleted=True, updated_at=timezone.now())
        return len(ids)

    @staticmethod
    def _normalize_prices(prices) -> dict[str, Decimal]:
        normalized = {}
        for unit, price in (prices or {}).items():
            price = quantize_price(price)
            if price < 0:
                raise LedgerError('INVALID_PRICE', unit=unit, price=price)
            normalized[str(unit)] = price
        return normalized

    @staticmethod
    def _generate_batch_number() -> str:
        return f"{batchman_settings.BATCH_NUMBER_PREFIX}{uuid.uuid4().hex[:12].upper()}"
