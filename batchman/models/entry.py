"""
StockEntry model — quantity and price of one unit inside one batch.
"""

import logging
from decimal import Decimal

from django.db import models
from django.db.models import Sum
from django.db.models.functions import Coalesce
from django.utils.translation import gettext_lazy as _

logger = logging.getLogger('batchman')


class StockEntryQuerySet(models.QuerySet):
    """Helpers for StockEntry queries."""

    def for_product(self, product):
        from django.contrib.contenttypes.models import ContentType
        ct = ContentType.objects.db_manager(self.db).get_for_model(product)
        return self.filter(batch__content_type=ct, batch__object_id=product.pk)

    def at_location(self, location):
        return self.filter(batch__location=location)

    def in_active_batches(self):
        return self.filter(batch__deleted=False)

    def in_unit(self, unit: str):
        return self.filter(unit=unit)


class StockEntry(models.Model):
    """
    Quantity of a batch expressed in one unit.

    A batch has one entry per unit its product is tracked in; all of them
    describe the same physical amount (cross-unit consistency).

    Performance:
    - quantity is a cache updated atomically by StockMove
    - Read is O(1), not O(N)
    - Use recalculate() for audit/correction
    """

    batch = models.ForeignKey(
        'batchman.StockBatch',
        on_delete=models.PROTECT,
        related_name='entries',
        verbose_name=_('Lote'),
    )
    unit = models.CharField(
        max_length=32,
        verbose_name=_('Unidade'),
    )

    # Quantity cache (updated atomically by StockMove)
    quantity = models.DecimalField(
        max_digits=15,
        decimal_places=3,
        default=Decimal('0'),
        verbose_name=_('Quantidade'),
    )
    price_per_unit = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('0'),
        verbose_name=_('Preço por Unidade'),
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = StockEntryQuerySet.as_manager()

    class Meta:
        verbose_name = _('Registro de Estoque')
        verbose_name_plural = _('Registros de Estoque')
        ordering = ['batch', 'pk']
        constraints = [
            models.UniqueConstraint(
                fields=['batch', 'unit'],
                name='unique_entry_unit_per_batch',
            )
        ]

    # ══════════════════════════════════════════════════════════════
    # PROPERTIES
    # ══════════════════════════════════════════════════════════════

    @property
    def product(self):
        return self.batch.product

    @property
    def location(self):
        return self.batch.location

    @property
    def value(self) -> Decimal:
        """Stock value of this entry (quantity × price)."""
        return self.quantity * self.price_per_unit

    # ══════════════════════════════════════════════════════════════
    # METHODS
    # ══════════════════════════════════════════════════════════════

    def recalculate(self) -> Decimal:
        """
        Recalculate quantity from moves.

        Use for:
        - Integrity audit
        - Correction after detected inconsistency
        - Debug

        Returns:
            New calculated quantity
        """
        total = self.moves.aggregate(
            t=Coalesce(Sum('delta'), Decimal('0'))
        )['t']

        if total != self.quantity:
            old = self.quantity
            self.quantity = total
            self.save(update_fields=['quantity', 'updated_at'])

            logger.warning(
                "StockEntry %s recalculated: %s → %s (diff: %s)",
                self.pk, old, total, total - old,
            )

        return total

    def __str__(self) -> str:
        return f"{self.batch.batch_number} [{self.unit}]: {self.quantity}"
