"""
StockBatch model — a lot of one product at one location.

A batch never carries quantity itself: its StockEntry rows hold one
quantity/price per unit the product is tracked in.

Usage:
    result = ledger.create_batch(
        product, loja, main_quantity=10,
        prices={'case': Decimal('100'), 'piece': Decimal('9')},
        batch_number='LOT-2026-0223-A',
    )
    result.batch.entries.all()  # case: 10.000, piece: 120.000
"""

from decimal import Decimal

from django.contrib.contenttypes.fields import GenericForeignKey
from django.contrib.contenttypes.models import ContentType
from django.db import models
from django.db.models import Q
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class StockBatchQuerySet(models.QuerySet):
    """Custom QuerySet for StockBatch with convenience filters."""

    def active(self):
        """Batches not retired."""
        return self.filter(deleted=False)

    def retired(self):
        return self.filter(deleted=True)

    def for_product(self, product):
        """Filter batches for a specific product."""
        ct = ContentType.objects.db_manager(self.db).get_for_model(product)
        return self.filter(content_type=ct, object_id=product.pk)

    def at_location(self, location):
        return self.filter(location=location)

    def consumption_order(self):
        """Newest batch first — the order reductions draw from."""
        return self.order_by('-created_at', '-pk')

    def holding(self, unit: str, positive: bool = True):
        """Batches whose entry for ``unit`` is positive (or exactly zero)."""
        if positive:
            return self.filter(entries__unit=unit, entries__quantity__gt=0)
        return self.filter(entries__unit=unit, entries__quantity=0)


class StockBatch(models.Model):
    """
    Lot of stock for one product at one location.

    Lifecycle:
    - Created by the ledger (create_batch, upsert_latest_batch, forced reduction)
    - Retired (deleted=True) once depleted, if a sibling still has stock
    - Never hard-deleted: entries and moves keep the audit trail
    """

    # Product reference (generic, any product model)
    content_type = models.ForeignKey(
        ContentType,
        on_delete=models.PROTECT,
        verbose_name=_('Tipo de Produto'),
    )
    object_id = models.PositiveIntegerField(verbose_name=_('ID do Produto'))
    product = GenericForeignKey('content_type', 'object_id')

    location = models.ForeignKey(
        'batchman.Location',
        on_delete=models.PROTECT,
        related_name='batches',
        verbose_name=_('Local'),
    )

    batch_number = models.CharField(
        max_length=64,
        verbose_name=_('Número do Lote'),
    )
    production_date = models.DateField(
        default=timezone.localdate,
        verbose_name=_('Data de Produção'),
    )

    deleted = models.BooleanField(
        default=False,
        db_index=True,
        verbose_name=_('Retirado'),
        help_text=_('Lote esgotado e retirado de uso. Nunca é apagado.'),
    )

    created_at = models.DateTimeField(auto_now_add=True, db_index=True, verbose_name=_('Criado em'))
    updated_at = models.DateTimeField(auto_now=True)

    objects = StockBatchQuerySet.as_manager()

    class Meta:
        verbose_name = _('Lote')
        verbose_name_plural = _('Lotes')
        ordering = ['-created_at', '-pk']
        indexes = [
            models.Index(fields=['content_type', 'object_id', 'location'], name='batchman_st_content_6b1f2e_idx'),
        ]

    # ══════════════════════════════════════════════════════════════
    # PROPERTIES
    # ══════════════════════════════════════════════════════════════

    def quantities(self) -> dict[str, Decimal]:
        """Current quantity per unit."""
        return dict(self.entries.values_list('unit', 'quantity'))

    def prices(self) -> dict[str, Decimal]:
        """Current price per unit."""
        return dict(self.entries.values_list('unit', 'price_per_unit'))

    def quantity_in(self, unit: str) -> Decimal:
        entry = self.entries.filter(unit=unit).first()
        return entry.quantity if entry else Decimal('0')

    def siblings(self):
        """Other active batches of the same product at the same location."""
        return StockBatch.objects.using(self._state.db).filter(
            content_type_id=self.content_type_id,
            object_id=self.object_id,
            location_id=self.location_id,
            deleted=False,
        ).filter(~Q(pk=self.pk))

    def __str__(self) -> str:
        retired = " (retirado)" if self.deleted else ""
        return f"Lote {self.batch_number}{retired}"
