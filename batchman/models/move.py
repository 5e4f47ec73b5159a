"""
StockMove model — Immutable ledger of entry quantity changes.
"""

from django.conf import settings
from django.contrib.contenttypes.fields import GenericForeignKey
from django.contrib.contenttypes.models import ContentType
from django.db import models, router, transaction
from django.db.models import F
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from batchman.models.enums import MoveKind


class StockMove(models.Model):
    """
    Immutable record of a quantity change on one StockEntry.

    Rules:
    - NEVER update() or delete()
    - Corrections are new moves with inverse delta
    - Updates StockEntry.quantity atomically on save()

    This is the ONLY model that changes quantity.
    """

    entry = models.ForeignKey(
        'batchman.StockEntry',
        on_delete=models.PROTECT,
        related_name='moves',
        verbose_name=_('Registro'),
    )

    delta = models.DecimalField(
        max_digits=15,
        decimal_places=3,
        verbose_name=_('Variação'),
        help_text=_('Positivo = entrada, Negativo = saída'),
    )
    kind = models.CharField(
        max_length=20,
        choices=MoveKind.choices,
        verbose_name=_('Tipo'),
    )

    # External reference (order, transfer, return, etc)
    reference_type = models.ForeignKey(
        ContentType,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('Tipo de Referência'),
    )
    reference_id = models.PositiveIntegerField(null=True, blank=True, verbose_name=_('ID da Referência'))
    reference = GenericForeignKey('reference_type', 'reference_id')

    reason = models.CharField(
        max_length=255,
        verbose_name=_('Motivo'),
        help_text=_('Obrigatório. Ex: "Recebimento", "Venda #123"'),
    )
    metadata = models.JSONField(default=dict, blank=True, verbose_name=_('Metadados'))

    timestamp = models.DateTimeField(default=timezone.now, db_index=True, verbose_name=_('Data/Hora'))
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        verbose_name=_('Usuário'),
    )

    class Meta:
        verbose_name = _('Movimento')
        verbose_name_plural = _('Movimentos')
        ordering = ['timestamp', 'pk']
        indexes = [
            models.Index(fields=['entry', 'timestamp'], name='batchman_st_entry_i_4c2d9a_idx'),
        ]

    def save(self, *args, **kwargs):
        """Save move and update entry cache atomically."""
        if self.pk:
            raise ValueError(
                "Movimentos são imutáveis. "
                "Para corrigir, crie um novo movimento com variação inversa."
            )

        if not self.reason:
            raise ValueError("Motivo é obrigatório")

        using = kwargs.get('using') or router.db_for_write(type(self), instance=self)

        with transaction.atomic(using=using):
            super().save(*args, **kwargs)

            from batchman.models.entry import StockEntry

            # F() keeps concurrent moves from overwriting each other
            StockEntry.objects.using(using).filter(pk=self.entry_id).update(
                quantity=F('quantity') + self.delta,
                updated_at=timezone.now()
            )

    def delete(self, *args, **kwargs):
        """Prevent deletion — moves are immutable."""
        raise ValueError(
            "Movimentos são imutáveis. "
            "Para estornar, crie um novo movimento com variação inversa."
        )

    def __str__(self) -> str:
        signal = '+' if self.delta > 0 else ''
        return f"{signal}{self.delta} {self.entry.unit} | {self.reason}"
