"""
Enums for Batchman models.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class MoveKind(models.TextChoices):
    """
    Why a stock entry quantity changed.

    RECEIPT:     Stock entered a batch (new lot or replenishment)
    REDUCTION:   Stock left a batch (sale, transfer out, consumption)
    RESTORATION: Previously reduced stock returned to its batch
    ADJUSTMENT:  Correction (e.g. settling rounding residue)
    """
    RECEIPT = 'receipt', _('Entrada')
    REDUCTION = 'reduction', _('Saída')
    RESTORATION = 'restoration', _('Devolução')
    ADJUSTMENT = 'adjustment', _('Ajuste')
