"""
Location model — Where stock is held.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class Location(models.Model):
    """
    Where batches are held — outlet, warehouse, production house.

    Locations are stable entities, created during system setup by the
    surrounding project. The ledger only references them.

    Examples:
        Location.objects.create(code='loja-centro', name='Loja Centro')
        Location.objects.create(code='deposito', name='Depósito Central')
    """

    code = models.SlugField(
        unique=True,
        max_length=50,
        verbose_name=_('Código'),
        help_text=_('Identificador único (ex: loja-centro, deposito)'),
    )
    name = models.CharField(
        max_length=100,
        verbose_name=_('Nome'),
        help_text=_('Nome legível do local'),
    )
    is_active = models.BooleanField(
        default=True,
        verbose_name=_('Ativo'),
    )
    metadata = models.JSONField(
        default=dict,
        blank=True,
        verbose_name=_('Metadados'),
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _('Local')
        verbose_name_plural = _('Locais')
        ordering = ['code']

    def __str__(self) -> str:
        return self.name
