"""
Batchman Admin.

Read-only views for production debugging:
- Location: list + edit
- StockBatch: read-only, with its entries inline
- StockEntry: read-only (batch, unit, quantity, price)
- StockMove: read-only audit trail (timestamp, delta, kind, reason)

Stock only changes through the ledger service.
"""

from django.contrib import admin
from django.utils.translation import gettext_lazy as _

from batchman.models import Location, StockBatch, StockEntry, StockMove


class ReadOnlyAdminMixin:
    """No add/change/delete from the admin."""

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# =========================================================================
# LOCATION ADMIN
# =========================================================================

@admin.register(Location)
class LocationAdmin(admin.ModelAdmin):
    """Location admin — editable."""

    list_display = ['code', 'name', 'is_active']
    list_filter = ['is_active']
    search_fields = ['code', 'name']
    readonly_fields = ['created_at', 'updated_at']


# =========================================================================
# BATCH ADMIN (read-only)
# =========================================================================

class StockEntryInline(ReadOnlyAdminMixin, admin.TabularInline):
    model = StockEntry
    fields = ['unit', 'quantity', 'price_per_unit', 'updated_at']
    readonly_fields = fields
    extra = 0


@admin.register(StockBatch)
class StockBatchAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """StockBatch admin — read-only. Lot traceability."""

    list_display = ['batch_number', 'product_display', 'location', 'production_date',
                    'deleted', 'created_at']
    list_filter = ['deleted', 'location', 'production_date']
    search_fields = ['batch_number', 'object_id']
    readonly_fields = ['content_type', 'object_id', 'location', 'batch_number',
                       'production_date', 'deleted', 'created_at', 'updated_at']
    date_hierarchy = 'created_at'
    inlines = [StockEntryInline]

    @admin.display(description=_('Produto'))
    def product_display(self, obj):
        return str(obj.product) if obj.product else '?'


# =========================================================================
# ENTRY ADMIN (read-only)
# =========================================================================

@admin.register(StockEntry)
class StockEntryAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """StockEntry admin — read-only. Quantities only change via moves."""

    list_display = ['batch', 'unit', 'quantity', 'price_per_unit', 'value_display']
    list_filter = ['unit', 'batch__location', 'batch__deleted']
    search_fields = ['batch__batch_number', 'unit']
    readonly_fields = ['batch', 'unit', 'quantity', 'price_per_unit', 'created_at', 'updated_at']
    list_select_related = ['batch']

    @admin.display(description=_('Valor'))
    def value_display(self, obj):
        return obj.value


# =========================================================================
# MOVE ADMIN (read-only audit trail)
# =========================================================================

@admin.register(StockMove)
class StockMoveAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """StockMove admin — read-only. Immutable audit trail."""

    list_display = ['timestamp', 'entry', 'delta', 'kind', 'reason', 'user']
    list_filter = ['kind', 'timestamp', 'user']
    search_fields = ['reason', 'entry__batch__batch_number']
    readonly_fields = ['entry', 'delta', 'kind', 'reference_type', 'reference_id',
                       'reason', 'metadata', 'timestamp', 'user']
    date_hierarchy = 'timestamp'
    list_select_related = ['entry__batch', 'user']
