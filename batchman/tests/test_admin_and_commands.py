"""
Tests for the admin registration and the retire_empty_batches command.
"""

from io import StringIO

import pytest
from django.contrib import admin
from django.core.management import call_command
from django.test import RequestFactory

from batchman import ledger
from batchman.models import Location, StockBatch, StockEntry, StockMove


pytestmark = pytest.mark.django_db


class TestRetireEmptyBatchesCommand:
    """Tests for `manage.py retire_empty_batches`."""

    @pytest.fixture
    def empty_batches(self, settings, cafe, loja, deposito, prices):
        settings.BATCHMAN = {'RETIRE_EMPTY_ON_CREATE': False}
        ledger.create_batch(cafe, loja, 0, prices)
        ledger.create_batch(cafe, loja, 0, prices)
        ledger.create_batch(cafe, deposito, 0, prices)
        ledger.create_batch(cafe, loja, 5, prices)

    def test_dry_run(self, empty_batches):
        out = StringIO()

        call_command('retire_empty_batches', '--dry-run', stdout=out)

        assert '3 lote(s) seria(m) retirado(s)' in out.getvalue()
        assert StockBatch.objects.active().count() == 4

    def test_retires(self, empty_batches):
        out = StringIO()

        call_command('retire_empty_batches', stdout=out)

        assert '3 lote(s) retirado(s)' in out.getvalue()
        assert StockBatch.objects.active().count() == 1

    def test_nothing_to_do(self):
        out = StringIO()

        call_command('retire_empty_batches', stdout=out)

        assert '0 lote(s) retirado(s)' in out.getvalue()


class TestAdmin:
    """Stock is read-only in the admin; locations are editable."""

    @pytest.fixture
    def request_(self, user):
        request = RequestFactory().get('/admin/')
        request.user = user
        return request

    def test_models_registered(self):
        for model in (Location, StockBatch, StockEntry, StockMove):
            assert admin.site.is_registered(model)

    @pytest.mark.parametrize('model', [StockBatch, StockEntry, StockMove])
    def test_stock_is_read_only(self, request_, model):
        model_admin = admin.site._registry[model]

        assert model_admin.has_add_permission(request_) is False
        assert model_admin.has_change_permission(request_) is False
        assert model_admin.has_delete_permission(request_) is False

    def test_product_display(self, cafe, loja, prices):
        batch = ledger.create_batch(cafe, loja, 1, prices).batch
        model_admin = admin.site._registry[StockBatch]

        assert model_admin.product_display(batch) == 'Café'
