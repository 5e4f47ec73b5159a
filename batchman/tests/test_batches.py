"""
Tests for batch operations: create, upsert, restore and housekeeping.
"""

import logging
from datetime import date
from decimal import Decimal

import pytest
from django.db import DatabaseError
from django.utils import timezone

from batchman import ledger
from batchman.exceptions import LedgerError, MissingPriceError, UnknownUnitError
from batchman.models import MoveKind, StockBatch, StockEntry, StockMove
from batchman.services.batches import LedgerBatches
from batchman.tests.testapp.models import UnitConversion


pytestmark = pytest.mark.django_db


class TestCreateBatch:
    """Tests for ledger.create_batch()."""

    def test_creates_one_entry_per_unit(self, cafe, loja, prices):
        """Every unit gets its converted quantity and its own price."""
        result = ledger.create_batch(cafe, loja, 10, prices, batch_number='LOT-A')

        batch = result.batch
        assert batch.batch_number == 'LOT-A'
        assert batch.location == loja
        assert batch.product == cafe
        assert batch.quantities() == {'case': Decimal('10.000'), 'piece': Decimal('120.000')}
        assert batch.prices() == {'case': Decimal('100.00'), 'piece': Decimal('9.00')}
        assert [e.unit for e in result.entries] == ['case', 'piece']

    def test_receipt_moves_are_recorded(self, cafe, loja, prices, user, order):
        result = ledger.create_batch(cafe, loja, 10, prices, reference=order, user=user)

        moves = StockMove.objects.filter(entry__batch=result.batch)
        assert moves.count() == 2
        for move in moves:
            assert move.kind == MoveKind.RECEIPT
            assert move.user == user
            assert move.reference == order
            assert move.reason == 'Recebimento'

    def test_quantity_is_sum_of_moves(self, cafe, loja, prices):
        result = ledger.create_batch(cafe, loja, 10, prices)

        for entry in result.batch.entries.all():
            assert entry.recalculate() == entry.quantity

    def test_defaults(self, cafe, loja, prices):
        """Batch number is generated and production date defaults to today."""
        batch = ledger.create_batch(cafe, loja, 1, prices).batch

        assert batch.batch_number.startswith('LOT-')
        assert len(batch.batch_number) == 16
        assert batch.production_date == timezone.localdate()
        assert batch.deleted is False

    def test_custom_batch_number_prefix(self, settings, cafe, loja, prices):
        settings.BATCHMAN = {'BATCH_NUMBER_PREFIX': 'CAFE-'}

        batch = ledger.create_batch(cafe, loja, 1, prices).batch

        assert batch.batch_number.startswith('CAFE-')

    def test_production_date(self, cafe, loja, prices):
        batch = ledger.create_batch(cafe, loja, 1, prices, production_date=date(2026, 2, 23)).batch

        assert batch.production_date == date(2026, 2, 23)

    def test_zero_quantity_batch(self, cafe, loja, prices):
        """A batch can start empty; no moves are recorded."""
        batch = ledger.create_batch(cafe, loja, 0, prices).batch

        assert batch.quantities() == {'case': Decimal('0.000'), 'piece': Decimal('0.000')}
        assert not StockMove.objects.filter(entry__batch=batch).exists()

    def test_missing_price(self, cafe, loja):
        """Every tracked unit needs a price; nothing is written otherwise."""
        with pytest.raises(MissingPriceError) as exc:
            ledger.create_batch(cafe, loja, 10, {'case': Decimal('100')})

        assert exc.value.code == 'MISSING_PRICE'
        assert exc.value.data['unit'] == 'piece'
        assert not StockBatch.objects.exists()

    def test_negative_price(self, cafe, loja):
        with pytest.raises(LedgerError) as exc:
            ledger.create_batch(cafe, loja, 10, {'case': -1, 'piece': 9})

        assert exc.value.code == 'INVALID_PRICE'

    def test_negative_quantity(self, cafe, loja, prices):
        with pytest.raises(LedgerError) as exc:
            ledger.create_batch(cafe, loja, -1, prices)

        assert exc.value.code == 'INVALID_QUANTITY'

    def test_conversion_rounding(self, farinha, loja):
        """1 kg of flour is 0.04 bags and 1000 g."""
        batch = ledger.create_batch(
            farinha, loja, Decimal('1.5'),
            {'kg': 5, 'bag': 125, 'g': Decimal('0.01')},
        ).batch

        assert batch.quantities() == {
            'kg': Decimal('1.500'),
            'bag': Decimal('0.060'),
            'g': Decimal('1500.000'),
        }


class TestEmptyBatchCleanup:
    """Empty batches are retired before a new batch is created."""

    def test_empty_batch_retired_on_create(self, cafe, loja, prices):
        empty = ledger.create_batch(cafe, loja, 0, prices).batch

        ledger.create_batch(cafe, loja, 5, prices)

        empty.refresh_from_db()
        assert empty.deleted is True

    def test_other_location_untouched(self, cafe, loja, deposito, prices):
        empty = ledger.create_batch(cafe, deposito, 0, prices).batch

        ledger.create_batch(cafe, loja, 5, prices)

        empty.refresh_from_db()
        assert empty.deleted is False

    def test_cleanup_disabled(self, settings, cafe, loja, prices):
        settings.BATCHMAN = {'RETIRE_EMPTY_ON_CREATE': False}
        empty = ledger.create_batch(cafe, loja, 0, prices).batch

        ledger.create_batch(cafe, loja, 5, prices)

        empty.refresh_from_db()
        assert empty.deleted is False

    def test_cleanup_failure_does_not_block_creation(self, monkeypatch, caplog, cafe, loja, prices):
        def broken(self, product, location, table):
            raise DatabaseError("lock timeout")

        monkeypatch.setattr(LedgerBatches, '_retire_empty', broken)

        result = ledger.create_batch(cafe, loja, 5, prices)

        assert result.batch.quantities()['case'] == Decimal('5.000')
        assert any(r.getMessage() == 'ledger.retire_empty_failed' for r in caplog.records)

    def test_retire_empty_batches(self, settings, cafe, loja, prices):
        settings.BATCHMAN = {'RETIRE_EMPTY_ON_CREATE': False}
        ledger.create_batch(cafe, loja, 0, prices)
        ledger.create_batch(cafe, loja, 0, prices)
        full = ledger.create_batch(cafe, loja, 3, prices).batch

        assert ledger.retire_empty_batches(cafe, loja) == 2
        assert list(StockBatch.objects.active()) == [full]
        assert ledger.retire_empty_batches(cafe, loja) == 0


class TestUpsertLatestBatch:
    """Tests for ledger.upsert_latest_batch()."""

    def test_creates_batch_when_none(self, cafe, loja, prices):
        batch = ledger.upsert_latest_batch(cafe, loja, 4, prices)

        assert batch.quantities() == {'case': Decimal('4.000'), 'piece': Decimal('48.000')}
        assert StockBatch.objects.count() == 1

    def test_adds_to_newest_batch(self, cafe, loja, prices):
        older = ledger.create_batch(cafe, loja, 10, prices).batch
        newer = ledger.create_batch(cafe, loja, 10, prices).batch

        batch = ledger.upsert_latest_batch(cafe, loja, 5, prices)

        assert batch == newer
        assert newer.quantities() == {'case': Decimal('15.000'), 'piece': Decimal('180.000')}
        assert older.quantities()['case'] == Decimal('10.000')
        assert StockBatch.objects.count() == 2

    def test_last_write_wins_on_prices(self, cafe, loja, prices):
        """Supplied prices replace the current ones; the old price is kept in the move."""
        batch = ledger.create_batch(cafe, loja, 10, prices).batch

        ledger.upsert_latest_batch(cafe, loja, 5, {'case': Decimal('110')})

        assert batch.prices() == {'case': Decimal('110.00'), 'piece': Decimal('9.00')}
        move = StockMove.objects.filter(
            entry__batch=batch, entry__unit='case', kind=MoveKind.RECEIPT,
        ).last()
        assert move.delta == Decimal('5.000')
        assert move.metadata == {'previous_prices': {'case': '100.00'}}

    def test_new_unit_seeded_with_existing_stock(self, cafe, loja, prices):
        """A unit added to the catalog later starts at what the batch already holds."""
        batch = ledger.create_batch(cafe, loja, 10, prices).batch
        UnitConversion.objects.create(product=cafe, unit='box', factor=Decimal('2'))

        ledger.upsert_latest_batch(cafe, loja, 5, {'box': Decimal('55')})

        assert batch.quantities() == {
            'case': Decimal('15.000'),
            'piece': Decimal('180.000'),
            'box': Decimal('30.000'),
        }
        box = StockEntry.objects.get(batch=batch, unit='box')
        assert box.price_per_unit == Decimal('55.00')
        assert box.recalculate() == Decimal('30.000')
        assert box.moves.filter(kind=MoveKind.ADJUSTMENT, delta=Decimal('20')).exists()

    def test_new_unit_without_price(self, cafe, loja, prices):
        batch = ledger.create_batch(cafe, loja, 10, prices).batch
        UnitConversion.objects.create(product=cafe, unit='box', factor=Decimal('2'))

        with pytest.raises(MissingPriceError) as exc:
            ledger.upsert_latest_batch(cafe, loja, 5, {})

        assert exc.value.data['unit'] == 'box'
        assert batch.quantities() == {'case': Decimal('10.000'), 'piece': Decimal('120.000')}

    def test_zero_quantity_rejected(self, cafe, loja, prices):
        with pytest.raises(LedgerError) as exc:
            ledger.upsert_latest_batch(cafe, loja, 0, prices)

        assert exc.value.code == 'INVALID_QUANTITY'

    def test_skips_retired_batches(self, cafe, loja, prices):
        older = ledger.create_batch(cafe, loja, 10, prices).batch
        newer = ledger.create_batch(cafe, loja, 2, prices).batch
        ledger.reduce_batch(newer, 'case', 2)

        batch = ledger.upsert_latest_batch(cafe, loja, 1, prices)

        assert batch == older
        assert older.quantities()['case'] == Decimal('11.000')


class TestRestoreBatch:
    """Tests for ledger.restore_batch() / restore_batches()."""

    def test_restore_in_other_unit(self, cafe, loja, prices):
        batch = ledger.create_batch(cafe, loja, 10, prices).batch
        ledger.reduce_fifo(cafe, loja, 24, 'piece')

        result = ledger.restore_batch(batch, 'piece', 12)

        assert result.main_restored == Decimal('1.000')
        assert result.reactivated is False
        assert batch.quantities() == {'case': Decimal('9.000'), 'piece': Decimal('108.000')}
        assert StockMove.objects.filter(entry__batch=batch, kind=MoveKind.RESTORATION).count() == 2

    def test_restore_reactivates_retired_batch(self, cafe, loja, prices):
        older = ledger.create_batch(cafe, loja, 5, prices).batch
        ledger.create_batch(cafe, loja, 10, prices)
        ledger.reduce_batch(older, 'case', 5)
        older.refresh_from_db()
        assert older.deleted is True

        result = ledger.restore_batch(older, 'case', 2)

        older.refresh_from_db()
        assert result.reactivated is True
        assert older.deleted is False
        assert older.quantities() == {'case': Decimal('2.000'), 'piece': Decimal('24.000')}

    def test_restore_batches_is_atomic(self, cafe, loja, prices):
        batch = ledger.create_batch(cafe, loja, 10, prices).batch

        with pytest.raises(LedgerError) as exc:
            ledger.restore_batches([
                (batch, 'case', 1),
                (999999, 'case', 1),
            ])

        assert exc.value.code == 'BATCH_NOT_FOUND'
        assert batch.quantities()['case'] == Decimal('10.000')

    def test_restore_batches(self, cafe, loja, prices):
        a = ledger.create_batch(cafe, loja, 1, prices).batch
        b = ledger.create_batch(cafe, loja, 1, prices).batch

        results = ledger.restore_batches([(a, 'case', 1), (b.pk, 'piece', 6)])

        assert [r.batch for r in results] == [a, b]
        assert a.quantities()['case'] == Decimal('2.000')
        assert b.quantities()['case'] == Decimal('1.500')


class TestNarrowUpdates:
    """Tests for update_batch_details() and update_prices()."""

    def test_update_batch_details(self, cafe, loja, prices):
        batch = ledger.create_batch(cafe, loja, 10, prices).batch

        ledger.update_batch_details(batch, batch_number='LOT-B', production_date=date(2026, 1, 5))

        batch.refresh_from_db()
        assert batch.batch_number == 'LOT-B'
        assert batch.production_date == date(2026, 1, 5)
        assert batch.quantities()['case'] == Decimal('10.000')

    def test_update_prices(self, cafe, loja, prices):
        batch = ledger.create_batch(cafe, loja, 10, prices).batch

        updated = ledger.update_prices(batch, {'piece': '9.5'})

        assert [e.unit for e in updated] == ['piece']
        assert batch.prices() == {'case': Decimal('100.00'), 'piece': Decimal('9.50')}
        assert batch.quantities()['piece'] == Decimal('120.000')

    def test_update_prices_unknown_unit(self, cafe, loja, prices):
        batch = ledger.create_batch(cafe, loja, 10, prices).batch

        with pytest.raises(UnknownUnitError):
            ledger.update_prices(batch, {'piece': 1, 'dozen': 100})

        assert batch.prices()['piece'] == Decimal('9.00')

    def test_logs_operation(self, caplog, cafe, loja, prices):
        caplog.set_level(logging.INFO, logger='batchman')
        batch = ledger.create_batch(cafe, loja, 10, prices).batch

        ledger.update_prices(batch, {'case': 99})

        assert 'ledger.update_prices' in [r.getMessage() for r in caplog.records]
