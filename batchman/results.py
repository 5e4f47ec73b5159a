"""
Ledger results — itemized outcomes returned to the caller workflow.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from batchman.models import Location, StockBatch, StockEntry


@dataclass(frozen=True)
class EntryUpdate:
    """One unit of one batch changed by a proportional update."""

    entry: StockEntry
    unit: str
    previous_quantity: Decimal
    delta: Decimal  # Positive = added, Negative = removed
    new_quantity: Decimal


@dataclass(frozen=True)
class BatchCreation:
    """Result of create_batch()."""

    batch: StockBatch
    entries: list[StockEntry] = field(default_factory=list)


@dataclass(frozen=True)
class BatchReduction:
    """How much one batch gave up during a FIFO reduction."""

    batch: StockBatch
    main_reduced: Decimal
    updates: list[EntryUpdate] = field(default_factory=list)
    retired: bool = False


@dataclass(frozen=True)
class FifoReduction:
    """Result of reduce_fifo()."""

    product: object
    location: Location
    unit: str
    total_reduced: Decimal  # In ``unit``
    main_reduced: Decimal
    batches_affected: list[BatchReduction] = field(default_factory=list)
    forced: bool = False


@dataclass(frozen=True)
class TargetedReduction:
    """Result of reduce_entry() / reduce_batch()."""

    batch: StockBatch
    unit: str
    quantity: Decimal  # In ``unit``
    main_reduced: Decimal
    updates: list[EntryUpdate] = field(default_factory=list)
    retired: bool = False


@dataclass(frozen=True)
class Restoration:
    """Result of restore_batch()."""

    batch: StockBatch
    unit: str
    quantity: Decimal
    main_restored: Decimal
    updates: list[EntryUpdate] = field(default_factory=list)
    reactivated: bool = False


@dataclass(frozen=True)
class AvailableBatch:
    """A non-retired batch and its entries with stock."""

    batch: StockBatch
    entries: list[StockEntry] = field(default_factory=list)
