"""
Batchman Models.

Core models for batched stock:
- Location: Where stock is held
- StockBatch: Lot of one product at one location
- StockEntry: Quantity/price of one unit inside a batch
- StockMove: Immutable ledger of entry quantity changes
"""

from batchman.models.batch import StockBatch
from batchman.models.entry import StockEntry
from batchman.models.enums import MoveKind
from batchman.models.location import Location
from batchman.models.move import StockMove

__all__ = [
    'MoveKind',
    'Location',
    'StockBatch',
    'StockEntry',
    'StockMove',
]
