"""
Ledger services — modular organization of ledger operations.

    from batchman.services import LedgerQueries, LedgerBatches, LedgerReductions
"""

from batchman.services.batches import LedgerBatches
from batchman.services.queries import LedgerQueries
from batchman.services.reductions import LedgerReductions

__all__ = [
    'LedgerQueries',
    'LedgerBatches',
    'LedgerReductions',
]
