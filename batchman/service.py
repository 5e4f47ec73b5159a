"""
Ledger Service — The single public interface for all batch/stock operations.

Usage:
    from batchman import ledger, LedgerError

    ledger.create_batch(cafe, loja, 10, {'case': 100, 'piece': 9})
    ledger.reduce_fifo(cafe, loja, 24, 'piece')
    ledger.available(cafe, loja, 'case')  # Decimal('8.000')

To run against another database, bind a ledger to its alias:
    Ledger(using='estoque').reduce_fifo(...)
"""

from batchman.services.queries import LedgerQueries
from batchman.services.reductions import LedgerReductions


class Ledger(LedgerQueries, LedgerReductions):
    """
    Single interface for all ledger operations.

    Parameter convention: (product, location, quantity, unit, ...)
    Follows natural language: "Reduce 24 pieces of coffee at the shop"

    IMPORTANT: All state-changing methods use atomic transactions
    with row locking. See each method's docstring.
    """


ledger = Ledger()
