"""
Django Batchman — Batched Multi-Unit Inventory Ledger.

Stock in lots, every unit kept in step.

Uso:
    from batchman import ledger, LedgerError

    ledger.create_batch(cafe, loja, 10, {'case': 100, 'piece': 9})
    ledger.reduce_fifo(cafe, loja, 24, 'piece')
    ledger.available(cafe, loja, 'case')  # 8.000
"""


def __getattr__(name):
    """Lazy import to avoid circular imports during app loading."""
    if name == 'ledger':
        from batchman.service import ledger
        return ledger
    elif name == 'Ledger':
        from batchman.service import Ledger
        return Ledger
    elif name in ('LedgerError', 'InsufficientStockError', 'NoActiveBatchError',
                  'MissingPriceError', 'MissingConversionError', 'NoMainUnitError',
                  'UnknownProductError', 'UnknownUnitError'):
        from batchman import exceptions
        return getattr(exceptions, name)
    elif name in ('Location', 'StockBatch', 'StockEntry', 'StockMove', 'MoveKind'):
        from batchman import models
        return getattr(models, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    'ledger',
    'Ledger',
    'LedgerError',
    'InsufficientStockError',
    'NoActiveBatchError',
    'MissingPriceError',
    'MissingConversionError',
    'NoMainUnitError',
    'UnknownProductError',
    'UnknownUnitError',
    'Location',
    'StockBatch',
    'StockEntry',
    'StockMove',
    'MoveKind',
]

__version__ = '0.1.0'
