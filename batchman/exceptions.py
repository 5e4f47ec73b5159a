"""
Exceptions for Batchman.

All errors are LedgerError (or a subclass) with a structured code for
programmatic handling.
"""

from decimal import Decimal
from typing import Any


class LedgerError(Exception):
    """
    Structured exception for ledger operations.

    Usage:
        try:
            ledger.reduce_fifo(product, loja, 24, 'piece')
        except InsufficientStockError as e:
            print(f"Só tem {e.available} {e.data['unit']} disponível")

    Attributes:
        code: Error code for programmatic handling
        message: Human-readable message
        data: Additional context data
    """

    default_code = 'LEDGER_ERROR'

    _default_messages = {
        'LEDGER_ERROR': 'Erro no estoque',
        'INVALID_QUANTITY': 'Quantidade inválida',
        'INVALID_PRICE': 'Preço inválido (não pode ser negativo)',
        'UNKNOWN_PRODUCT': 'Produto não encontrado',
        'UNKNOWN_UNIT': 'Unidade não encontrada',
        'NO_MAIN_UNIT': 'Produto sem unidade principal definida',
        'MISSING_CONVERSION': 'Conversão de unidade não encontrada',
        'MISSING_PRICE': 'Preço não informado para a unidade',
        'INSUFFICIENT_STOCK': 'Quantidade insuficiente no estoque',
        'NO_ACTIVE_BATCH': 'Nenhum lote ativo encontrado',
        'BATCH_NOT_FOUND': 'Lote não encontrado',
        'BATCH_NOT_AVAILABLE': 'Lote não disponível',
        'ENTRY_NOT_FOUND': 'Registro de estoque não encontrado',
    }

    def __init__(self, code: str | None = None, message: str | None = None, **data):
        self.code = code or self.default_code
        self.message = message or self._default_messages.get(self.code, self.code)
        self.data = data
        super().__init__(self.message)

    def __str__(self) -> str:
        if not self.data:
            return f"[{self.code}] {self.message}"
        context = ', '.join(f"{k}={v}" for k, v in self.data.items())
        return f"[{self.code}] {self.message} ({context})"

    def as_dict(self) -> dict[str, Any]:
        """Serialize to dict (useful for APIs)."""
        return {
            'code': self.code,
            'message': self.message,
            'data': {
                k: str(v) if isinstance(v, Decimal) else v
                for k, v in self.data.items()
            }
        }


class UnknownProductError(LedgerError):
    default_code = 'UNKNOWN_PRODUCT'


class UnknownUnitError(LedgerError):
    default_code = 'UNKNOWN_UNIT'


class NoMainUnitError(LedgerError):
    default_code = 'NO_MAIN_UNIT'


class MissingConversionError(LedgerError):
    default_code = 'MISSING_CONVERSION'


class MissingPriceError(LedgerError):
    default_code = 'MISSING_PRICE'


class NoActiveBatchError(LedgerError):
    default_code = 'NO_ACTIVE_BATCH'


class InsufficientStockError(LedgerError):
    """
    Not enough stock to satisfy a reduction.

    ``available`` and ``required`` are expressed in ``data['unit']``,
    the unit the caller asked for.
    """

    default_code = 'INSUFFICIENT_STOCK'

    @property
    def available(self) -> Decimal:
        """Shortcut for data['available']."""
        return self.data.get('available', Decimal('0'))

    @property
    def required(self) -> Decimal:
        """Shortcut for data['required']."""
        return self.data.get('required', Decimal('0'))
