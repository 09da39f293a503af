# Overview: Client-side transaction ledger and stock reconciliation engine.

from .balances import BalanceAggregator, PartyBalance, outstanding_for, status_for
from .billing import BillComposer, BillState, CartLine, LineStatus, SubmitResult
from .client import StorefrontClient, login
from .errors import (
    AuthError,
    BillStateError,
    InsufficientStock,
    InvalidClassification,
    InvalidQuantity,
    InvalidTotal,
    LedgerError,
    MissingParty,
    NegativeBalance,
    NotFound,
    PartyInUse,
    PersistenceFailure,
    ValidationError,
)
from .records import Classification, Direction, PartyKind, PartyRecord, ProductRecord, TransactionRecord
from .session import SessionContext
from .stock import StockLedger

__all__ = [
    'BalanceAggregator', 'PartyBalance', 'outstanding_for', 'status_for',
    'BillComposer', 'BillState', 'CartLine', 'LineStatus', 'SubmitResult',
    'StorefrontClient', 'login', 'SessionContext', 'StockLedger',
    'Classification', 'Direction', 'PartyKind', 'PartyRecord', 'ProductRecord', 'TransactionRecord',
    'LedgerError', 'ValidationError', 'InvalidQuantity', 'InsufficientStock', 'MissingParty',
    'NegativeBalance', 'InvalidTotal', 'InvalidClassification', 'BillStateError', 'NotFound',
    'AuthError', 'PartyInUse', 'PersistenceFailure',
]
