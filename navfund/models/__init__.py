"""
SQLAlchemy models for the fund ledger.

This module exports all models and the Base class for easy imports:
    from navfund.models import Base, Account, NavRecord, Transaction, TradePosition
"""

from navfund.database import Base
from navfund.models.account import Account
from navfund.models.history import PortfolioSnapshot, SnapshotSource
from navfund.models.nav import NavRecord
from navfund.models.position import PositionSale, PositionStatus, TradePosition
from navfund.models.totals import PortfolioTotals, TotalsScope
from navfund.models.transaction import Transaction, TransactionStatus, TransactionType

__all__ = [
    "Base",
    "Account",
    "NavRecord",
    "Transaction",
    "TransactionType",
    "TransactionStatus",
    "TradePosition",
    "PositionSale",
    "PositionStatus",
    "PortfolioTotals",
    "TotalsScope",
    "PortfolioSnapshot",
    "SnapshotSource",
]
