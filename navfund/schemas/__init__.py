"""Pydantic schemas for request/response validation."""

from navfund.schemas.accounts import (
    AccountCreate,
    AccountListItem,
    AccountResponse,
    BalanceChangeResponse,
    InvestRequest,
    TransactionResponse,
    WithdrawByAmount,
    WithdrawByUnits,
    WithdrawRequest,
)
from navfund.schemas.nav import CurrentNavResponse, NavCreate, NavListResponse, NavResponse
from navfund.schemas.portfolio import (
    FundBalanceResponse,
    PortfolioTotalsResponse,
    SnapshotCreate,
    SnapshotListResponse,
    SnapshotResponse,
)
from navfund.schemas.positions import (
    HoldingResponse,
    HoldingsListResponse,
    PositionCreate,
    PositionDetailResponse,
    PositionListResponse,
    PositionResponse,
    PositionSell,
    PositionStatus,
    SaleResponse,
)
from navfund.schemas.transactions import Pagination, TransactionListResponse

__all__ = [
    # Account schemas
    "AccountCreate",
    "AccountResponse",
    "AccountListItem",
    "InvestRequest",
    "WithdrawByAmount",
    "WithdrawByUnits",
    "WithdrawRequest",
    "TransactionResponse",
    "BalanceChangeResponse",
    # NAV schemas
    "NavCreate",
    "NavResponse",
    "NavListResponse",
    "CurrentNavResponse",
    # Position schemas
    "PositionCreate",
    "PositionSell",
    "PositionStatus",
    "PositionResponse",
    "PositionDetailResponse",
    "PositionListResponse",
    "SaleResponse",
    "HoldingResponse",
    "HoldingsListResponse",
    # Ledger and portfolio schemas
    "Pagination",
    "TransactionListResponse",
    "PortfolioTotalsResponse",
    "FundBalanceResponse",
    "SnapshotCreate",
    "SnapshotResponse",
    "SnapshotListResponse",
]
