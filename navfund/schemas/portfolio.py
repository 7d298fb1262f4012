"""Pydantic schemas for portfolio endpoints."""

import datetime as dt
from decimal import Decimal

from pydantic import BaseModel, Field


class PortfolioTotalsResponse(BaseModel):
    """Response schema for fund-wide totals."""

    scope: str = Field(..., description="accounts or trades")
    total_units: Decimal = Field(
        ..., description="Fund units held by accounts, or shares held in open positions"
    )
    total_investment: Decimal = Field(
        ..., description="Contributions by accounts, or cost of shares in open positions"
    )
    current_nav: Decimal | None = None
    total_value: Decimal | None = Field(
        None, description="Fund units valued at the current NAV (accounts scope)"
    )
    realized_return: Decimal | None = Field(
        None, description="Realized profit/loss across positions (trades scope)"
    )
    updated_at: dt.datetime


class FundBalanceResponse(BaseModel):
    """Response schema for the fund balance breakdown."""

    total_contributions: Decimal = Field(..., description="Cash invested by all accounts")
    realized_return: Decimal = Field(..., description="Profit/loss locked in by sells")
    total_investment: Decimal = Field(..., description="Contributions plus realized return")
    invested_in_trades: Decimal = Field(..., description="Cost of shares still held")
    remaining_balance: Decimal = Field(..., description="Capital not deployed in positions")


# ============================================================================
# History
# ============================================================================


class SnapshotCreate(BaseModel):
    """Request schema for taking a portfolio snapshot."""

    date: dt.date | None = Field(
        None, description="Date to file the snapshot under, today if omitted"
    )
    description: str | None = Field(None, max_length=500)


class SnapshotResponse(BaseModel):
    """Response schema for a portfolio snapshot."""

    date: dt.date
    invested_amount: Decimal
    current_value: Decimal
    total_units: Decimal
    nav_value: Decimal
    returns: Decimal
    returns_percentage: Decimal
    source: str
    taken_by: str | None = None
    description: str
    updated_at: dt.datetime


class SnapshotListResponse(BaseModel):
    """Response for a history listing, oldest first."""

    period: str
    count: int
    snapshots: list[SnapshotResponse]
