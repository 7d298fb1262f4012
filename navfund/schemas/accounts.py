"""Pydantic schemas for account and unit accounting endpoints."""

from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field


# ============================================================================
# Account lifecycle
# ============================================================================


class AccountCreate(BaseModel):
    """Request schema for creating an account."""

    account_id: str = Field(..., min_length=1, max_length=50, description="Unique account ID")
    name: str = Field(..., min_length=1, max_length=100, description="Investor name")
    user_code: str | None = Field(
        default=None,
        pattern=r"^[A-Za-z]{3}[0-9]{3}$",
        description="Three letters then three digits; generated when omitted",
    )


class AccountResponse(BaseModel):
    """Response schema for an account valued at the current NAV."""

    account_id: str
    name: str
    user_code: str
    units: Decimal
    invested_amount: Decimal = Field(..., description="Cumulative cash contributed")
    current_value: Decimal | None = Field(
        None, description="units * current NAV, null if no NAV published"
    )
    nav: Decimal | None = None


class AccountListItem(BaseModel):
    """Account row for listings."""

    account_id: str
    name: str
    user_code: str
    units: Decimal
    invested_amount: Decimal
    created_at: datetime


# ============================================================================
# Invest / withdraw
# ============================================================================


class InvestRequest(BaseModel):
    """Request schema for investing cash."""

    amount: Decimal = Field(..., gt=0, decimal_places=2, description="Cash to invest")


class WithdrawByAmount(BaseModel):
    """Withdraw a cash amount; units are derived from the NAV."""

    mode: Literal["amount"]
    amount: Decimal = Field(..., gt=0, decimal_places=2, description="Cash to withdraw")


class WithdrawByUnits(BaseModel):
    """Redeem a number of units; the cash amount is derived from the NAV."""

    mode: Literal["units"]
    units: Decimal = Field(..., gt=0, decimal_places=8, description="Units to redeem")


# Tagged on `mode`
WithdrawRequest = WithdrawByAmount | WithdrawByUnits


class TransactionResponse(BaseModel):
    """Response schema for a ledger transaction."""

    id: str
    account_id: str
    type: str
    amount: Decimal
    units: Decimal
    nav_value: Decimal
    status: str
    description: str
    processed_by: str | None = None
    created_at: datetime


class BalanceChangeResponse(BaseModel):
    """Response for invest and withdraw: new balances and the ledger entry."""

    account: AccountResponse
    transaction: TransactionResponse
