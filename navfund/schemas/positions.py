"""Pydantic schemas for trade position endpoints."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field


class PositionStatus(str, Enum):
    """Position status."""

    ACTIVE = "active"
    PARTIAL = "partial"
    SOLD = "sold"


class PositionCreate(BaseModel):
    """Request schema for opening a position."""

    stock_name: str = Field(..., min_length=1, max_length=100, description="Stock name or symbol")
    purchase_rate: Decimal = Field(..., gt=0, decimal_places=2, description="Price per share")
    units_purchased: int = Field(..., gt=0, description="Whole number of shares bought")
    purchase_date: date


class PositionSell(BaseModel):
    """Request schema for selling from a position."""

    selling_price: Decimal = Field(..., gt=0, decimal_places=2, description="Price per share")
    units: int = Field(..., gt=0, description="Whole number of shares to sell")
    selling_date: date


class SaleResponse(BaseModel):
    """One sell against a position."""

    units: int
    price: Decimal
    sale_date: date

    model_config = {"from_attributes": True}


class PositionResponse(BaseModel):
    """Response schema for a position with derived figures."""

    id: str
    stock_name: str
    purchase_rate: Decimal
    units_purchased: int
    purchase_date: date
    selling_price: Decimal | None = Field(None, description="Price of the latest sell")
    units_sold: int
    selling_date: date | None = Field(None, description="Date of the latest sell")
    status: PositionStatus
    remaining_units: int
    total_investment: Decimal = Field(..., description="units_purchased * purchase_rate")
    remaining_investment: Decimal = Field(..., description="remaining_units * purchase_rate")
    realized_return: Decimal = Field(
        ..., description="units_sold * (latest selling_price - purchase_rate)"
    )
    created_at: datetime
    updated_at: datetime


class PositionDetailResponse(PositionResponse):
    """Position with its sell history."""

    sales: list[SaleResponse] = Field(default_factory=list)


class PositionListResponse(BaseModel):
    """Response for listing positions."""

    positions: list[PositionResponse] = Field(default_factory=list)


class HoldingResponse(BaseModel):
    """All positions in one stock, rolled up."""

    stock_name: str
    positions: int
    units_purchased: int
    units_sold: int
    remaining_units: int
    average_price: Decimal
    total_investment: Decimal
    remaining_investment: Decimal
    realized_return: Decimal
    status: PositionStatus


class HoldingsListResponse(BaseModel):
    """Response for the holdings view."""

    holdings: list[HoldingResponse] = Field(default_factory=list)
