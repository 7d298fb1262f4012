"""Pydantic schemas for NAV endpoints."""

import datetime as dt
from decimal import Decimal

from pydantic import BaseModel, Field


class NavCreate(BaseModel):
    """Request schema for publishing a NAV."""

    date: dt.date = Field(..., description="Valuation date")
    value: Decimal = Field(..., gt=0, decimal_places=4, description="Price per unit")


class NavResponse(BaseModel):
    """Response schema for a NAV record."""

    id: int
    date: dt.date
    value: Decimal
    updated_by: str | None = None
    created_at: dt.datetime

    model_config = {"from_attributes": True}


class NavListResponse(BaseModel):
    """Response for the NAV history, newest first."""

    navs: list[NavResponse] = Field(default_factory=list)


class CurrentNavResponse(BaseModel):
    """Response for the current NAV."""

    value: Decimal | None = Field(None, description="Current NAV, null if none published")
    date: dt.date | None = None
