"""Pydantic schemas for the transaction ledger endpoints."""

from pydantic import BaseModel, Field

from navfund.schemas.accounts import TransactionResponse


class Pagination(BaseModel):
    """Pagination info for a listing."""

    page: int
    limit: int
    total_count: int
    total_pages: int
    has_next: bool
    has_prev: bool


class TransactionListResponse(BaseModel):
    """A page of transactions."""

    transactions: list[TransactionResponse] = Field(default_factory=list)
    pagination: Pagination
