"""Transaction ledger API endpoints."""

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from navfund.database import get_session
from navfund.models import TransactionType
from navfund.routers.accounts import transaction_to_response
from navfund.schemas.accounts import TransactionResponse
from navfund.schemas.transactions import Pagination, TransactionListResponse
from navfund.services import transactions as transaction_service
from navfund.services.transactions import MAX_PAGE_SIZE, TransactionFilter

router = APIRouter()


@router.get(
    "/transactions",
    response_model=TransactionListResponse,
    summary="Search the transaction ledger",
)
async def list_transactions(
    account_id: str | None = Query(None, description="Filter by account"),
    type: str | None = Query(None, pattern="^(invest|withdraw)$", description="invest or withdraw"),
    start_date: date | None = Query(None, description="Created on or after this date"),
    end_date: date | None = Query(None, description="Created on or before this date"),
    search: str | None = Query(None, description="Match id, account, operator or exact amount"),
    sort_by: str = Query("created_at", description="created_at, amount or units"),
    sort_order: str = Query("desc", description="asc or desc"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=MAX_PAGE_SIZE),
    session: AsyncSession = Depends(get_session),
) -> TransactionListResponse:
    """List transactions with filtering, sorting and pagination."""
    criteria = TransactionFilter(
        account_id=account_id,
        type=TransactionType(type) if type else None,
        start_date=start_date,
        end_date=end_date,
        search=search,
    )
    result = await transaction_service.list_transactions(
        session,
        criteria,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
    )
    return TransactionListResponse(
        transactions=[transaction_to_response(t) for t in result.items],
        pagination=Pagination(
            page=result.page,
            limit=result.limit,
            total_count=result.total_count,
            total_pages=result.total_pages,
            has_next=result.has_next,
            has_prev=result.has_prev,
        ),
    )


@router.get(
    "/transactions/{transaction_id}",
    response_model=TransactionResponse,
    summary="Get a transaction",
)
async def get_transaction(
    transaction_id: str,
    session: AsyncSession = Depends(get_session),
) -> TransactionResponse:
    """Get a single ledger entry."""
    transaction = await transaction_service.get_transaction(session, transaction_id)
    return transaction_to_response(transaction)
