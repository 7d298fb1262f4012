"""Portfolio API endpoints - fund-wide totals and history."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from navfund.auth import get_operator_id
from navfund.database import get_session
from navfund.models import PortfolioSnapshot, SnapshotSource, TotalsScope
from navfund.schemas.portfolio import (
    FundBalanceResponse,
    PortfolioTotalsResponse,
    SnapshotCreate,
    SnapshotListResponse,
    SnapshotResponse,
)
from navfund.services import history as history_service
from navfund.services import portfolio as portfolio_service
from navfund.services.history import MAX_HISTORY_POINTS, HistoryPeriod

router = APIRouter()


@router.get(
    "/portfolio/totals",
    response_model=PortfolioTotalsResponse,
    summary="Get fund totals",
)
async def get_portfolio_totals(
    scope: TotalsScope = Query(TotalsScope.ACCOUNTS, description="accounts or trades"),
    session: AsyncSession = Depends(get_session),
) -> PortfolioTotalsResponse:
    """Get fund-wide totals, recomputed from the current state.

    **Scopes:**
    - **accounts**: units held by all accounts and their cumulative contributions
    - **trades**: shares still held in open positions and their cost
    """
    summary = await portfolio_service.get_portfolio_totals(session, scope)
    return PortfolioTotalsResponse(
        scope=summary.scope.value,
        total_units=summary.total_units,
        total_investment=summary.total_investment,
        current_nav=summary.current_nav,
        total_value=summary.total_value,
        realized_return=summary.realized_return,
        updated_at=summary.updated_at,
    )


@router.get(
    "/portfolio/balance",
    response_model=FundBalanceResponse,
    summary="Get the fund balance",
)
async def get_fund_balance(
    session: AsyncSession = Depends(get_session),
) -> FundBalanceResponse:
    """Split the fund's capital into deployed and available.

    **What the numbers mean:**
    - **total_investment**: contributions plus realized trade return
    - **remaining_balance**: total_investment minus cost of shares still held
    """
    balance = await portfolio_service.get_fund_balance(session)
    return FundBalanceResponse(
        total_contributions=balance.total_contributions,
        realized_return=balance.realized_return,
        total_investment=balance.total_investment,
        invested_in_trades=balance.invested_in_trades,
        remaining_balance=balance.remaining_balance,
    )


def snapshot_to_response(snapshot: PortfolioSnapshot) -> SnapshotResponse:
    """Convert a snapshot model to its API response."""
    return SnapshotResponse(
        date=snapshot.date,
        invested_amount=snapshot.invested_amount,
        current_value=snapshot.current_value,
        total_units=snapshot.total_units,
        nav_value=snapshot.nav_value,
        returns=snapshot.returns,
        returns_percentage=snapshot.returns_percentage,
        source=snapshot.source.value,
        taken_by=snapshot.taken_by,
        description=snapshot.description,
        updated_at=snapshot.updated_at,
    )


@router.post(
    "/portfolio/history",
    response_model=SnapshotResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Take a portfolio snapshot",
)
async def take_snapshot(
    request: SnapshotCreate | None = None,
    operator_id: str | None = Depends(get_operator_id),
    session: AsyncSession = Depends(get_session),
) -> SnapshotResponse:
    """Record the fund's totals at the current NAV.

    One snapshot is kept per date; taking another for the same date
    rewrites it with the latest figures.
    """
    request = request or SnapshotCreate()
    snapshot = await history_service.take_snapshot(
        session,
        snapshot_date=request.date,
        source=SnapshotSource.MANUAL,
        description=request.description,
        taken_by=operator_id,
    )
    return snapshot_to_response(snapshot)


@router.get(
    "/portfolio/history",
    response_model=SnapshotListResponse,
    summary="Get portfolio history",
)
async def get_portfolio_history(
    period: HistoryPeriod = Query(
        HistoryPeriod.ONE_YEAR, description="1M, 3M, 6M, 1Y or ALL"
    ),
    limit: int = Query(100, ge=1, le=MAX_HISTORY_POINTS),
    session: AsyncSession = Depends(get_session),
) -> SnapshotListResponse:
    """Get snapshots over a period ending today, oldest first."""
    snapshots = await history_service.list_snapshots(session, period=period, limit=limit)
    return SnapshotListResponse(
        period=period.value,
        count=len(snapshots),
        snapshots=[snapshot_to_response(s) for s in snapshots],
    )
