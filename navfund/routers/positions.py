"""Trade position API endpoints."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from navfund.database import get_session
from navfund.models import PositionStatus as ModelPositionStatus
from navfund.models import TradePosition
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
from navfund.services import positions as position_service

router = APIRouter()


def position_to_response(position: TradePosition) -> PositionResponse:
    """Convert a position to its API response with derived figures."""
    return PositionResponse(
        id=position.id,
        stock_name=position.stock_name,
        purchase_rate=position.purchase_rate,
        units_purchased=position.units_purchased,
        purchase_date=position.purchase_date,
        selling_price=position.selling_price,
        units_sold=position.units_sold,
        selling_date=position.selling_date,
        status=PositionStatus(position.status.value),
        remaining_units=position.remaining_units,
        total_investment=position_service.total_investment(position),
        remaining_investment=position_service.remaining_investment(position),
        realized_return=position_service.realized_return(position),
        created_at=position.created_at,
        updated_at=position.updated_at,
    )


@router.post(
    "/positions",
    response_model=PositionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Open a position",
)
async def open_position(
    request: PositionCreate,
    session: AsyncSession = Depends(get_session),
) -> PositionResponse:
    """Record a stock purchase made by the fund."""
    position = await position_service.open_position(
        session,
        request.stock_name,
        request.purchase_rate,
        request.units_purchased,
        request.purchase_date,
    )
    return position_to_response(position)


@router.get(
    "/positions",
    response_model=PositionListResponse,
    summary="List positions",
)
async def list_positions(
    status: PositionStatus | None = Query(None, description="Filter by status"),
    stock_name: str | None = Query(None, description="Filter by stock name"),
    session: AsyncSession = Depends(get_session),
) -> PositionListResponse:
    """Get positions, newest purchase first."""
    positions = await position_service.list_positions(
        session,
        status=ModelPositionStatus(status.value) if status else None,
        stock_name=stock_name,
    )
    return PositionListResponse(positions=[position_to_response(p) for p in positions])


@router.get(
    "/positions/holdings",
    response_model=HoldingsListResponse,
    summary="Holdings grouped by stock",
)
async def get_holdings(
    session: AsyncSession = Depends(get_session),
) -> HoldingsListResponse:
    """Get every stock the fund has traded, with its positions rolled up.

    **What the numbers mean:**
    - **average_price**: total_investment / units_purchased
    - **remaining_investment**: cost of the shares still held
    - **realized_return**: sum of each position's realized return
    """
    holdings = await position_service.get_holdings(session)
    return HoldingsListResponse(
        holdings=[
            HoldingResponse(
                stock_name=h.stock_name,
                positions=h.positions,
                units_purchased=h.units_purchased,
                units_sold=h.units_sold,
                remaining_units=h.remaining_units,
                average_price=h.average_price,
                total_investment=h.total_investment,
                remaining_investment=h.remaining_investment,
                realized_return=h.realized_return,
                status=PositionStatus(h.status.value),
            )
            for h in holdings
        ]
    )


@router.get(
    "/positions/{position_id}",
    response_model=PositionDetailResponse,
    summary="Get a position",
)
async def get_position(
    position_id: str,
    session: AsyncSession = Depends(get_session),
) -> PositionDetailResponse:
    """Get a position and its sell history."""
    position = await position_service.get_position(session, position_id)
    sales = await position_service.list_sales(session, position_id)
    return PositionDetailResponse(
        **position_to_response(position).model_dump(),
        sales=[SaleResponse.model_validate(s) for s in sales],
    )


@router.post(
    "/positions/{position_id}/sell",
    response_model=PositionResponse,
    summary="Sell from a position",
)
async def sell_position(
    position_id: str,
    request: PositionSell,
    session: AsyncSession = Depends(get_session),
) -> PositionResponse:
    """Sell some or all remaining shares.

    ``selling_price`` and ``selling_date`` are overwritten by every sell, so
    ``realized_return`` always uses the latest price for all units sold.
    Selling more than ``remaining_units`` is rejected with
    ``INSUFFICIENT_UNITS``.
    """
    position = await position_service.sell_position(
        session,
        position_id,
        request.selling_price,
        request.units,
        request.selling_date,
    )
    return position_to_response(position)
