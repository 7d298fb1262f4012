"""NAV API endpoints."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from navfund.auth import get_operator_id
from navfund.database import get_session
from navfund.schemas.nav import CurrentNavResponse, NavCreate, NavListResponse, NavResponse
from navfund.services import nav as nav_service

router = APIRouter()


@router.post(
    "/nav",
    response_model=NavResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Publish a NAV",
)
async def publish_nav(
    request: NavCreate,
    operator_id: str | None = Depends(get_operator_id),
    session: AsyncSession = Depends(get_session),
) -> NavResponse:
    """Publish the net asset value per unit for a date.

    The most recently dated NAV is used for every subsequent invest and
    withdraw. Publishing a second value for the same date supersedes the
    first.
    """
    record = await nav_service.publish_nav(
        session, request.date, request.value, updated_by=operator_id
    )
    return NavResponse.model_validate(record)


@router.get(
    "/nav",
    response_model=NavListResponse,
    summary="List NAV history",
)
async def list_navs(
    session: AsyncSession = Depends(get_session),
) -> NavListResponse:
    """Get every published NAV, newest first."""
    records = await nav_service.list_navs(session)
    return NavListResponse(navs=[NavResponse.model_validate(r) for r in records])


@router.get(
    "/nav/current",
    response_model=CurrentNavResponse,
    summary="Get the current NAV",
)
async def get_current_nav(
    session: AsyncSession = Depends(get_session),
) -> CurrentNavResponse:
    """Get the NAV that conversions currently use.

    Both fields are null when no NAV has been published.
    """
    record = await nav_service.get_latest_nav(session)
    if record is None:
        return CurrentNavResponse()
    return CurrentNavResponse(value=record.value, date=record.date)


@router.delete(
    "/nav/{nav_id}",
    response_model=NavResponse,
    summary="Delete a NAV record",
)
async def delete_nav(
    nav_id: int,
    session: AsyncSession = Depends(get_session),
) -> NavResponse:
    """Delete a NAV record.

    Transactions that used this NAV keep their recorded ``nav_value``.
    """
    record = await nav_service.delete_nav(session, nav_id)
    return NavResponse.model_validate(record)
