"""NAV ledger service - publish, read and delete NAV records."""

import logging
from datetime import date
from decimal import Decimal

from sqlalchemy import desc, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from navfund import telemetry
from navfund.exceptions import DependencyUnavailable, NotFound, ValidationError
from navfund.models import NavRecord
from navfund.precision import NAV_QUANTUM

logger = logging.getLogger(__name__)


async def publish_nav(
    session: AsyncSession,
    nav_date: date,
    value: Decimal,
    updated_by: str | None = None,
) -> NavRecord:
    """Append a NAV record.

    Same-date records are not overwritten; the newest insertion becomes the
    current NAV.

    Args:
        session: Database session
        nav_date: Valuation date
        value: Price per unit, must be positive
        updated_by: Operator publishing the value

    Returns:
        The created record

    Raises:
        ValidationError: If value is not positive or has more than four
            decimal places
    """
    if nav_date is None:
        raise ValidationError("NAV date is required")
    if value is None:
        raise ValidationError("NAV value is required", details={"value": None})
    value = Decimal(str(value)) if isinstance(value, float) else Decimal(value)
    if not value.is_finite() or value <= 0:
        raise ValidationError("NAV value must be positive", details={"value": value})
    if value != value.quantize(NAV_QUANTUM):
        raise ValidationError(
            "NAV value has too many decimal places",
            details={"value": value, "quantum": NAV_QUANTUM},
        )

    record = NavRecord(date=nav_date, value=value, updated_by=updated_by)
    session.add(record)
    try:
        await session.commit()
    except IntegrityError as e:
        await session.rollback()
        raise ValidationError(
            "NAV record rejected by the ledger", details={"value": value}
        ) from e
    await session.refresh(record)

    telemetry.record_nav_published()
    logger.info(
        "NAV published",
        extra={
            "nav_id": record.id,
            "nav_date": record.date.isoformat(),
            "value": float(record.value),
            "updated_by": updated_by,
        },
    )
    return record


async def get_latest_nav(session: AsyncSession) -> NavRecord | None:
    """Get the most recent NAV record, or None if the ledger is empty."""
    result = await session.execute(
        select(NavRecord).order_by(desc(NavRecord.date), desc(NavRecord.id)).limit(1)
    )
    return result.scalar_one_or_none()


async def get_current_nav(
    session: AsyncSession, default: Decimal | None = None
) -> Decimal | None:
    """Get the current NAV value.

    Args:
        session: Database session
        default: Returned when no NAV has been published

    Returns:
        Value of the most recent record, or ``default``
    """
    latest = await get_latest_nav(session)
    if latest is None:
        return default
    return latest.value


async def require_current_nav(session: AsyncSession) -> Decimal:
    """Get the current NAV value for a conversion.

    Raises:
        DependencyUnavailable: If no NAV has been published
    """
    nav = await get_current_nav(session)
    if nav is None:
        raise DependencyUnavailable("No NAV data available")
    return nav


async def list_navs(session: AsyncSession) -> list[NavRecord]:
    """Get the NAV history, newest first."""
    result = await session.execute(
        select(NavRecord).order_by(desc(NavRecord.date), desc(NavRecord.id))
    )
    return list(result.scalars().all())


async def delete_nav(session: AsyncSession, nav_id: int) -> NavRecord:
    """Delete a NAV record.

    Past transactions keep the NAV value they were processed at, so there
    is no referential check.

    Raises:
        NotFound: If the record does not exist
    """
    record = await session.get(NavRecord, nav_id)
    if record is None:
        raise NotFound(f"NAV '{nav_id}' not found", details={"nav_id": nav_id})

    await session.delete(record)
    await session.commit()

    logger.info(
        "NAV deleted",
        extra={"nav_id": nav_id, "nav_date": record.date.isoformat()},
    )
    return record
