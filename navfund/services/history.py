"""Portfolio history service - dated valuation snapshots of the whole fund.

A snapshot freezes the accounts-scope totals at the current NAV: total
contributions, total units, their value and the return over contributions.
There is at most one snapshot per date; a later snapshot for the same date
replaces its figures.
"""

import calendar
import enum
import logging
from datetime import UTC, date, datetime
from decimal import Decimal

from sqlalchemy import desc, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from navfund.exceptions import DependencyUnavailable, ValidationError
from navfund.models import PortfolioSnapshot, SnapshotSource, TotalsScope
from navfund.precision import quantize_money, quantize_percent
from navfund.services import portfolio as portfolio_service
from navfund.services.concurrency import entity_lock

logger = logging.getLogger(__name__)

MAX_HISTORY_POINTS = 1000


class HistoryPeriod(str, enum.Enum):
    """How far back a history listing reaches."""

    ONE_MONTH = "1M"
    THREE_MONTHS = "3M"
    SIX_MONTHS = "6M"
    ONE_YEAR = "1Y"
    ALL = "ALL"


_PERIOD_MONTHS = {
    HistoryPeriod.ONE_MONTH: 1,
    HistoryPeriod.THREE_MONTHS: 3,
    HistoryPeriod.SIX_MONTHS: 6,
    HistoryPeriod.ONE_YEAR: 12,
}


def _today() -> date:
    return datetime.now(UTC).date()


def months_before(day: date, months: int) -> date:
    """Same day ``months`` earlier, clamped to the end of a shorter month."""
    month_index = day.year * 12 + day.month - 1 - months
    year, month = divmod(month_index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def period_start(period: HistoryPeriod, today: date) -> date | None:
    """First date covered by a period ending today, None for ALL."""
    months = _PERIOD_MONTHS.get(period)
    if months is None:
        return None
    return months_before(today, months)


async def take_snapshot(
    session: AsyncSession,
    snapshot_date: date | None = None,
    source: SnapshotSource = SnapshotSource.MANUAL,
    description: str | None = None,
    taken_by: str | None = None,
) -> PortfolioSnapshot:
    """Record the fund's current valuation for a date.

    Args:
        session: Database session
        snapshot_date: Date the snapshot is filed under, today when omitted
        source: What triggered the snapshot
        description: Free-text note
        taken_by: Operator taking the snapshot

    Returns:
        The created or rewritten snapshot

    Raises:
        ValidationError: If the date is in the future
        DependencyUnavailable: If no NAV has been published
    """
    today = _today()
    snapshot_date = snapshot_date or today
    if snapshot_date > today:
        raise ValidationError(
            "Snapshot date cannot be in the future",
            details={"date": snapshot_date.isoformat()},
        )

    totals = await portfolio_service.get_portfolio_totals(session, TotalsScope.ACCOUNTS)
    if totals.current_nav is None:
        raise DependencyUnavailable("No NAV data available")

    invested = totals.total_investment
    current_value = totals.total_value
    returns = quantize_money(current_value - invested)
    if invested > 0:
        returns_percentage = quantize_percent(returns / invested * 100)
    else:
        returns_percentage = Decimal("0.00")

    figures = {
        "invested_amount": invested,
        "current_value": current_value,
        "total_units": totals.total_units,
        "nav_value": totals.current_nav,
        "returns": returns,
        "returns_percentage": returns_percentage,
        "source": source,
        "taken_by": taken_by,
        "description": description or f"{source.value.replace('_', ' ').capitalize()} snapshot",
    }

    async with entity_lock("snapshot", snapshot_date.isoformat()):
        # Another process may file the same date first; retry as a rewrite
        for attempt in range(2):
            result = await session.execute(
                select(PortfolioSnapshot)
                .where(PortfolioSnapshot.date == snapshot_date)
                .execution_options(populate_existing=True)
            )
            snapshot = result.scalar_one_or_none()
            if snapshot is None:
                snapshot = PortfolioSnapshot(date=snapshot_date, **figures)
                session.add(snapshot)
            else:
                for field, value in figures.items():
                    setattr(snapshot, field, value)

            try:
                await session.commit()
                break
            except IntegrityError:
                await session.rollback()
                if attempt:
                    raise
        await session.refresh(snapshot)

    logger.info(
        "Portfolio snapshot taken",
        extra={
            "snapshot_date": snapshot_date.isoformat(),
            "current_value": float(current_value),
            "invested_amount": float(invested),
            "source": source.value,
            "taken_by": taken_by,
        },
    )
    return snapshot


async def list_snapshots(
    session: AsyncSession,
    period: HistoryPeriod = HistoryPeriod.ONE_YEAR,
    limit: int = 100,
    today: date | None = None,
) -> list[PortfolioSnapshot]:
    """Get snapshots within a period ending today, oldest first.

    Args:
        session: Database session
        period: 1M, 3M, 6M, 1Y or ALL
        limit: Maximum number of snapshots (1-1000)
        today: End of the period, the current UTC date when omitted

    Raises:
        ValidationError: If limit is out of range
    """
    if limit < 1 or limit > MAX_HISTORY_POINTS:
        raise ValidationError("Invalid limit", details={"limit": limit})

    today = today or _today()
    query = select(PortfolioSnapshot).where(PortfolioSnapshot.date <= today)
    start = period_start(period, today)
    if start is not None:
        query = query.where(PortfolioSnapshot.date >= start)

    result = await session.execute(query.order_by(PortfolioSnapshot.date).limit(limit))
    return list(result.scalars().all())


async def get_latest_snapshot(session: AsyncSession) -> PortfolioSnapshot | None:
    """Get the most recent snapshot, or None if none was taken."""
    result = await session.execute(
        select(PortfolioSnapshot).order_by(desc(PortfolioSnapshot.date)).limit(1)
    )
    return result.scalar_one_or_none()
