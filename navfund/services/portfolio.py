"""Portfolio aggregator - fund-wide totals over accounts and trade positions.

Totals are recomputed from their constituents on every read and the
snapshot row is rewritten in the same transaction, so a read can never
observe totals that disagree with the accounts or positions they sum.
Mutations in the accounting and position services never touch the totals
row, which keeps it out of their critical sections.
"""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from navfund.models import Account, PortfolioTotals, TotalsScope, TradePosition
from navfund.precision import quantize_money
from navfund.services import nav as nav_service
from navfund.services.positions import (
    OPEN_STATUSES,
    realized_return,
    remaining_investment,
)

logger = logging.getLogger(__name__)


@dataclass
class TotalsSummary:
    """Totals for a scope plus their valuation."""

    scope: TotalsScope
    total_units: Decimal
    total_investment: Decimal
    updated_at: datetime
    current_nav: Decimal | None
    realized_return: Decimal | None  # trades scope only

    @property
    def total_value(self) -> Decimal | None:
        """Fund units valued at the current NAV (accounts scope only)."""
        if self.scope != TotalsScope.ACCOUNTS or self.current_nav is None:
            return None
        return quantize_money(self.total_units * self.current_nav)


@dataclass
class FundBalance:
    """Where the fund's capital currently sits."""

    total_contributions: Decimal  # cumulative cash invested by accounts
    realized_return: Decimal  # locked-in trade P/L
    invested_in_trades: Decimal  # cost of shares still held

    @property
    def total_investment(self) -> Decimal:
        """Contributions plus realized trade P/L."""
        return self.total_contributions + self.realized_return

    @property
    def remaining_balance(self) -> Decimal:
        """Capital not deployed in open positions."""
        return self.total_investment - self.invested_in_trades


async def _sum_accounts(session: AsyncSession) -> tuple[Decimal, Decimal]:
    result = await session.execute(select(Account.units, Account.invested_amount))
    total_units = Decimal("0")
    total_investment = Decimal("0.00")
    for units, invested_amount in result.all():
        total_units += units
        total_investment += invested_amount
    return total_units, total_investment


async def _open_positions(session: AsyncSession) -> list[TradePosition]:
    result = await session.execute(
        select(TradePosition).where(TradePosition.status.in_(OPEN_STATUSES))
    )
    return list(result.scalars().all())


async def _sum_open_positions(session: AsyncSession) -> tuple[Decimal, Decimal]:
    positions = await _open_positions(session)
    total_units = Decimal(sum(p.remaining_units for p in positions))
    total_investment = sum((remaining_investment(p) for p in positions), Decimal("0.00"))
    return total_units, total_investment


async def _total_realized_return(session: AsyncSession) -> Decimal:
    result = await session.execute(
        select(TradePosition).where(TradePosition.units_sold > 0)
    )
    return sum((realized_return(p) for p in result.scalars()), Decimal("0.00"))


async def recompute(session: AsyncSession, scope: TotalsScope) -> PortfolioTotals:
    """Recompute totals for a scope by full scan and persist the snapshot.

    Args:
        session: Database session
        scope: accounts (all account units and contributions) or trades
            (remaining shares and their cost over open positions)

    Returns:
        The persisted totals row
    """
    if scope == TotalsScope.ACCOUNTS:
        total_units, total_investment = await _sum_accounts(session)
    else:
        total_units, total_investment = await _sum_open_positions(session)

    # A concurrent first read may insert the row first; retry as an update
    for attempt in range(2):
        totals = await session.get(PortfolioTotals, scope.value, populate_existing=True)
        if totals is None:
            totals = PortfolioTotals(
                scope=scope.value,
                total_units=total_units,
                total_investment=total_investment,
                updated_at=datetime.now(UTC).replace(tzinfo=None),
            )
            session.add(totals)
        elif totals.total_units != total_units or totals.total_investment != total_investment:
            totals.total_units = total_units
            totals.total_investment = total_investment
            totals.updated_at = datetime.now(UTC).replace(tzinfo=None)

        try:
            await session.commit()
            break
        except IntegrityError:
            await session.rollback()
            if attempt:
                raise

    logger.debug(
        "Portfolio totals recomputed",
        extra={
            "scope": scope.value,
            "total_units": float(total_units),
            "total_investment": float(total_investment),
        },
    )
    return totals


async def get_portfolio_totals(
    session: AsyncSession, scope: TotalsScope = TotalsScope.ACCOUNTS
) -> TotalsSummary:
    """Get up-to-date totals for a scope.

    Args:
        session: Database session
        scope: Which entity set to total

    Returns:
        Totals valued at the current NAV (accounts) or with realized trade
        return (trades)
    """
    totals = await recompute(session, scope)
    current_nav = await nav_service.get_current_nav(session)

    realized = None
    if scope == TotalsScope.TRADES:
        realized = await _total_realized_return(session)

    return TotalsSummary(
        scope=scope,
        total_units=totals.total_units,
        total_investment=totals.total_investment,
        updated_at=totals.updated_at,
        current_nav=current_nav,
        realized_return=realized,
    )


async def get_fund_balance(session: AsyncSession) -> FundBalance:
    """Split the fund's capital into deployed and available.

    Returns:
        Contributions, realized trade return and capital in open positions
    """
    _, contributions = await _sum_accounts(session)
    _, invested_in_trades = await _sum_open_positions(session)
    realized = await _total_realized_return(session)

    return FundBalance(
        total_contributions=contributions,
        realized_return=realized,
        invested_in_trades=invested_in_trades,
    )
