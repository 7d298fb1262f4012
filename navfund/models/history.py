"""
Portfolio history model - dated snapshots of the fund's valuation.

One snapshot per calendar date; taking another snapshot on the same date
rewrites it.
"""

import datetime as dt
import enum
from decimal import Decimal

from sqlalchemy import Date, DateTime, Enum, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from navfund.database import Base


class SnapshotSource(enum.Enum):
    """What triggered a snapshot."""

    INVESTMENT = "investment"
    WITHDRAWAL = "withdrawal"
    NAV_UPDATE = "nav_update"
    MANUAL = "manual"
    SYSTEM = "system"


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.UTC).replace(tzinfo=None)


class PortfolioSnapshot(Base):
    """Fund-wide contributions, units and value on a date."""

    __tablename__ = "portfolio_snapshots"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    date: Mapped[dt.date] = mapped_column(Date, nullable=False, unique=True, index=True)

    # Cumulative contributions of all accounts
    invested_amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)

    # All account units valued at nav_value
    current_value: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)

    total_units: Mapped[Decimal] = mapped_column(Numeric(20, 8), nullable=False)

    nav_value: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)

    # current_value - invested_amount
    returns: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)

    # returns over invested_amount, 0 when nothing is invested
    returns_percentage: Mapped[Decimal] = mapped_column(Numeric(9, 2), nullable=False)

    source: Mapped[SnapshotSource] = mapped_column(
        Enum(SnapshotSource), nullable=False, default=SnapshotSource.SYSTEM
    )

    # Operator who took the snapshot
    taken_by: Mapped[str | None] = mapped_column(String, nullable=True)

    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime, nullable=False, default=_utcnow
    )

    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime, nullable=False, default=_utcnow, onupdate=_utcnow
    )

    def __repr__(self) -> str:
        return (
            f"PortfolioSnapshot(date={self.date}, value={self.current_value}, "
            f"invested={self.invested_amount}, nav={self.nav_value})"
        )
