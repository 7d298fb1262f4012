"""
NAV record model - the published price per fund unit.

Records are append-only. The current NAV is the value of the newest record,
ordered by date then by insertion (autoincrement id), so a later record for
an already-published date wins.
"""

import datetime as dt
from decimal import Decimal

from sqlalchemy import CheckConstraint, Date, DateTime, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from navfund.database import Base


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.UTC).replace(tzinfo=None)


class NavRecord(Base):
    """A NAV value published for a date."""

    __tablename__ = "nav_records"

    # Autoincrement id doubles as the insertion order
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Valuation date (no time component)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)

    # Price per unit
    value: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)

    # Operator who published the value
    updated_by: Mapped[str | None] = mapped_column(String, nullable=True)

    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime, nullable=False, default=_utcnow
    )

    __table_args__ = (
        CheckConstraint("value > 0", name="check_nav_value_positive"),
    )

    def __repr__(self) -> str:
        return f"NavRecord(id={self.id!r}, date={self.date}, value={self.value})"
