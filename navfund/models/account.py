"""
Account model - an investor's holding of fund units.

Only the unit accounting service mutates ``units`` and ``invested_amount``.
``invested_amount`` is the cumulative cash contributed; withdrawals do not
reduce it. Current value is never stored, it is ``units * current NAV``.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, DateTime, Integer, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column

from navfund.database import Base


class Account(Base):
    """An investor account in the fund."""

    __tablename__ = "accounts"

    # Primary key: unique account identifier
    id: Mapped[str] = mapped_column(String, primary_key=True)

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    # Short human-facing code, three letters then three digits (ABC123)
    user_code: Mapped[str] = mapped_column(String(6), nullable=False, unique=True)

    # Cumulative contributions
    invested_amount: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), nullable=False, default=Decimal("0.00")
    )

    # Fund units held
    units: Mapped[Decimal] = mapped_column(
        Numeric(20, 8), nullable=False, default=Decimal("0")
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )

    # Optimistic concurrency counter, bumped on every UPDATE
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        CheckConstraint("units >= 0", name="check_units_non_negative"),
        CheckConstraint("invested_amount >= 0", name="check_invested_non_negative"),
    )

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return (
            f"Account(id={self.id!r}, units={self.units}, "
            f"invested_amount={self.invested_amount})"
        )
