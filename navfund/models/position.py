"""
Trade position model - a direct stock holding of the fund.

A position is opened on purchase and never deleted. Sells mutate
``units_sold`` in place; ``selling_price`` and ``selling_date`` hold the
values of the most recent sell only. Each sell is also appended to
``position_sales`` for audit.
"""

import enum
from datetime import UTC, date, datetime
from decimal import Decimal

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from navfund.database import Base


class PositionStatus(enum.Enum):
    """Position lifecycle status."""

    ACTIVE = "active"  # Nothing sold yet
    PARTIAL = "partial"  # Some units sold, some remaining
    SOLD = "sold"  # Every purchased unit sold


def _utcnow() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


class TradePosition(Base):
    """A stock purchase and its (partial) liquidation."""

    __tablename__ = "trade_positions"

    id: Mapped[str] = mapped_column(String, primary_key=True)

    stock_name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)

    # Price paid per share
    purchase_rate: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    units_purchased: Mapped[int] = mapped_column(BigInteger, nullable=False)

    purchase_date: Mapped[date] = mapped_column(Date, nullable=False)

    # Price of the latest sell (NULL until the first sell)
    selling_price: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)

    units_sold: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    selling_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    status: Mapped[PositionStatus] = mapped_column(
        Enum(PositionStatus), nullable=False, default=PositionStatus.ACTIVE
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=_utcnow, onupdate=_utcnow
    )

    # Optimistic concurrency counter, bumped on every UPDATE
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    sales: Mapped[list["PositionSale"]] = relationship(
        back_populates="position", order_by="PositionSale.id"
    )

    __table_args__ = (
        CheckConstraint("purchase_rate > 0", name="check_purchase_rate_positive"),
        CheckConstraint("units_purchased > 0", name="check_units_purchased_positive"),
        CheckConstraint("units_sold >= 0", name="check_units_sold_non_negative"),
        CheckConstraint(
            "units_sold <= units_purchased", name="check_units_sold_not_exceed_purchased"
        ),
    )

    __mapper_args__ = {"version_id_col": version}

    @property
    def remaining_units(self) -> int:
        """Shares still held."""
        return self.units_purchased - self.units_sold

    def __repr__(self) -> str:
        return (
            f"TradePosition(id={self.id!r}, {self.stock_name} "
            f"{self.units_sold}/{self.units_purchased} sold, status={self.status.value})"
        )


class PositionSale(Base):
    """One sell against a position, kept for audit."""

    __tablename__ = "position_sales"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    position_id: Mapped[str] = mapped_column(
        String, ForeignKey("trade_positions.id"), nullable=False, index=True
    )

    units: Mapped[int] = mapped_column(BigInteger, nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    sale_date: Mapped[date] = mapped_column(Date, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)

    position: Mapped["TradePosition"] = relationship(back_populates="sales")

    __table_args__ = (
        CheckConstraint("units > 0", name="check_sale_units_positive"),
        CheckConstraint("price > 0", name="check_sale_price_positive"),
    )

    def __repr__(self) -> str:
        return f"PositionSale(position={self.position_id!r}, {self.units} @ {self.price})"
