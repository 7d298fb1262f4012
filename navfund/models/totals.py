"""
Portfolio totals model - persisted snapshot of fund-wide aggregates.

One row per scope. The row is rewritten from a full scan of its
constituents whenever totals are read, so it never drifts from them.
"""

import enum
from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from navfund.database import Base


class TotalsScope(str, enum.Enum):
    """Which entity set the totals sum over."""

    ACCOUNTS = "accounts"  # All investor accounts
    TRADES = "trades"  # Open trade positions


class PortfolioTotals(Base):
    """Aggregate units and invested capital for a scope."""

    __tablename__ = "portfolio_totals"

    scope: Mapped[str] = mapped_column(String(16), primary_key=True)

    total_units: Mapped[Decimal] = mapped_column(
        Numeric(20, 8), nullable=False, default=Decimal("0")
    )

    total_investment: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), nullable=False, default=Decimal("0.00")
    )

    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    def __repr__(self) -> str:
        return (
            f"PortfolioTotals(scope={self.scope!r}, total_units={self.total_units}, "
            f"total_investment={self.total_investment})"
        )
