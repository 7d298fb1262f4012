"""
Transaction model - the audit ledger of invest and withdraw actions.

Rows are append-only. ``account_id`` is deliberately not a foreign key so the
history outlives a deleted account. ``nav_value`` is the NAV used at the time,
which keeps the record meaningful after that NAV is deleted.
"""

import enum
from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import DateTime, Enum, Index, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from navfund.database import Base


class TransactionType(enum.Enum):
    """Direction of the cash movement."""

    INVEST = "invest"
    WITHDRAW = "withdraw"


class TransactionStatus(enum.Enum):
    """Processing status."""

    COMPLETED = "completed"
    PENDING = "pending"
    FAILED = "failed"


def _utcnow() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


class Transaction(Base):
    """A completed invest or withdraw."""

    __tablename__ = "transactions"

    id: Mapped[str] = mapped_column(String, primary_key=True)

    account_id: Mapped[str] = mapped_column(String, nullable=False, index=True)

    type: Mapped[TransactionType] = mapped_column(Enum(TransactionType), nullable=False)

    # Cash moved
    amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)

    # Units issued or redeemed
    units: Mapped[Decimal] = mapped_column(Numeric(20, 8), nullable=False)

    # NAV the conversion used
    nav_value: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)

    status: Mapped[TransactionStatus] = mapped_column(
        Enum(TransactionStatus), nullable=False, default=TransactionStatus.COMPLETED
    )

    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Operator who performed the action
    processed_by: Mapped[str | None] = mapped_column(String, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=_utcnow, index=True
    )

    __table_args__ = (
        Index("ix_transactions_account_type_created", "account_id", "type", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"Transaction(id={self.id!r}, {self.type.value} {self.amount} "
            f"({self.units} units @ {self.nav_value}), account={self.account_id!r})"
        )
