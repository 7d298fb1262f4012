"""Transaction ledger service - append and query invest/withdraw records."""

import math
import uuid
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal, InvalidOperation

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from navfund.exceptions import NotFound, ValidationError
from navfund.models import Transaction, TransactionStatus, TransactionType

SORTABLE_FIELDS = {
    "created_at": Transaction.created_at,
    "amount": Transaction.amount,
    "units": Transaction.units,
}

MAX_PAGE_SIZE = 100


def generate_transaction_id() -> str:
    """Generate a unique transaction ID."""
    return str(uuid.uuid4())


@dataclass
class TransactionFilter:
    """Optional criteria for listing transactions."""

    account_id: str | None = None
    type: TransactionType | None = None
    start_date: date | None = None
    end_date: date | None = None  # Inclusive of the whole day
    search: str | None = None


@dataclass
class TransactionPage:
    """A page of transactions plus pagination info."""

    items: list[Transaction]
    total_count: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_count / self.limit) if self.total_count else 0

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev(self) -> bool:
        return self.page > 1


def record_transaction(
    session: AsyncSession,
    *,
    account_id: str,
    type: TransactionType,
    amount: Decimal,
    units: Decimal,
    nav_value: Decimal,
    processed_by: str | None = None,
    description: str = "",
) -> Transaction:
    """Add a completed transaction to the caller's unit of work.

    Does not commit: the caller commits it together with the balance change
    it describes.
    """
    transaction = Transaction(
        id=generate_transaction_id(),
        account_id=account_id,
        type=type,
        amount=amount,
        units=units,
        nav_value=nav_value,
        status=TransactionStatus.COMPLETED,
        description=description,
        processed_by=processed_by,
    )
    session.add(transaction)
    return transaction


def _filter_clauses(criteria: TransactionFilter) -> list:
    clauses = []
    if criteria.account_id:
        clauses.append(Transaction.account_id == criteria.account_id)
    if criteria.type:
        clauses.append(Transaction.type == criteria.type)
    if criteria.start_date:
        clauses.append(Transaction.created_at >= datetime.combine(criteria.start_date, time.min))
    if criteria.end_date:
        next_day = datetime.combine(criteria.end_date + timedelta(days=1), time.min)
        clauses.append(Transaction.created_at < next_day)
    if criteria.search:
        pattern = f"%{criteria.search}%"
        matches = [
            Transaction.id.ilike(pattern),
            Transaction.account_id.ilike(pattern),
            Transaction.processed_by.ilike(pattern),
        ]
        # A numeric search term also matches the exact amount
        try:
            amount = Decimal(criteria.search)
        except InvalidOperation:
            amount = None
        if amount is not None and amount.is_finite():
            matches.append(Transaction.amount == amount)
        clauses.append(or_(*matches))
    return clauses


async def list_transactions(
    session: AsyncSession,
    criteria: TransactionFilter | None = None,
    sort_by: str = "created_at",
    sort_order: str = "desc",
    page: int = 1,
    limit: int = 10,
) -> TransactionPage:
    """List transactions with filtering, sorting and pagination.

    Args:
        session: Database session
        criteria: Filter criteria (optional)
        sort_by: One of created_at, amount, units
        sort_order: asc or desc
        page: 1-based page number
        limit: Page size (at most MAX_PAGE_SIZE)

    Returns:
        The requested page and the total number of matching rows

    Raises:
        ValidationError: If sorting or paging arguments are invalid
    """
    if sort_by not in SORTABLE_FIELDS:
        raise ValidationError(
            f"Cannot sort by '{sort_by}'",
            details={"sort_by": sort_by, "allowed": ", ".join(SORTABLE_FIELDS)},
        )
    if sort_order not in ("asc", "desc"):
        raise ValidationError("sort_order must be 'asc' or 'desc'", details={"sort_order": sort_order})
    if page < 1 or limit < 1 or limit > MAX_PAGE_SIZE:
        raise ValidationError(
            "Invalid pagination", details={"page": page, "limit": limit}
        )

    clauses = _filter_clauses(criteria or TransactionFilter())
    where = and_(*clauses) if clauses else None

    count_query = select(func.count()).select_from(Transaction)
    query = select(Transaction)
    if where is not None:
        count_query = count_query.where(where)
        query = query.where(where)

    column = SORTABLE_FIELDS[sort_by]
    ordering = column.asc() if sort_order == "asc" else column.desc()
    # Tie-break on the primary key so pages are stable
    tie_break = Transaction.id.asc() if sort_order == "asc" else Transaction.id.desc()
    query = query.order_by(ordering, tie_break).offset((page - 1) * limit).limit(limit)

    total_count = (await session.execute(count_query)).scalar_one()
    result = await session.execute(query)

    return TransactionPage(
        items=list(result.scalars().all()),
        total_count=total_count,
        page=page,
        limit=limit,
    )


async def get_transaction(session: AsyncSession, transaction_id: str) -> Transaction:
    """Get a single transaction.

    Raises:
        NotFound: If the transaction does not exist
    """
    transaction = await session.get(Transaction, transaction_id)
    if transaction is None:
        raise NotFound(
            f"Transaction '{transaction_id}' not found",
            details={"transaction_id": transaction_id},
        )
    return transaction
