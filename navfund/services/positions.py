"""Trade position tracker - stock purchases and their partial liquidation.

Sell pricing follows a single-slot model: each sell overwrites
``selling_price`` and ``selling_date`` with its own values instead of
averaging them, and ``realized_return`` prices every sold unit at the latest
selling price. That is not cost-basis correct when tranches are sold at
different prices. Each tranche is still appended to ``position_sales`` for
audit.
"""

import logging
import uuid
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from navfund import telemetry
from navfund.exceptions import InsufficientUnits, NotFound, ValidationError
from navfund.models import PositionSale, PositionStatus, TradePosition
from navfund.precision import MONEY_QUANTUM
from navfund.services.concurrency import commit_or_conflict, entity_lock

logger = logging.getLogger(__name__)

OPEN_STATUSES = (PositionStatus.ACTIVE, PositionStatus.PARTIAL)


def generate_position_id() -> str:
    """Generate a unique position ID."""
    return str(uuid.uuid4())


# ============================================================================
# Derived figures
# ============================================================================


def derive_status(units_sold: int, units_purchased: int) -> PositionStatus:
    """Status implied by how much of a position has been sold."""
    if units_sold == 0:
        return PositionStatus.ACTIVE
    if units_sold == units_purchased:
        return PositionStatus.SOLD
    return PositionStatus.PARTIAL


def realized_return(position: TradePosition) -> Decimal:
    """Profit or loss locked in by sells, at the latest selling price."""
    if position.units_sold > 0 and position.selling_price is not None:
        return position.units_sold * (position.selling_price - position.purchase_rate)
    return Decimal("0.00")


def total_investment(position: TradePosition) -> Decimal:
    """Original cost of the position, unaffected by sells."""
    return position.units_purchased * position.purchase_rate


def remaining_investment(position: TradePosition) -> Decimal:
    """Cost of the shares still held."""
    return position.remaining_units * position.purchase_rate


# ============================================================================
# Validation helpers
# ============================================================================


def _require_price(field: str, value: Decimal | None) -> Decimal:
    if value is None:
        raise ValidationError(f"{field} is required", details={field: None})
    value = Decimal(str(value)) if isinstance(value, float) else Decimal(value)
    if not value.is_finite() or value <= 0:
        raise ValidationError(f"{field} must be positive", details={field: value})
    if value != value.quantize(MONEY_QUANTUM):
        raise ValidationError(f"{field} has too many decimal places", details={field: value})
    return value


def _require_whole_units(field: str, value: int | None) -> int:
    # bool is an int subclass but never a share count
    if value is None or isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field} must be a whole number", details={field: value})
    if value <= 0:
        raise ValidationError(f"{field} must be positive", details={field: value})
    return value


# ============================================================================
# Queries
# ============================================================================


async def get_position(session: AsyncSession, position_id: str) -> TradePosition:
    """Get a position by ID.

    Raises:
        NotFound: If the position does not exist
    """
    result = await session.execute(
        select(TradePosition)
        .where(TradePosition.id == position_id)
        .execution_options(populate_existing=True)
    )
    position = result.scalar_one_or_none()
    if position is None:
        raise NotFound(
            f"Position '{position_id}' not found", details={"position_id": position_id}
        )
    return position


async def list_positions(
    session: AsyncSession,
    status: PositionStatus | None = None,
    stock_name: str | None = None,
) -> list[TradePosition]:
    """Get positions, newest purchase first.

    Args:
        session: Database session
        status: Filter by status (optional)
        stock_name: Filter by stock name, case-insensitive (optional)
    """
    query = select(TradePosition)
    if status:
        query = query.where(TradePosition.status == status)
    if stock_name:
        query = query.where(TradePosition.stock_name.ilike(stock_name.strip()))

    query = query.order_by(TradePosition.purchase_date.desc(), TradePosition.created_at.desc())
    result = await session.execute(query)
    return list(result.scalars().all())


async def list_sales(session: AsyncSession, position_id: str) -> list[PositionSale]:
    """Get the sell history of a position, oldest first."""
    result = await session.execute(
        select(PositionSale)
        .where(PositionSale.position_id == position_id)
        .order_by(PositionSale.id)
    )
    return list(result.scalars().all())


# ============================================================================
# Mutations
# ============================================================================


async def open_position(
    session: AsyncSession,
    stock_name: str,
    purchase_rate: Decimal,
    units_purchased: int,
    purchase_date: date,
) -> TradePosition:
    """Open a position for a stock purchase.

    Args:
        session: Database session
        stock_name: Name or symbol of the stock
        purchase_rate: Price paid per share
        units_purchased: Whole number of shares bought
        purchase_date: Date of purchase

    Returns:
        The new position, status active

    Raises:
        ValidationError: If any field is missing or not positive
    """
    if not stock_name or not stock_name.strip():
        raise ValidationError("stock_name is required")
    if purchase_date is None:
        raise ValidationError("purchase_date is required")
    purchase_rate = _require_price("purchase_rate", purchase_rate)
    units_purchased = _require_whole_units("units_purchased", units_purchased)

    position = TradePosition(
        id=generate_position_id(),
        stock_name=stock_name.strip(),
        purchase_rate=purchase_rate,
        units_purchased=units_purchased,
        purchase_date=purchase_date,
        selling_price=None,
        units_sold=0,
        selling_date=None,
        status=PositionStatus.ACTIVE,
    )
    session.add(position)
    await session.commit()
    await session.refresh(position)

    telemetry.record_position_opened(position.stock_name)
    logger.info(
        "Position opened",
        extra={
            "position_id": position.id,
            "stock_name": position.stock_name,
            "units": units_purchased,
            "purchase_rate": float(purchase_rate),
        },
    )
    return position


async def sell_position(
    session: AsyncSession,
    position_id: str,
    selling_price: Decimal,
    units_to_sell: int,
    selling_date: date,
) -> TradePosition:
    """Sell some or all remaining shares of a position.

    Args:
        session: Database session
        position_id: Position to sell from
        selling_price: Price received per share
        units_to_sell: Whole number of shares to sell
        selling_date: Date of the sell

    Returns:
        The updated position

    Raises:
        ValidationError: If any field is missing or not positive
        InsufficientUnits: If more shares are requested than remain
        NotFound: If the position does not exist
        ConflictError: If the position was modified concurrently
    """
    if selling_date is None:
        raise ValidationError("selling_date is required")
    selling_price = _require_price("selling_price", selling_price)
    units_to_sell = _require_whole_units("units_to_sell", units_to_sell)

    async with entity_lock("position", position_id):
        try:
            position = await get_position(session, position_id)

            remaining = position.remaining_units
            if units_to_sell > remaining:
                raise InsufficientUnits(
                    "Cannot sell more units than remain in the position",
                    requested=units_to_sell,
                    available=remaining,
                    position_id=position_id,
                )

            position.units_sold = position.units_sold + units_to_sell
            position.selling_price = selling_price
            position.selling_date = selling_date
            position.status = derive_status(position.units_sold, position.units_purchased)

            session.add(
                PositionSale(
                    position_id=position.id,
                    units=units_to_sell,
                    price=selling_price,
                    sale_date=selling_date,
                )
            )
            await commit_or_conflict(session, "position", position_id)
        except Exception:
            await session.rollback()
            raise

    await session.refresh(position)

    telemetry.record_position_sale(position.stock_name, units_to_sell)
    logger.info(
        "Position sold",
        extra={
            "position_id": position.id,
            "stock_name": position.stock_name,
            "units": units_to_sell,
            "selling_price": float(selling_price),
            "units_remaining": position.remaining_units,
            "status": position.status.value,
        },
    )
    return position


# ============================================================================
# Holdings view
# ============================================================================


@dataclass
class StockHolding:
    """All positions in one stock, rolled up."""

    stock_name: str
    positions: int
    units_purchased: int
    units_sold: int
    total_investment: Decimal
    remaining_investment: Decimal
    realized_return: Decimal

    @property
    def remaining_units(self) -> int:
        return self.units_purchased - self.units_sold

    @property
    def average_price(self) -> Decimal:
        """Average purchase price per share."""
        return (self.total_investment / self.units_purchased).quantize(MONEY_QUANTUM)

    @property
    def status(self) -> PositionStatus:
        return derive_status(self.units_sold, self.units_purchased)


async def get_holdings(session: AsyncSession) -> list[StockHolding]:
    """Group every position by stock name.

    Returns:
        One holding per stock, ordered by stock name
    """
    result = await session.execute(select(TradePosition).order_by(TradePosition.stock_name))

    grouped: dict[str, list[TradePosition]] = defaultdict(list)
    for position in result.scalars():
        grouped[position.stock_name].append(position)

    holdings = []
    for stock_name, positions in grouped.items():
        holdings.append(
            StockHolding(
                stock_name=stock_name,
                positions=len(positions),
                units_purchased=sum(p.units_purchased for p in positions),
                units_sold=sum(p.units_sold for p in positions),
                total_investment=sum((total_investment(p) for p in positions), Decimal("0.00")),
                remaining_investment=sum(
                    (remaining_investment(p) for p in positions), Decimal("0.00")
                ),
                realized_return=sum((realized_return(p) for p in positions), Decimal("0.00")),
            )
        )
    return holdings
