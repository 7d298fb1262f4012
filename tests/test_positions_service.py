"""Tests for the trade position tracker.

Tests opening, selling, derived figures and the holdings view.
"""

from datetime import date
from decimal import Decimal

import pytest

from navfund.exceptions import InsufficientUnits, NotFound, ValidationError
from navfund.models import PositionStatus
from navfund.services import positions as position_service


class TestOpenPosition:
    """Tests for opening positions."""

    @pytest.mark.asyncio
    async def test_open_position(self, test_session):
        """A new position is active with nothing sold."""
        position = await position_service.open_position(
            test_session, " ACME ", Decimal("50.00"), 100, date(2024, 1, 2)
        )

        assert position.stock_name == "ACME"
        assert position.status == PositionStatus.ACTIVE
        assert position.units_sold == 0
        assert position.remaining_units == 100
        assert position.selling_price is None
        assert position_service.total_investment(position) == Decimal("5000.00")
        assert position_service.realized_return(position) == Decimal("0.00")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "rate,units",
        [
            (Decimal("0"), 10),
            (Decimal("-1.00"), 10),
            (Decimal("10.001"), 10),
            (Decimal("10.00"), 0),
            (Decimal("10.00"), 2.5),
            (Decimal("10.00"), True),
        ],
    )
    async def test_invalid_fields(self, test_session, rate, units):
        """Rate must be a positive price and units a positive whole number."""
        with pytest.raises(ValidationError):
            await position_service.open_position(
                test_session, "ACME", rate, units, date(2024, 1, 2)
            )

    @pytest.mark.asyncio
    async def test_missing_stock_name(self, test_session):
        """A blank stock name is rejected."""
        with pytest.raises(ValidationError):
            await position_service.open_position(
                test_session, " ", Decimal("10.00"), 1, date(2024, 1, 2)
            )


class TestSellPosition:
    """Tests for selling from positions."""

    @pytest.mark.asyncio
    async def test_partial_sell(self, test_session, sample_position):
        """Selling 40 of 100 at 60 leaves 60 and realizes 400."""
        position = await position_service.sell_position(
            test_session, sample_position.id, Decimal("60.00"), 40, date(2024, 2, 1)
        )

        assert position.status == PositionStatus.PARTIAL
        assert position.units_sold == 40
        assert position.remaining_units == 60
        assert position.selling_price == Decimal("60.00")
        assert position.selling_date == date(2024, 2, 1)
        assert position_service.realized_return(position) == Decimal("400.00")
        assert position_service.remaining_investment(position) == Decimal("3000.00")

    @pytest.mark.asyncio
    async def test_oversell_rejected(self, test_session, sample_position):
        """Selling 70 when 60 remain is rejected and changes nothing."""
        await position_service.sell_position(
            test_session, sample_position.id, Decimal("60.00"), 40, date(2024, 2, 1)
        )

        with pytest.raises(InsufficientUnits) as exc_info:
            await position_service.sell_position(
                test_session, sample_position.id, Decimal("60.00"), 70, date(2024, 2, 2)
            )

        assert exc_info.value.details["requested"] == 70
        assert exc_info.value.details["available"] == 60
        position = await position_service.get_position(test_session, sample_position.id)
        assert position.units_sold == 40
        assert position.status == PositionStatus.PARTIAL
        assert position.selling_date == date(2024, 2, 1)
        assert len(await position_service.list_sales(test_session, sample_position.id)) == 1

    @pytest.mark.asyncio
    async def test_full_sell(self, test_session, sample_position):
        """Selling every remaining share marks the position sold."""
        position = await position_service.sell_position(
            test_session, sample_position.id, Decimal("45.00"), 100, date(2024, 2, 1)
        )

        assert position.status == PositionStatus.SOLD
        assert position.remaining_units == 0
        assert position_service.realized_return(position) == Decimal("-500.00")

        with pytest.raises(InsufficientUnits):
            await position_service.sell_position(
                test_session, sample_position.id, Decimal("45.00"), 1, date(2024, 2, 2)
            )

    @pytest.mark.asyncio
    async def test_latest_sell_price_applies_to_all_sold_units(
        self, test_session, sample_position
    ):
        """Each sell overwrites the selling price used for realized return."""
        await position_service.sell_position(
            test_session, sample_position.id, Decimal("60.00"), 40, date(2024, 2, 1)
        )
        position = await position_service.sell_position(
            test_session, sample_position.id, Decimal("70.00"), 60, date(2024, 3, 1)
        )

        assert position.selling_price == Decimal("70.00")
        assert position.selling_date == date(2024, 3, 1)
        assert position_service.realized_return(position) == Decimal("2000.00")

        sales = await position_service.list_sales(test_session, sample_position.id)
        assert [(s.units, s.price) for s in sales] == [
            (40, Decimal("60.00")),
            (60, Decimal("70.00")),
        ]

    @pytest.mark.asyncio
    async def test_sell_unknown_position(self, test_session):
        """Selling from a missing position raises NotFound."""
        with pytest.raises(NotFound):
            await position_service.sell_position(
                test_session, "missing", Decimal("10.00"), 1, date(2024, 2, 1)
            )

    @pytest.mark.asyncio
    async def test_invalid_sell_units(self, test_session, sample_position):
        """Units to sell must be a positive whole number."""
        with pytest.raises(ValidationError):
            await position_service.sell_position(
                test_session, sample_position.id, Decimal("10.00"), 0, date(2024, 2, 1)
            )


class TestListPositions:
    """Tests for position queries."""

    @pytest.mark.asyncio
    async def test_filter_by_status(self, test_session, sample_position):
        """Positions can be filtered by status."""
        other = await position_service.open_position(
            test_session, "BETA", Decimal("10.00"), 5, date(2024, 1, 3)
        )
        await position_service.sell_position(
            test_session, other.id, Decimal("11.00"), 5, date(2024, 2, 1)
        )

        active = await position_service.list_positions(
            test_session, status=PositionStatus.ACTIVE
        )
        sold = await position_service.list_positions(test_session, status=PositionStatus.SOLD)

        assert [p.id for p in active] == [sample_position.id]
        assert [p.id for p in sold] == [other.id]

    @pytest.mark.asyncio
    async def test_newest_purchase_first(self, test_session, sample_position):
        """Listing is ordered by purchase date descending."""
        newer = await position_service.open_position(
            test_session, "BETA", Decimal("10.00"), 5, date(2024, 3, 1)
        )

        positions = await position_service.list_positions(test_session)

        assert [p.id for p in positions] == [newer.id, sample_position.id]

    @pytest.mark.asyncio
    async def test_filter_by_stock_name(self, test_session, sample_position):
        """Stock name filtering ignores case."""
        positions = await position_service.list_positions(test_session, stock_name="acme")

        assert [p.id for p in positions] == [sample_position.id]


class TestHoldings:
    """Tests for the holdings view."""

    @pytest.mark.asyncio
    async def test_group_by_stock(self, test_session, sample_position):
        """Positions in the same stock roll up into one holding."""
        second = await position_service.open_position(
            test_session, "ACME", Decimal("60.00"), 50, date(2024, 1, 10)
        )
        await position_service.sell_position(
            test_session, second.id, Decimal("70.00"), 10, date(2024, 2, 1)
        )
        await position_service.open_position(
            test_session, "BETA", Decimal("10.00"), 5, date(2024, 1, 3)
        )

        holdings = await position_service.get_holdings(test_session)

        assert [h.stock_name for h in holdings] == ["ACME", "BETA"]
        acme = holdings[0]
        assert acme.positions == 2
        assert acme.units_purchased == 150
        assert acme.units_sold == 10
        assert acme.remaining_units == 140
        assert acme.total_investment == Decimal("8000.00")
        assert acme.average_price == Decimal("53.33")
        assert acme.remaining_investment == Decimal("7400.00")
        assert acme.realized_return == Decimal("100.00")
        assert acme.status == PositionStatus.PARTIAL
        assert holdings[1].status == PositionStatus.ACTIVE
