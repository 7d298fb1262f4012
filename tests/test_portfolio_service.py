"""Tests for the portfolio aggregator.

Tests that totals always equal the sum of their constituents.
"""

from datetime import date
from decimal import Decimal

import pytest

from navfund.models import TotalsScope
from navfund.services import accounts as account_service
from navfund.services import portfolio as portfolio_service
from navfund.services import positions as position_service


class TestAccountTotals:
    """Tests for the accounts scope."""

    @pytest.mark.asyncio
    async def test_empty_fund(self, test_session):
        """With no accounts, totals are zero and unvalued."""
        totals = await portfolio_service.get_portfolio_totals(test_session)

        assert totals.scope == TotalsScope.ACCOUNTS
        assert totals.total_units == Decimal("0")
        assert totals.total_investment == Decimal("0")
        assert totals.current_nav is None
        assert totals.total_value is None

    @pytest.mark.asyncio
    async def test_totals_equal_sum_of_accounts(
        self, test_session, sample_nav, sample_account_2
    ):
        """Totals track invests and withdraws across all accounts."""
        await account_service.invest(test_session, "u1", Decimal("1000.00"))
        await account_service.invest(test_session, "u2", Decimal("500.00"))
        await account_service.withdraw(test_session, "u1", units=Decimal("4"))

        totals = await portfolio_service.get_portfolio_totals(test_session)

        assert totals.total_units == Decimal("11")
        assert totals.total_investment == Decimal("1500.00")
        assert totals.current_nav == Decimal("100.0000")
        assert totals.total_value == Decimal("1100.00")

    @pytest.mark.asyncio
    async def test_reads_are_idempotent(self, test_session, sample_nav, sample_account):
        """Reading twice without changes gives identical totals."""
        await account_service.invest(test_session, "u1", Decimal("100.00"))

        first = await portfolio_service.get_portfolio_totals(test_session)
        second = await portfolio_service.get_portfolio_totals(test_session)

        assert second.total_units == first.total_units
        assert second.total_investment == first.total_investment
        assert second.updated_at == first.updated_at

    @pytest.mark.asyncio
    async def test_totals_follow_changes(self, test_session, sample_nav, sample_account):
        """A later read reflects mutations made after the previous read."""
        first = await portfolio_service.get_portfolio_totals(test_session)
        await account_service.invest(test_session, "u1", Decimal("100.00"))

        second = await portfolio_service.get_portfolio_totals(test_session)

        assert first.total_units == Decimal("0")
        assert second.total_units == Decimal("1")
        assert second.updated_at >= first.updated_at


class TestTradeTotals:
    """Tests for the trades scope."""

    @pytest.mark.asyncio
    async def test_open_positions_only(self, test_session, sample_position):
        """Trade totals cover remaining shares of open positions."""
        await position_service.sell_position(
            test_session, sample_position.id, Decimal("60.00"), 40, date(2024, 2, 1)
        )
        closed = await position_service.open_position(
            test_session, "BETA", Decimal("10.00"), 5, date(2024, 1, 3)
        )
        await position_service.sell_position(
            test_session, closed.id, Decimal("12.00"), 5, date(2024, 2, 1)
        )

        totals = await portfolio_service.get_portfolio_totals(test_session, TotalsScope.TRADES)

        assert totals.scope == TotalsScope.TRADES
        assert totals.total_units == Decimal("60")
        assert totals.total_investment == Decimal("3000.00")
        assert totals.realized_return == Decimal("410.00")
        assert totals.total_value is None


class TestFundBalance:
    """Tests for the fund balance breakdown."""

    @pytest.mark.asyncio
    async def test_balance(self, test_session, sample_nav, sample_account, sample_position):
        """Remaining balance is contributions plus realized return minus deployed cost."""
        await account_service.invest(test_session, "u1", Decimal("10000.00"))
        await position_service.sell_position(
            test_session, sample_position.id, Decimal("60.00"), 40, date(2024, 2, 1)
        )

        balance = await portfolio_service.get_fund_balance(test_session)

        assert balance.total_contributions == Decimal("10000.00")
        assert balance.realized_return == Decimal("400.00")
        assert balance.total_investment == Decimal("10400.00")
        assert balance.invested_in_trades == Decimal("3000.00")
        assert balance.remaining_balance == Decimal("7400.00")
