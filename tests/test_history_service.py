"""Tests for portfolio history snapshots."""

from datetime import date
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy import func, select

from navfund.exceptions import DependencyUnavailable, ValidationError
from navfund.models import PortfolioSnapshot, SnapshotSource
from navfund.services import accounts as account_service
from navfund.services import history as history_service
from navfund.services import nav as nav_service
from navfund.services.history import HistoryPeriod


@pytest_asyncio.fixture
async def grown_fund(test_session, sample_nav, sample_account):
    """10 units bought at NAV 100, now valued at NAV 110."""
    await account_service.invest(test_session, "u1", Decimal("1000.00"))
    await nav_service.publish_nav(test_session, date(2024, 2, 29), Decimal("110"))


@pytest_asyncio.fixture
async def history(test_session, grown_fund):
    """Snapshots filed on three dates in the first half of 2024."""
    for day in (date(2024, 1, 15), date(2024, 5, 20), date(2024, 6, 10)):
        await history_service.take_snapshot(test_session, day)


# ============================================================================
# Taking snapshots
# ============================================================================


class TestTakeSnapshot:
    """Tests for recording the fund's valuation."""

    @pytest.mark.asyncio
    async def test_snapshot_figures(self, test_session, grown_fund):
        """A snapshot values all units at the current NAV."""
        snapshot = await history_service.take_snapshot(
            test_session, date(2024, 3, 1), taken_by="ops"
        )

        assert snapshot.date == date(2024, 3, 1)
        assert snapshot.invested_amount == Decimal("1000.00")
        assert snapshot.total_units == Decimal("10")
        assert snapshot.nav_value == Decimal("110")
        assert snapshot.current_value == Decimal("1100.00")
        assert snapshot.returns == Decimal("100.00")
        assert snapshot.returns_percentage == Decimal("10.00")
        assert snapshot.source == SnapshotSource.MANUAL
        assert snapshot.taken_by == "ops"
        assert snapshot.description == "Manual snapshot"

    @pytest.mark.asyncio
    async def test_same_date_rewrites(self, test_session, grown_fund):
        """A second snapshot for a date replaces the first."""
        await history_service.take_snapshot(test_session, date(2024, 3, 1))
        await account_service.invest(test_session, "u1", Decimal("110.00"))

        snapshot = await history_service.take_snapshot(
            test_session, date(2024, 3, 1), source=SnapshotSource.INVESTMENT
        )

        assert snapshot.total_units == Decimal("11")
        assert snapshot.invested_amount == Decimal("1110.00")
        assert snapshot.source == SnapshotSource.INVESTMENT
        count = await test_session.execute(select(func.count()).select_from(PortfolioSnapshot))
        assert count.scalar_one() == 1

    @pytest.mark.asyncio
    async def test_nothing_invested(self, test_session, sample_nav, sample_account):
        """With no contributions the return percentage is zero."""
        snapshot = await history_service.take_snapshot(test_session, date(2024, 3, 1))

        assert snapshot.current_value == Decimal("0.00")
        assert snapshot.returns == Decimal("0.00")
        assert snapshot.returns_percentage == Decimal("0.00")

    @pytest.mark.asyncio
    async def test_requires_nav(self, test_session, sample_account):
        """Without a NAV there is nothing to value units at."""
        with pytest.raises(DependencyUnavailable):
            await history_service.take_snapshot(test_session, date(2024, 3, 1))

    @pytest.mark.asyncio
    async def test_future_date_rejected(self, test_session, grown_fund):
        """Snapshots cannot be filed ahead of today."""
        with pytest.raises(ValidationError):
            await history_service.take_snapshot(test_session, date(9999, 1, 1))


# ============================================================================
# Listing
# ============================================================================


class TestListSnapshots:
    """Tests for period-filtered history."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "period, expected",
        [
            (HistoryPeriod.ONE_MONTH, [date(2024, 6, 10)]),
            (HistoryPeriod.THREE_MONTHS, [date(2024, 5, 20), date(2024, 6, 10)]),
            (
                HistoryPeriod.ALL,
                [date(2024, 1, 15), date(2024, 5, 20), date(2024, 6, 10)],
            ),
        ],
    )
    async def test_period_filter(self, test_session, history, period, expected):
        """Periods end today and list oldest first."""
        snapshots = await history_service.list_snapshots(
            test_session, period=period, today=date(2024, 6, 30)
        )

        assert [s.date for s in snapshots] == expected

    @pytest.mark.asyncio
    async def test_excludes_later_dates(self, test_session, history):
        """Snapshots after the end of the period are not listed."""
        snapshots = await history_service.list_snapshots(
            test_session, period=HistoryPeriod.ALL, today=date(2024, 5, 31)
        )

        assert [s.date for s in snapshots] == [date(2024, 1, 15), date(2024, 5, 20)]

    @pytest.mark.asyncio
    async def test_limit(self, test_session, history):
        """Limit keeps the oldest snapshots."""
        snapshots = await history_service.list_snapshots(
            test_session, period=HistoryPeriod.ALL, limit=2, today=date(2024, 6, 30)
        )

        assert len(snapshots) == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("limit", [0, 1001])
    async def test_invalid_limit(self, test_session, limit):
        """Limits outside 1-1000 are rejected."""
        with pytest.raises(ValidationError):
            await history_service.list_snapshots(test_session, limit=limit)

    @pytest.mark.asyncio
    async def test_latest(self, test_session, history):
        """The latest snapshot is the one with the newest date."""
        latest = await history_service.get_latest_snapshot(test_session)

        assert latest.date == date(2024, 6, 10)


class TestPeriodStart:
    """Tests for period date arithmetic."""

    @pytest.mark.parametrize(
        "day, months, expected",
        [
            (date(2024, 3, 31), 1, date(2024, 2, 29)),
            (date(2024, 1, 15), 1, date(2023, 12, 15)),
            (date(2024, 6, 30), 12, date(2023, 6, 30)),
        ],
    )
    def test_months_before(self, day, months, expected):
        """Month arithmetic clamps to the end of shorter months."""
        assert history_service.months_before(day, months) == expected

    def test_all_has_no_start(self):
        """ALL reaches back without limit."""
        assert history_service.period_start(HistoryPeriod.ALL, date(2024, 6, 30)) is None
