"""Tests for the transaction ledger queries."""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy import update

from navfund.exceptions import NotFound, ValidationError
from navfund.models import Transaction, TransactionType
from navfund.services import accounts as account_service
from navfund.services import transactions as transaction_service
from navfund.services.transactions import TransactionFilter


# ============================================================================
# Fixtures
# ============================================================================


@pytest_asyncio.fixture
async def ledger(test_session, sample_nav, sample_account_2):
    """Three invests and one withdraw across two accounts."""
    await account_service.invest(test_session, "u1", Decimal("100.00"), processed_by="alice")
    await account_service.invest(test_session, "u1", Decimal("300.00"), processed_by="alice")
    await account_service.invest(test_session, "u2", Decimal("200.00"), processed_by="bob")
    await account_service.withdraw(
        test_session, "u1", amount=Decimal("50.00"), processed_by="alice"
    )


# ============================================================================
# Listing
# ============================================================================


class TestListTransactions:
    """Tests for filtering, sorting and pagination."""

    @pytest.mark.asyncio
    async def test_all_newest_first(self, test_session, ledger):
        """Default listing is newest first."""
        page = await transaction_service.list_transactions(test_session)

        assert page.total_count == 4
        assert [t.amount for t in page.items] == [
            Decimal("50.00"),
            Decimal("200.00"),
            Decimal("300.00"),
            Decimal("100.00"),
        ]

    @pytest.mark.asyncio
    async def test_filter_by_account_and_type(self, test_session, ledger):
        """Account and type filters combine."""
        page = await transaction_service.list_transactions(
            test_session, TransactionFilter(account_id="u1", type=TransactionType.INVEST)
        )

        assert page.total_count == 2
        assert all(t.account_id == "u1" for t in page.items)
        assert all(t.type == TransactionType.INVEST for t in page.items)

    @pytest.mark.asyncio
    async def test_filter_by_date_range(self, test_session, ledger):
        """The end date includes the whole day."""
        page = await transaction_service.list_transactions(test_session)
        day = page.items[0].created_at.date()

        same_day = await transaction_service.list_transactions(
            test_session, TransactionFilter(start_date=day, end_date=day)
        )
        before = await transaction_service.list_transactions(
            test_session, TransactionFilter(end_date=day - timedelta(days=1))
        )

        assert same_day.total_count == 4
        assert before.total_count == 0

    @pytest.mark.asyncio
    async def test_search_operator(self, test_session, ledger):
        """Search matches the operator."""
        page = await transaction_service.list_transactions(
            test_session, TransactionFilter(search="bob")
        )

        assert [t.account_id for t in page.items] == ["u2"]

    @pytest.mark.asyncio
    async def test_search_amount(self, test_session, ledger):
        """A numeric search term matches the exact amount."""
        page = await transaction_service.list_transactions(
            test_session, TransactionFilter(search="300.00")
        )

        assert [t.amount for t in page.items] == [Decimal("300.00")]

    @pytest.mark.asyncio
    async def test_sort_by_amount_ascending(self, test_session, ledger):
        """Listing can be sorted by amount."""
        page = await transaction_service.list_transactions(
            test_session, sort_by="amount", sort_order="asc"
        )

        assert [t.amount for t in page.items] == [
            Decimal("50.00"),
            Decimal("100.00"),
            Decimal("200.00"),
            Decimal("300.00"),
        ]

    @pytest.mark.asyncio
    async def test_pagination(self, test_session, ledger):
        """Pages split the result set."""
        first = await transaction_service.list_transactions(test_session, page=1, limit=3)
        second = await transaction_service.list_transactions(test_session, page=2, limit=3)

        assert len(first.items) == 3
        assert first.total_pages == 2
        assert first.has_next and not first.has_prev
        assert len(second.items) == 1
        assert second.has_prev and not second.has_next

    @pytest.mark.asyncio
    async def test_equal_timestamps_keep_page_order(self, test_session, ledger):
        """Rows sharing a timestamp are ordered by ID across pages."""
        await test_session.execute(
            update(Transaction).values(created_at=datetime(2024, 2, 1, 12, 0))
        )
        await test_session.commit()

        seen = []
        for page_number in range(1, 5):
            page = await transaction_service.list_transactions(
                test_session, page=page_number, limit=1
            )
            seen.extend(t.id for t in page.items)

        assert len(set(seen)) == 4
        assert seen == sorted(seen, reverse=True)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "kwargs",
        [
            {"sort_by": "description"},
            {"sort_order": "up"},
            {"page": 0},
            {"limit": 101},
        ],
    )
    async def test_invalid_arguments(self, test_session, kwargs):
        """Unknown sort fields and bad paging are rejected."""
        with pytest.raises(ValidationError):
            await transaction_service.list_transactions(test_session, **kwargs)


class TestGetTransaction:
    """Tests for fetching a single transaction."""

    @pytest.mark.asyncio
    async def test_get(self, test_session, ledger):
        """A listed transaction can be fetched by ID."""
        page = await transaction_service.list_transactions(test_session, limit=1)

        transaction = await transaction_service.get_transaction(test_session, page.items[0].id)

        assert transaction.amount == Decimal("50.00")

    @pytest.mark.asyncio
    async def test_missing(self, test_session):
        """A missing transaction raises NotFound."""
        with pytest.raises(NotFound):
            await transaction_service.get_transaction(test_session, "missing")
