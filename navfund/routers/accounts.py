"""Account API endpoints - lifecycle and unit accounting."""

from typing import Annotated

from fastapi import APIRouter, Body, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from navfund.auth import get_operator_id
from navfund.database import get_session
from navfund.models import Transaction
from navfund.schemas.accounts import (
    AccountCreate,
    AccountListItem,
    AccountResponse,
    BalanceChangeResponse,
    InvestRequest,
    TransactionResponse,
    WithdrawByAmount,
    WithdrawRequest,
)
from navfund.services import accounts as account_service
from navfund.services.accounts import AccountSnapshot

router = APIRouter()


def snapshot_to_response(snapshot: AccountSnapshot) -> AccountResponse:
    """Convert an account snapshot to its API response."""
    return AccountResponse(
        account_id=snapshot.account_id,
        name=snapshot.name,
        user_code=snapshot.user_code,
        units=snapshot.units,
        invested_amount=snapshot.invested_amount,
        current_value=snapshot.current_value,
        nav=snapshot.nav,
    )


def transaction_to_response(transaction: Transaction) -> TransactionResponse:
    """Convert a ledger row to its API response."""
    return TransactionResponse(
        id=transaction.id,
        account_id=transaction.account_id,
        type=transaction.type.value,
        amount=transaction.amount,
        units=transaction.units,
        nav_value=transaction.nav_value,
        status=transaction.status.value,
        description=transaction.description,
        processed_by=transaction.processed_by,
        created_at=transaction.created_at,
    )


@router.post(
    "/accounts",
    response_model=AccountResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an account",
)
async def create_account(
    request: AccountCreate,
    session: AsyncSession = Depends(get_session),
) -> AccountResponse:
    """Create an empty account with zero units."""
    account = await account_service.create_account(
        session,
        request.account_id,
        request.name,
        user_code=request.user_code,
    )
    snapshot = await account_service.get_account_snapshot(session, account.id)
    return snapshot_to_response(snapshot)


@router.get(
    "/accounts",
    response_model=list[AccountListItem],
    summary="List accounts",
)
async def list_accounts(
    search: str | None = Query(
        None, max_length=100, description="Fragment of the user code, name or account ID"
    ),
    session: AsyncSession = Depends(get_session),
) -> list[AccountListItem]:
    """Get accounts ordered by ID, optionally filtered by a search term."""
    accounts = await account_service.list_accounts(session, search=search)
    return [
        AccountListItem(
            account_id=a.id,
            name=a.name,
            user_code=a.user_code,
            units=a.units,
            invested_amount=a.invested_amount,
            created_at=a.created_at,
        )
        for a in accounts
    ]


@router.get(
    "/accounts/{account_id}",
    response_model=AccountResponse,
    summary="Get an account",
)
async def get_account(
    account_id: str,
    session: AsyncSession = Depends(get_session),
) -> AccountResponse:
    """Get an account's units, contributions and current value.

    ``current_value`` is units times the current NAV, or null when no NAV
    has been published.
    """
    snapshot = await account_service.get_account_snapshot(session, account_id)
    return snapshot_to_response(snapshot)


@router.delete(
    "/accounts/{account_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete an account",
)
async def delete_account(
    account_id: str,
    session: AsyncSession = Depends(get_session),
) -> Response:
    """Delete an account that holds no units. Its transactions are kept."""
    await account_service.delete_account(session, account_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/accounts/{account_id}/invest",
    response_model=BalanceChangeResponse,
    summary="Invest cash",
)
async def invest(
    account_id: str,
    request: InvestRequest,
    operator_id: str | None = Depends(get_operator_id),
    session: AsyncSession = Depends(get_session),
) -> BalanceChangeResponse:
    """Buy units at the current NAV.

    **How it works:**
    - units granted = amount / NAV, rounded to 8 decimal places
    - the amount is added to ``invested_amount``
    - an ``invest`` transaction is recorded

    Returns 503 when no NAV has been published.
    """
    snapshot, transaction = await account_service.invest(
        session, account_id, request.amount, processed_by=operator_id
    )
    return BalanceChangeResponse(
        account=snapshot_to_response(snapshot),
        transaction=transaction_to_response(transaction),
    )


@router.post(
    "/accounts/{account_id}/withdraw",
    response_model=BalanceChangeResponse,
    summary="Withdraw cash or redeem units",
)
async def withdraw(
    account_id: str,
    request: Annotated[WithdrawRequest, Body(discriminator="mode")],
    operator_id: str | None = Depends(get_operator_id),
    session: AsyncSession = Depends(get_session),
) -> BalanceChangeResponse:
    """Redeem units at the current NAV.

    **Modes:**
    - ``{"mode": "amount", "amount": ...}``: cash out an amount; units are derived
    - ``{"mode": "units", "units": ...}``: redeem units; the amount is derived

    A request exceeding the account balance is rejected with
    ``INSUFFICIENT_UNITS``. ``invested_amount`` is not reduced.
    """
    if isinstance(request, WithdrawByAmount):
        snapshot, transaction = await account_service.withdraw(
            session, account_id, amount=request.amount, processed_by=operator_id
        )
    else:
        snapshot, transaction = await account_service.withdraw(
            session, account_id, units=request.units, processed_by=operator_id
        )
    return BalanceChangeResponse(
        account=snapshot_to_response(snapshot),
        transaction=transaction_to_response(transaction),
    )
