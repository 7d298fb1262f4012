"""Unit accounting service - converts cash to fund units and back.

Every balance mutation runs as one critical section per account: acquire
the account lock, re-read the row, read the current NAV, apply the change,
append the transaction record and commit. A failure anywhere rolls the
whole unit of work back.

``invested_amount`` is the cumulative cash contributed. Withdrawals reduce
``units`` only and leave ``invested_amount`` untouched.
"""

import logging
import re
import secrets
import string
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from navfund import telemetry
from navfund.exceptions import ConflictError, InsufficientUnits, NotFound, ValidationError
from navfund.models import Account, Transaction, TransactionType
from navfund.precision import (
    MONEY_QUANTUM,
    UNITS_EPSILON,
    UNITS_QUANTUM,
    quantize_money,
    quantize_units,
)
from navfund.services import nav as nav_service
from navfund.services.concurrency import commit_or_conflict, entity_lock
from navfund.services.transactions import record_transaction

logger = logging.getLogger(__name__)

USER_CODE_PATTERN = re.compile(r"^[A-Z]{3}[0-9]{3}$")
USER_CODE_ATTEMPTS = 20


@dataclass
class AccountSnapshot:
    """An account's balances valued at the current NAV."""

    account_id: str
    name: str
    user_code: str
    units: Decimal
    invested_amount: Decimal
    nav: Decimal | None  # None if no NAV has been published

    @property
    def current_value(self) -> Decimal | None:
        """Units valued at the NAV."""
        if self.nav is None:
            return None
        return quantize_money(self.units * self.nav)


def _snapshot(account: Account, nav: Decimal | None) -> AccountSnapshot:
    return AccountSnapshot(
        account_id=account.id,
        name=account.name,
        user_code=account.user_code,
        units=account.units,
        invested_amount=account.invested_amount,
        nav=nav,
    )


def _require_positive(field: str, value: Decimal | None, quantum: Decimal) -> Decimal:
    """Validate a positive figure with no more precision than ``quantum``."""
    if value is None:
        raise ValidationError(f"{field} is required", details={field: None})
    value = Decimal(str(value)) if isinstance(value, float) else Decimal(value)
    if not value.is_finite() or value <= 0:
        raise ValidationError(f"{field} must be positive", details={field: value})
    if value != value.quantize(quantum):
        raise ValidationError(
            f"{field} has too many decimal places",
            details={field: value, "quantum": quantum},
        )
    return value


# ============================================================================
# Account lifecycle
# ============================================================================


def generate_user_code() -> str:
    """Generate a random code: three uppercase letters then three digits."""
    letters = "".join(secrets.choice(string.ascii_uppercase) for _ in range(3))
    digits = "".join(secrets.choice(string.digits) for _ in range(3))
    return letters + digits


async def _user_code_taken(session: AsyncSession, user_code: str) -> bool:
    result = await session.execute(select(Account.id).where(Account.user_code == user_code))
    return result.first() is not None


async def create_account(
    session: AsyncSession,
    account_id: str,
    name: str,
    user_code: str | None = None,
) -> Account:
    """Create an empty account.

    Args:
        session: Database session
        account_id: Unique account identifier
        name: Display name of the investor
        user_code: ABC123-style code, generated when omitted

    Returns:
        The created account

    Raises:
        ValidationError: If a field is blank or the code is malformed
        ConflictError: If the id or code is already in use
    """
    if not account_id or not account_id.strip():
        raise ValidationError("account_id is required")
    if not name or not name.strip():
        raise ValidationError("name is required")

    if await session.get(Account, account_id) is not None:
        raise ConflictError(
            f"Account with ID '{account_id}' already exists",
            details={"account_id": account_id},
        )

    if user_code is not None:
        user_code = user_code.upper()
        if not USER_CODE_PATTERN.match(user_code):
            raise ValidationError(
                "user_code must be three letters followed by three digits",
                details={"user_code": user_code},
            )
        if await _user_code_taken(session, user_code):
            raise ConflictError(
                f"User code '{user_code}' already exists", details={"user_code": user_code}
            )
    else:
        for _ in range(USER_CODE_ATTEMPTS):
            candidate = generate_user_code()
            if not await _user_code_taken(session, candidate):
                user_code = candidate
                break
        else:
            raise ConflictError("Could not generate a unique user code")

    account = Account(
        id=account_id,
        name=name.strip(),
        user_code=user_code,
        invested_amount=Decimal("0.00"),
        units=Decimal("0"),
    )
    session.add(account)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise ConflictError(
            f"Account with ID '{account_id}' or code '{user_code}' already exists",
            details={"account_id": account_id, "user_code": user_code},
        )
    await session.refresh(account)

    logger.info(
        "Account created",
        extra={"account_id": account.id, "user_code": account.user_code},
    )
    return account


async def get_account(session: AsyncSession, account_id: str) -> Account:
    """Get an account by ID.

    Raises:
        NotFound: If the account does not exist
    """
    result = await session.execute(
        select(Account)
        .where(Account.id == account_id)
        .execution_options(populate_existing=True)
    )
    account = result.scalar_one_or_none()
    if account is None:
        raise NotFound(f"Account '{account_id}' not found", details={"account_id": account_id})
    return account


async def get_account_snapshot(session: AsyncSession, account_id: str) -> AccountSnapshot:
    """Get an account's balances valued at the current NAV."""
    account = await get_account(session, account_id)
    nav = await nav_service.get_current_nav(session)
    return _snapshot(account, nav)


async def list_accounts(session: AsyncSession, search: str | None = None) -> list[Account]:
    """Get accounts ordered by ID.

    Args:
        session: Database session
        search: Case-insensitive fragment of the user code, name or ID
    """
    query = select(Account).order_by(Account.id)
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        query = query.where(
            or_(
                Account.user_code.ilike(pattern),
                Account.name.ilike(pattern),
                Account.id.ilike(pattern),
            )
        )
    result = await session.execute(query)
    return list(result.scalars().all())


async def delete_account(session: AsyncSession, account_id: str) -> None:
    """Delete an account that holds no units.

    Transactions of the account are kept.

    Raises:
        NotFound: If the account does not exist
        ValidationError: If the account still holds units
    """
    async with entity_lock("account", account_id):
        account = await get_account(session, account_id)
        if account.units != 0:
            raise ValidationError(
                "Account still holds units; withdraw them before deleting",
                details={"account_id": account_id, "units": account.units},
            )
        await session.delete(account)
        await commit_or_conflict(session, "account", account_id)

    logger.info("Account deleted", extra={"account_id": account_id})


# ============================================================================
# Unit accounting
# ============================================================================


async def invest(
    session: AsyncSession,
    account_id: str,
    amount: Decimal,
    processed_by: str | None = None,
) -> tuple[AccountSnapshot, Transaction]:
    """Buy units with cash at the current NAV.

    Args:
        session: Database session
        account_id: Account receiving the units
        amount: Cash invested, positive, at most 2 decimal places
        processed_by: Operator performing the action

    Returns:
        Updated account snapshot and the transaction record

    Raises:
        ValidationError: If amount is invalid or too small to buy any units
        NotFound: If the account does not exist
        DependencyUnavailable: If no NAV has been published
        ConflictError: If the account was modified concurrently
    """
    amount = _require_positive("amount", amount, MONEY_QUANTUM)

    async with entity_lock("account", account_id):
        try:
            account = await get_account(session, account_id)
            nav = await nav_service.require_current_nav(session)

            units_granted = quantize_units(amount / nav)
            if units_granted <= 0:
                raise ValidationError(
                    "amount is too small to buy any units",
                    details={"amount": amount, "nav": nav},
                )

            account.units = account.units + units_granted
            account.invested_amount = account.invested_amount + amount

            transaction = record_transaction(
                session,
                account_id=account.id,
                type=TransactionType.INVEST,
                amount=amount,
                units=units_granted,
                nav_value=nav,
                processed_by=processed_by,
                description="Investment added",
            )
            await commit_or_conflict(session, "account", account_id)
        except Exception:
            await session.rollback()
            raise

    telemetry.record_investment(amount, units_granted)
    logger.info(
        "Investment processed",
        extra={
            "transaction_id": transaction.id,
            "account_id": account_id,
            "amount": float(amount),
            "units": float(units_granted),
            "nav": float(nav),
            "processed_by": processed_by,
        },
    )
    return _snapshot(account, nav), transaction


async def withdraw(
    session: AsyncSession,
    account_id: str,
    *,
    amount: Decimal | None = None,
    units: Decimal | None = None,
    processed_by: str | None = None,
) -> tuple[AccountSnapshot, Transaction]:
    """Redeem units for cash at the current NAV.

    Exactly one of ``amount`` or ``units`` must be given; the other is
    derived from the NAV. A request is rejected, never capped, when it
    exceeds the balance. A request within UNITS_EPSILON above the balance
    is conversion residue and redeems exactly the balance.

    Args:
        session: Database session
        account_id: Account redeeming units
        amount: Cash to withdraw
        units: Units to redeem
        processed_by: Operator performing the action

    Returns:
        Updated account snapshot and the transaction record

    Raises:
        ValidationError: If both or neither of amount/units are given, or
            the given one is invalid
        InsufficientUnits: If the account holds fewer units than requested
        NotFound: If the account does not exist
        DependencyUnavailable: If no NAV has been published
        ConflictError: If the account was modified concurrently
    """
    if (amount is None) == (units is None):
        raise ValidationError(
            "Exactly one of amount or units is required",
            details={"amount": amount, "units": units},
        )
    if units is not None:
        units = _require_positive("units", units, UNITS_QUANTUM)
    else:
        amount = _require_positive("amount", amount, MONEY_QUANTUM)

    async with entity_lock("account", account_id):
        try:
            account = await get_account(session, account_id)
            nav = await nav_service.require_current_nav(session)

            if units is not None:
                units_redeemed = units
                withdraw_amount = quantize_money(units * nav)
            else:
                withdraw_amount = amount
                units_redeemed = quantize_units(amount / nav)

            available = account.units
            if units_redeemed > available + UNITS_EPSILON:
                raise InsufficientUnits(
                    "Insufficient units for withdrawal",
                    requested=units_redeemed,
                    available=available,
                    requested_amount=withdraw_amount,
                    available_value=quantize_money(available * nav),
                )
            if units_redeemed > available:
                units_redeemed = available
                if units is not None:
                    withdraw_amount = quantize_money(units_redeemed * nav)

            if units_redeemed <= 0:
                raise ValidationError(
                    "amount is too small to redeem any units",
                    details={"amount": withdraw_amount, "nav": nav},
                )
            if withdraw_amount <= 0:
                raise ValidationError(
                    "units are too few to be worth any cash",
                    details={"units": units_redeemed, "nav": nav},
                )

            account.units = available - units_redeemed

            transaction = record_transaction(
                session,
                account_id=account.id,
                type=TransactionType.WITHDRAW,
                amount=withdraw_amount,
                units=units_redeemed,
                nav_value=nav,
                processed_by=processed_by,
                description="Withdrawal processed",
            )
            await commit_or_conflict(session, "account", account_id)
        except Exception:
            await session.rollback()
            raise

    telemetry.record_withdrawal(withdraw_amount, units_redeemed)
    logger.info(
        "Withdrawal processed",
        extra={
            "transaction_id": transaction.id,
            "account_id": account_id,
            "amount": float(withdraw_amount),
            "units": float(units_redeemed),
            "nav": float(nav),
            "mode": "units" if units is not None else "amount",
            "processed_by": processed_by,
        },
    )
    return _snapshot(account, nav), transaction
