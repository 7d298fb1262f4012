#!/usr/bin/env python3
"""
Management script for the NAV fund.

Usage (via API):
    python manage.py nav publish --date 2024-01-31 --value 12.3456 [--base-url http://localhost:8000]
    python manage.py nav show [--base-url http://localhost:8000]
    python manage.py accounts create ACC001 "Jane Doe" [--user-code ABC123]
    python manage.py accounts show [--search ali]

Usage (direct DB access):
    python manage.py db nav publish --date 2024-01-31 --value 12.3456
    python manage.py db clear
    python manage.py db status
"""

import asyncio
from decimal import Decimal

import click
import httpx
from sqlalchemy import func, select

from navfund.database import AsyncSessionLocal, Base, engine
from navfund.exceptions import FundError
from navfund.models import (
    Account,
    NavRecord,
    PortfolioSnapshot,
    PositionSale,
    TradePosition,
    Transaction,
)
from navfund.services import nav as nav_service


DEFAULT_BASE_URL = "http://localhost:8000"
API_PREFIX = "/api/v1"


# ============================================================================
# Direct database operations (internal)
# ============================================================================


async def _init_db():
    """Initialize the database tables."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def _clear_db():
    """Drop and recreate all tables."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)


async def _db_publish_nav(nav_date, value: Decimal, operator: str | None):
    """Publish a NAV directly to DB."""
    async with AsyncSessionLocal() as session:
        return await nav_service.publish_nav(session, nav_date, value, updated_by=operator)


async def _count_records():
    """Count records in each table."""
    async with AsyncSessionLocal() as session:
        counts = {}
        for model, name in [
            (NavRecord, "nav_records"),
            (Account, "accounts"),
            (Transaction, "transactions"),
            (TradePosition, "positions"),
            (PositionSale, "position_sales"),
            (PortfolioSnapshot, "snapshots"),
        ]:
            result = await session.execute(select(func.count()).select_from(model))
            counts[name] = result.scalar_one()
        return counts


# ============================================================================
# API operations
# ============================================================================


def _api_error(response: httpx.Response) -> str:
    try:
        return response.json().get("detail", response.text)
    except ValueError:
        return response.text


def _api_request(method: str, path: str, base_url: str, operator: str | None = None, **kwargs):
    """Call the API and return the decoded body."""
    headers = {"X-Operator-Id": operator} if operator else {}
    with httpx.Client(base_url=base_url, timeout=30, headers=headers) as client:
        response = client.request(method, f"{API_PREFIX}{path}", **kwargs)
    if response.status_code == 404 and method == "GET":
        raise click.ClickException(
            f"Endpoint not found. Is the NAV fund API running at {base_url}?"
        )
    if response.is_error:
        raise click.ClickException(f"{response.status_code}: {_api_error(response)}")
    return response.json()


def _connection_failed(base_url: str):
    click.echo(f"\nError: Could not connect to {base_url}", err=True)
    click.echo("Is the server running? Start it with: uvicorn navfund.main:app", err=True)
    raise SystemExit(1)


base_url_option = click.option(
    "--base-url", "-u",
    default=DEFAULT_BASE_URL,
    help=f"API base URL (default: {DEFAULT_BASE_URL})",
)
operator_option = click.option(
    "--operator", "-o",
    default=None,
    help="Operator id recorded with the change",
)


# ============================================================================
# CLI: Main group
# ============================================================================


@click.group()
def cli():
    """NAV fund management commands."""
    pass


# ============================================================================
# CLI: nav (via API)
# ============================================================================


@cli.group()
def nav():
    """Manage NAV records (via API)."""
    pass


@nav.command("publish")
@click.option("--date", "nav_date", required=True, type=click.DateTime(["%Y-%m-%d"]))
@click.option("--value", required=True, type=Decimal, help="NAV per unit")
@base_url_option
@operator_option
def nav_publish(nav_date, value, base_url, operator):
    """Publish a NAV via API."""
    payload = {"date": nav_date.date().isoformat(), "value": str(value)}
    try:
        record = _api_request("POST", "/nav", base_url, operator, json=payload)
    except httpx.ConnectError:
        _connection_failed(base_url)
    click.echo(f"Published NAV {record['value']} for {record['date']} (id {record['id']})")


@nav.command("show")
@base_url_option
def nav_show(base_url):
    """Show NAV history via API."""
    try:
        navs = _api_request("GET", "/nav", base_url)["navs"]
    except httpx.ConnectError:
        _connection_failed(base_url)

    if not navs:
        click.echo("No NAV published.")
        return

    click.echo(f"\n{'ID':>6} {'Date':<12} {'Value':>14} {'Updated by':<20}")
    click.echo("-" * 56)
    for n in navs:
        click.echo(f"{n['id']:>6} {n['date']:<12} {n['value']:>14} {n['updated_by'] or '-':<20}")
    click.echo(f"\nTotal: {len(navs)} records")


# ============================================================================
# CLI: accounts (via API)
# ============================================================================


@cli.group()
def accounts():
    """Manage investor accounts (via API)."""
    pass


@accounts.command("create")
@click.argument("account_id")
@click.argument("name")
@click.option("--user-code", default=None, help="Three letters then three digits")
@base_url_option
def accounts_create(account_id, name, user_code, base_url):
    """Create an account via API."""
    payload = {"account_id": account_id, "name": name}
    if user_code:
        payload["user_code"] = user_code
    try:
        account = _api_request("POST", "/accounts", base_url, json=payload)
    except httpx.ConnectError:
        _connection_failed(base_url)
    click.echo(f"Created account {account['account_id']} ({account['user_code']})")


@accounts.command("show")
@click.option("--search", "-s", default=None, help="Fragment of the user code, name or ID")
@base_url_option
def accounts_show(search, base_url):
    """Show accounts via API."""
    params = {"search": search} if search else {}
    try:
        accounts_list = _api_request("GET", "/accounts", base_url, params=params)
    except httpx.ConnectError:
        _connection_failed(base_url)

    if not accounts_list:
        click.echo("No accounts found.")
        return

    click.echo(f"\n{'ID':<12} {'Code':<8} {'Name':<24} {'Units':>20} {'Invested':>16}")
    click.echo("-" * 84)
    for a in accounts_list:
        click.echo(
            f"{a['account_id']:<12} {a['user_code']:<8} {a['name']:<24} "
            f"{a['units']:>20} {a['invested_amount']:>16}"
        )
    click.echo(f"\nTotal: {len(accounts_list)} accounts")


# ============================================================================
# CLI: db (direct database access)
# ============================================================================


@cli.group()
def db():
    """Direct database management (bypasses API)."""
    pass


@db.command("clear")
@click.confirmation_option(prompt="Are you sure you want to clear all data?")
def db_clear():
    """Clear all data from the database (destructive!)."""
    click.echo("Clearing database...")
    asyncio.run(_clear_db())
    click.echo("Database cleared and tables recreated.")


@db.command("status")
def db_status():
    """Show database status and record counts."""

    async def run():
        await _init_db()
        return await _count_records()

    counts = asyncio.run(run())

    click.echo("\nDatabase Status:")
    click.echo("-" * 30)
    for table, count in counts.items():
        click.echo(f"  {table:<15} {count:>10,}")
    click.echo("-" * 30)
    click.echo(f"  {'Total':<15} {sum(counts.values()):>10,}")


@db.group("nav")
def db_nav():
    """Manage NAV records directly in database."""
    pass


@db_nav.command("publish")
@click.option("--date", "nav_date", required=True, type=click.DateTime(["%Y-%m-%d"]))
@click.option("--value", required=True, type=Decimal, help="NAV per unit")
@operator_option
def db_nav_publish(nav_date, value, operator):
    """Publish a NAV directly to database."""

    async def run():
        await _init_db()
        return await _db_publish_nav(nav_date.date(), value, operator)

    try:
        record = asyncio.run(run())
    except FundError as e:
        raise click.ClickException(e.message) from e
    click.echo(f"Published NAV {record.value} for {record.date} (id {record.id})")


if __name__ == "__main__":
    cli()
