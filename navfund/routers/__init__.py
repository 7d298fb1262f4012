"""API routers."""

from navfund.routers.accounts import router as accounts_router
from navfund.routers.nav import router as nav_router
from navfund.routers.portfolio import router as portfolio_router
from navfund.routers.positions import router as positions_router
from navfund.routers.transactions import router as transactions_router

__all__ = [
    "accounts_router",
    "nav_router",
    "portfolio_router",
    "positions_router",
    "transactions_router",
]
