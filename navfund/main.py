"""
FastAPI application entry point.

Run with: uvicorn navfund.main:app --reload
"""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from navfund import telemetry
from navfund._version import VERSION
from navfund.database import init_db
from navfund.exceptions import FundError

# Import models to ensure they're registered with SQLAlchemy
from navfund.models import (  # noqa: F401
    Account,
    NavRecord,
    PortfolioSnapshot,
    PortfolioTotals,
    TradePosition,
    Transaction,
)
from navfund.routers import (
    accounts_router,
    nav_router,
    portfolio_router,
    positions_router,
    transactions_router,
)

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler.

    Startup: Create database tables if they don't exist, initialize telemetry.
    """
    await init_db()
    logger.info("Database initialized")

    if telemetry.setup_telemetry():
        # Attach OTLP handler to root logger for log export
        handler = telemetry.get_log_handler()
        if handler:
            logging.getLogger().addHandler(handler)
        logger.info("Telemetry initialized (OTLP metrics + logs enabled)")
    else:
        logger.info("Telemetry disabled")

    yield

    logger.info("Application shutting down")


app = FastAPI(
    title="NAV Fund API",
    description="Unit accounting for a pooled investment fund",
    version=VERSION,
    lifespan=lifespan,
)


@app.exception_handler(FundError)
async def fund_error_handler(request: Request, exc: FundError) -> JSONResponse:
    """Render domain errors as {detail, code, details}."""
    if exc.status_code >= 500:
        logger.warning(
            "Request failed: %s",
            exc.message,
            extra={"path": request.url.path, "code": exc.code.value},
        )
    return JSONResponse(status_code=exc.status_code, content=exc.to_error_payload())


# All business routes under /api/v1
app.include_router(accounts_router, prefix="/api/v1", tags=["accounts"])
app.include_router(nav_router, prefix="/api/v1", tags=["nav"])
app.include_router(positions_router, prefix="/api/v1", tags=["positions"])
app.include_router(transactions_router, prefix="/api/v1", tags=["transactions"])
app.include_router(portfolio_router, prefix="/api/v1", tags=["portfolio"])


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok"}


@app.get("/api/version")
async def get_version():
    """Get API version information."""
    return {
        "version": VERSION,
        "api_version": "v1",
    }
