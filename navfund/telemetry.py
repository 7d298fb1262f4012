"""OpenTelemetry metrics and logs for the fund ledger."""

import logging
import os
from decimal import Decimal

from opentelemetry import metrics
from opentelemetry._logs import set_logger_provider
from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.http._log_exporter import OTLPLogExporter
from opentelemetry.sdk._logs import LoggerProvider, LoggingHandler
from opentelemetry.sdk._logs.export import BatchLogRecordProcessor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource

from navfund._version import VERSION


# Module-level state
_initialized = False
_meter = None
_log_handler = None

# Counters (cumulative)
_investments_total = None
_investment_value_total = None
_units_issued_total = None
_withdrawals_total = None
_withdrawal_value_total = None
_units_redeemed_total = None
_nav_published_total = None
_positions_opened_total = None
_position_sales_total = None
_position_shares_sold_total = None
_conflicts_total = None


def setup_telemetry() -> bool:
    """Initialize OpenTelemetry metrics and logs.

    Returns True if telemetry was initialized, False if disabled.
    """
    global _initialized, _meter, _log_handler
    global _investments_total, _investment_value_total, _units_issued_total
    global _withdrawals_total, _withdrawal_value_total, _units_redeemed_total
    global _nav_published_total, _positions_opened_total
    global _position_sales_total, _position_shares_sold_total, _conflicts_total

    if _initialized:
        return True

    if os.getenv("OTLP_ENABLED", "true").lower() == "false":
        return False

    otlp_endpoint = os.getenv("OTLP_ENDPOINT", "http://localhost:4318/v1/metrics")
    export_interval = int(os.getenv("OTLP_EXPORT_INTERVAL", "5000"))

    resource = Resource.create({
        "service.name": "navfund",
        "service.version": VERSION,
    })

    reader = PeriodicExportingMetricReader(
        OTLPMetricExporter(endpoint=otlp_endpoint),
        export_interval_millis=export_interval,
    )
    provider = MeterProvider(resource=resource, metric_readers=[reader])
    metrics.set_meter_provider(provider)

    _meter = metrics.get_meter("navfund", VERSION)

    _investments_total = _meter.create_counter(
        "fund_investments_total",
        description="Total number of investments processed",
        unit="1",
    )
    _investment_value_total = _meter.create_counter(
        "fund_investment_value_total",
        description="Total cash invested",
        unit="currency",
    )
    _units_issued_total = _meter.create_counter(
        "fund_units_issued_total",
        description="Total fund units issued",
        unit="units",
    )
    _withdrawals_total = _meter.create_counter(
        "fund_withdrawals_total",
        description="Total number of withdrawals processed",
        unit="1",
    )
    _withdrawal_value_total = _meter.create_counter(
        "fund_withdrawal_value_total",
        description="Total cash withdrawn",
        unit="currency",
    )
    _units_redeemed_total = _meter.create_counter(
        "fund_units_redeemed_total",
        description="Total fund units redeemed",
        unit="units",
    )
    _nav_published_total = _meter.create_counter(
        "fund_nav_published_total",
        description="Total number of NAV values published",
        unit="1",
    )
    _positions_opened_total = _meter.create_counter(
        "fund_positions_opened_total",
        description="Total number of trade positions opened",
        unit="1",
    )
    _position_sales_total = _meter.create_counter(
        "fund_position_sales_total",
        description="Total number of sells against trade positions",
        unit="1",
    )
    _position_shares_sold_total = _meter.create_counter(
        "fund_position_shares_sold_total",
        description="Total number of shares sold from trade positions",
        unit="shares",
    )
    _conflicts_total = _meter.create_counter(
        "fund_update_conflicts_total",
        description="Concurrent updates rejected by the optimistic version check",
        unit="1",
    )

    # === LOGS ===
    logs_endpoint = otlp_endpoint.replace("/v1/metrics", "/v1/logs")
    logger_provider = LoggerProvider(resource=resource)
    logger_provider.add_log_record_processor(
        BatchLogRecordProcessor(OTLPLogExporter(endpoint=logs_endpoint))
    )
    set_logger_provider(logger_provider)

    _log_handler = LoggingHandler(
        level=logging.INFO,
        logger_provider=logger_provider,
    )

    _initialized = True
    return True


def get_log_handler() -> LoggingHandler | None:
    """Get the OTLP logging handler to attach to Python loggers."""
    return _log_handler


def is_enabled() -> bool:
    """Check if telemetry is initialized and enabled."""
    return _initialized


# --- Counter update functions ---

def record_investment(amount: Decimal, units: Decimal) -> None:
    """Record an investment."""
    if not _initialized:
        return

    _investments_total.add(1)
    _investment_value_total.add(float(amount))
    _units_issued_total.add(float(units))


def record_withdrawal(amount: Decimal, units: Decimal) -> None:
    """Record a withdrawal."""
    if not _initialized:
        return

    _withdrawals_total.add(1)
    _withdrawal_value_total.add(float(amount))
    _units_redeemed_total.add(float(units))


def record_nav_published() -> None:
    """Record a NAV publication."""
    if not _initialized:
        return

    _nav_published_total.add(1)


def record_position_opened(stock_name: str) -> None:
    """Record a trade position being opened."""
    if not _initialized:
        return

    _positions_opened_total.add(1, {"stock_name": stock_name})


def record_position_sale(stock_name: str, units: int) -> None:
    """Record a sell against a trade position."""
    if not _initialized:
        return

    attributes = {"stock_name": stock_name}
    _position_sales_total.add(1, attributes)
    _position_shares_sold_total.add(units, attributes)


def record_conflict(kind: str) -> None:
    """Record a rejected concurrent update."""
    if not _initialized:
        return

    _conflicts_total.add(1, {"entity": kind})
