"""Decimal scales shared by the ledger.

Cash is kept to the cent, fund units to eight places and NAV values to
four. Every computed figure is quantized before it is stored so the
database round-trip is exact.
"""

from decimal import ROUND_HALF_EVEN, Decimal

MONEY_QUANTUM = Decimal("0.01")
UNITS_QUANTUM = Decimal("0.00000001")
NAV_QUANTUM = Decimal("0.0001")
PERCENT_QUANTUM = Decimal("0.01")

# Redemptions this close above the balance are rounding residue from an
# amount-to-units conversion, not a real shortfall.
UNITS_EPSILON = Decimal("0.000001")


def quantize_money(value: Decimal) -> Decimal:
    """Round a cash figure to the cent."""
    return Decimal(value).quantize(MONEY_QUANTUM, rounding=ROUND_HALF_EVEN)


def quantize_units(value: Decimal) -> Decimal:
    """Round a fund unit figure to eight decimal places."""
    return Decimal(value).quantize(UNITS_QUANTUM, rounding=ROUND_HALF_EVEN)


def quantize_percent(value: Decimal) -> Decimal:
    """Round a percentage to two decimal places."""
    return Decimal(value).quantize(PERCENT_QUANTUM, rounding=ROUND_HALF_EVEN)
