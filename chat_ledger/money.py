"""Decimal money helpers.

All amounts are Decimal with exactly two fractional digits.
Rounding is ROUND_HALF_UP everywhere: the message parser, the
ledger and the aggregates all go through to_money().
"""

from decimal import Decimal, ROUND_HALF_UP

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
# Upper bound for a single transaction.
MAX_AMOUNT = Decimal("999999999.99")


def to_money(value) -> Decimal:
    """Quantize a number (Decimal, int, str, or a DB float) to 2 places."""
    if value is None:
        return ZERO
    if not isinstance(value, Decimal):
        # str() first so a float coming back from SUM() on SQLite
        # is read as its shortest repr, not its binary expansion.
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def format_money(amount: Decimal) -> str:
    """1234.5 -> '1,234.50', -12 -> '-12.00'."""
    amount = to_money(amount)
    if amount < 0:
        return f"-{-amount:,.2f}"
    return f"{amount:,.2f}"
