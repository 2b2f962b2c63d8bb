"""Amount parsing and formatting utilities.

Raw amounts are parsed through Decimal so that currency formatting quirks are
handled exactly; the analytics core works on plain floats once validated.
"""

import math
import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP


# Currency symbols to strip
CURRENCY_SYMBOLS = {"$", "€", "£", "¥", "₹", "Rs.", "Rs", "INR"}

# Regex for parentheses-enclosed negatives: (1,234.56)
PARENS_NEGATIVE_PATTERN = re.compile(r"^\s*\(\s*([^)]+)\s*\)\s*$")


def parse_amount(raw_amount: str) -> Decimal:
    """Parse a raw expense amount string into a non-negative Decimal.

    Handles:
    - Standard: 1234.56
    - With currency: ₹1,234.56, Rs. 250, INR 99
    - Indian digit grouping: 1,23,456.00

    Expense amounts are magnitudes; negative values (leading minus or
    parentheses) are rejected rather than silently flipped.

    Args:
        raw_amount: The raw amount string to parse.

    Returns:
        Amount as Decimal.

    Raises:
        ValueError: If the amount cannot be parsed, is negative or not finite.
    """
    if raw_amount is None or not str(raw_amount).strip():
        raise ValueError("Empty amount string")

    original = str(raw_amount)
    amount_str = original.strip()

    if PARENS_NEGATIVE_PATTERN.match(amount_str) or amount_str.startswith("-"):
        raise ValueError(f"Negative amount not allowed: '{original}'")

    # Longest symbols first so "Rs." is stripped before "Rs"
    for symbol in sorted(CURRENCY_SYMBOLS, key=len, reverse=True):
        amount_str = amount_str.replace(symbol, "")

    # Grouping commas carry no value for either western or Indian grouping
    amount_str = amount_str.replace(",", "").replace(" ", "")

    try:
        amount = Decimal(amount_str)
    except InvalidOperation as e:
        raise ValueError(f"Cannot parse amount '{original}': {e}") from e

    if not amount.is_finite():
        raise ValueError(f"Amount is not finite: '{original}'")
    if amount < 0:
        raise ValueError(f"Negative amount not allowed: '{original}'")

    return amount


def to_float_amount(value: object) -> float:
    """Convert a parsed or raw amount to the float the core works with.

    Args:
        value: Decimal, int, float or numeric string.

    Returns:
        Non-negative finite float.

    Raises:
        ValueError: If the value is not a finite non-negative number.
    """
    if isinstance(value, str):
        value = parse_amount(value)
    try:
        amount = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid amount: {value!r}") from e
    if not math.isfinite(amount) or amount < 0:
        raise ValueError(f"Amount must be a finite non-negative number: {value!r}")
    return amount


def format_currency(
    amount: float | Decimal,
    symbol: str = "₹",
    decimal_places: int = 0,
) -> str:
    """Format an amount for display in messages.

    Rounds half-up, so 150.5 renders as ₹151 with zero decimal places.

    Args:
        amount: The amount to format.
        symbol: Currency symbol prefix.
        decimal_places: Number of decimal places.

    Returns:
        Formatted string like "₹999".
    """
    quantize_str = "1" if decimal_places == 0 else "0." + "0" * decimal_places
    rounded = Decimal(str(amount)).quantize(Decimal(quantize_str), rounding=ROUND_HALF_UP)
    return f"{symbol}{rounded}"
