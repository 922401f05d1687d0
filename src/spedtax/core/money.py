"""
Monetary value parsing for SPED fields.

SPED files write amounts with a comma decimal separator ("1234,56"), but
files exported by some ERPs or assembled by hand use a dot ("1234.56"), and
thousands separators show up in both conventions. Everything is normalized
to Decimal before arithmetic; anything that does not parse is zero.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional, Union

ZERO = Decimal("0")
CENT = Decimal("0.01")


def parse_amount(value: Optional[Union[str, int, float, Decimal]]) -> Decimal:
    """
    Convert a SPED monetary field to Decimal.

    Handles:
    - Brazilian format: "1.234.567,89" -> 1234567.89
    - Plain comma decimal: "1234,56" -> 1234.56
    - Dot decimal: "1234.56" -> 1234.56
    - US thousands: "1,234.56" -> 1234.56
    - Dot thousands without decimals: "1.234.567" -> 1234567
    - Negative values in parentheses: "(100,00)" -> -100.00

    Args:
        value: Raw field value

    Returns:
        Decimal amount, or Decimal("0") when empty or unparsable

    Examples:
        >>> parse_amount("1.234,56")
        Decimal('1234.56')
        >>> parse_amount("abc")
        Decimal('0')
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value if value.is_finite() else ZERO
    if isinstance(value, (int, float)):
        return _to_decimal(str(value))

    clean_value = str(value).strip().replace(" ", "")
    if not clean_value:
        return ZERO

    negative = False
    if clean_value.startswith('(') and clean_value.endswith(')'):
        negative = True
        clean_value = clean_value[1:-1]

    if ',' in clean_value:
        integer_part, sep, decimal_part = clean_value.rpartition(',')
        # "1,234,567" or "1,234.56": commas are thousands separators
        if ',' in integer_part or '.' in decimal_part:
            clean_value = clean_value.replace(',', '')
        else:
            clean_value = integer_part.replace('.', '') + '.' + decimal_part
    elif clean_value.count('.') > 1:
        clean_value = clean_value.replace('.', '')

    amount = _to_decimal(clean_value)
    return -amount if negative else amount


def _to_decimal(clean_value: str) -> Decimal:
    try:
        amount = Decimal(clean_value)
    except (ValueError, InvalidOperation):
        return ZERO
    if not amount.is_finite():
        return ZERO
    return amount


def round_money(amount: Decimal) -> Decimal:
    """Round to cents (half-up)."""
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def percentage(part: Decimal, whole: Decimal) -> Decimal:
    """Return part / whole * 100, or zero when whole is not positive."""
    if whole <= ZERO:
        return ZERO
    return part / whole * Decimal("100")
