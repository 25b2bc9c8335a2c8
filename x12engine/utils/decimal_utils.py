"""Decimal helpers for X12 numeric elements (R, N0, N2)."""
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Optional, Union

from x12engine.utils.logger import get_logger

logger = get_logger(__name__)

# Standard precision for financial amounts (2 decimal places)
FINANCIAL_PRECISION = Decimal("0.01")


def parse_decimal(value: Optional[Union[str, int, Decimal]], precision: Optional[Decimal] = None) -> Optional[Decimal]:
    """
    Parse an element value to Decimal.

    Args:
        value: Raw element value (string, int, or Decimal)
        precision: Optional precision to round to

    Returns:
        Decimal value or None if the value is blank or not numeric

    Example:
        >>> parse_decimal("10")
        Decimal('10')
        >>> parse_decimal("12.345", precision=Decimal("0.01"))
        Decimal('12.35')
    """
    if value is None:
        return None

    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, str):
        value = value.strip()
        if not value:
            return None
        try:
            result = Decimal(value)
        except (ValueError, InvalidOperation) as e:
            logger.warning("Failed to parse decimal string", value=value, error=str(e))
            return None
        if not result.is_finite():
            logger.warning("Rejected non-finite decimal", value=value)
            return None
    else:
        logger.warning("Unsupported type for decimal parsing", value=value, type=type(value).__name__)
        return None

    if precision is not None:
        try:
            result = result.quantize(precision, rounding=ROUND_HALF_UP)
        except (ValueError, InvalidOperation) as e:
            logger.warning("Failed to quantize decimal", value=result, precision=precision, error=str(e))
            return None

    return result


def parse_financial_amount(value: Optional[Union[str, int, Decimal]]) -> Optional[Decimal]:
    """
    Parse a monetary amount with 2 decimal place precision.

    Example:
        >>> parse_financial_amount("123.456")
        Decimal('123.46')
    """
    return parse_decimal(value, precision=FINANCIAL_PRECISION)


def parse_int(value: Optional[str]) -> Optional[int]:
    """Parse an integer element (N0); None when blank or not numeric."""
    if value is None:
        return None
    value = value.strip()
    if not value or not value.lstrip("-").isdigit():
        return None
    return int(value)


def format_decimal(value: Optional[Union[Decimal, int]]) -> str:
    """
    Render a number the way X12 R elements expect it.

    No exponent, no superfluous trailing zeros, no trailing decimal point.

    Example:
        >>> format_decimal(Decimal("2000.50"))
        '2000.5'
        >>> format_decimal(Decimal("1E+3"))
        '1000'
    """
    if value is None:
        return ""
    if isinstance(value, int):
        return str(value)
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    if text in ("-0", ""):
        text = "0"
    return text


def implied_cents_to_amount(value: Optional[str]) -> Optional[Decimal]:
    """
    Convert an N2 element (implied two decimals) to an amount.

    Example:
        >>> implied_cents_to_amount("200000")
        Decimal('2000.00')
    """
    cents = parse_decimal(value)
    if cents is None:
        return None
    return (cents / 100).quantize(FINANCIAL_PRECISION, rounding=ROUND_HALF_UP)


def amount_to_implied_cents(value: Optional[Decimal]) -> str:
    """
    Convert an amount to an N2 element value.

    Example:
        >>> amount_to_implied_cents(Decimal("2000"))
        '200000'
    """
    if value is None:
        return ""
    cents = (value * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return format_decimal(cents)
