from __future__ import annotations

import datetime
import math
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from typing import Any, Dict

from dateutil import parser as date_parser

DEFAULT_CURRENCY = "USD"

# en-US display symbols; codes missing here render as "<CODE> 1,234.00"
_CURRENCY_SYMBOLS: Dict[str, str] = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "CAD": "CA$",
    "AUD": "A$",
    "JPY": "¥",
    "CNY": "CN¥",
    "INR": "₹",
    "KRW": "₩",
    "MXN": "MX$",
    "BRL": "R$",
    "NZD": "NZ$",
    "HKD": "HK$",
    "ILS": "₪",
}

_ZERO_DIGIT_CURRENCIES = frozenset({"JPY", "KRW", "CLP", "VND", "ISK", "UGX", "XAF", "XOF"})

# Amounts beyond 10**36 (or below 10**-36) are treated as garbage input.
_MAX_AMOUNT_EXPONENT = 36

# Two far-apart defaults; a date component that differs between them was never in the input.
_DATE_SENTINELS = (datetime.datetime(2000, 1, 1), datetime.datetime(2001, 2, 2))

_MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)


def safe_text(value: Any) -> str:
    """Coerce a form value into display text.

    Strings pass through, numbers are stringified and everything else
    (None, booleans, mappings, lists, objects) becomes an empty string.
    """
    if value is None or isinstance(value, bool):
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer():
            return str(int(value))
        return str(value)
    if isinstance(value, Decimal):
        return str(value)
    return ""


def to_decimal(value: Any) -> Decimal:
    """Best-effort numeric coercion; anything unusable becomes zero."""
    if value is None or isinstance(value, bool):
        return Decimal(0)
    if isinstance(value, Decimal):
        number = value
    elif isinstance(value, (int, float)):
        number = Decimal(str(value))
    elif isinstance(value, str):
        cleaned = value.strip().replace(",", "")
        if not cleaned:
            return Decimal(0)
        try:
            number = Decimal(cleaned)
        except InvalidOperation:
            return Decimal(0)
    else:
        return Decimal(0)
    if not number.is_finite() or number.is_zero():
        return Decimal(0)
    if abs(number.adjusted()) > _MAX_AMOUNT_EXPONENT:
        return Decimal(0)
    return number


def _normalize_currency_code(currency_code: Any) -> str:
    code = safe_text(currency_code).strip().upper()
    if len(code) == 3 and code.isalpha():
        return code
    return DEFAULT_CURRENCY


def format_currency(amount: Any, currency_code: Any = DEFAULT_CURRENCY) -> str:
    """Format an amount the way en-US currency formatting does, e.g. ``$1,234.50``."""
    code = _normalize_currency_code(currency_code)
    digits = 0 if code in _ZERO_DIGIT_CURRENCIES else 2
    quantum = Decimal(1).scaleb(-digits)
    raw = to_decimal(amount)
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, raw.adjusted() + digits + 2)
        value = raw.quantize(quantum, rounding=ROUND_HALF_UP)

    sign = "-" if value < 0 else ""
    number = f"{abs(value):,.{digits}f}"
    symbol = _CURRENCY_SYMBOLS.get(code)
    if symbol is None:
        return f"{sign}{code} {number}"
    return f"{sign}{symbol}{number}"


def parse_date(value: Any) -> datetime.date | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    text = safe_text(value).strip()
    if not text:
        return None
    try:
        return date_parser.isoparse(text).date()
    except (ValueError, OverflowError):
        pass
    try:
        first, second = (date_parser.parse(text, default=sentinel).date() for sentinel in _DATE_SENTINELS)
    except (ValueError, OverflowError, TypeError):
        return None
    # Partial dates such as "June 2025" or "Monday" are rejected.
    return first if first == second else None


def format_date(value: Any) -> str:
    """Render a date as ``January 5, 2025``; unparseable input yields ``""``."""
    parsed = parse_date(value)
    if parsed is None:
        return ""
    return f"{_MONTH_NAMES[parsed.month - 1]} {parsed.day}, {parsed.year}"


__all__ = [
    "DEFAULT_CURRENCY",
    "format_currency",
    "format_date",
    "parse_date",
    "safe_text",
    "to_decimal",
]
