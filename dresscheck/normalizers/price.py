"""Locale-aware price parsing.

Retailer pages mix "1.234,56 €", "45,95€", "$1,234.56" and bare numbers.
The parser decides which separator is the decimal point from the shape of
the number and never raises.
"""

import logging
import re
from decimal import Decimal
from typing import Optional, Union

from dresscheck.models.product import Price

logger = logging.getLogger(__name__)

# Parsed values above this are assumed to have lost their decimal separator
MAX_PLAUSIBLE_PRICE = 10000

CURRENCY_SYMBOLS = {
    "€": "EUR",
    "eur": "EUR",
    "$": "USD",
    "usd": "USD",
    "£": "GBP",
    "gbp": "GBP",
    "¥": "JPY",
    "chf": "CHF",
}

_NUMBER_RE = re.compile(r"\d+(?:[.,\u00a0 ]\d{3})*(?:[.,]\d+)?")
_DECIMAL_TAIL_RE = re.compile(r"\d+[,.]\d{2}$")
_THOUSANDS_RE = re.compile(r"[.,\u00a0 ](?=\d{3}(?:\D|$))")

PriceInput = Union[str, int, float, Decimal, None]


def _parse_number_token(token: str) -> Optional[float]:
    token = token.strip()
    if _DECIMAL_TAIL_RE.search(token):
        decimal_sep = token[-3]
        integer_part = re.sub(r"[.,\u00a0 ]", "", token[:-3])
        token = f"{integer_part}.{token[-2:]}"
        if not integer_part:
            return None
        logger.debug(f"Decimal separator {decimal_sep!r} detected")
    else:
        token = _THOUSANDS_RE.sub("", token)
        token = token.replace("\u00a0", "").replace(" ", "").replace(",", ".")
        # Anything left with two separators is not a price we understand
        if token.count(".") > 1:
            return None
    try:
        return float(token)
    except ValueError:
        return None


def _clamp(value: float) -> float:
    if value > MAX_PLAUSIBLE_PRICE:
        logger.debug(f"Price {value} looks unscaled, dividing by 100")
        value = value / 100
    return round(value, 2)


def parse_price(value: PriceInput) -> Optional[float]:
    """Parse a price string or number into a float rounded to 2 decimals.

    Examples:
        "1.234,56€" -> 1234.56
        "45,95€"    -> 45.95
        "$1,299.00" -> 1299.0

    Returns None for anything that does not contain a usable number.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float, Decimal)):
        number = float(value)
        if number < 0 or number != number:
            return None
        return _clamp(number)

    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    match = _NUMBER_RE.search(text)
    if not match:
        return None

    number = _parse_number_token(match.group(0))
    if number is None:
        return None
    return _clamp(number)


def detect_currency(value: PriceInput, default: str = "EUR") -> str:
    """Guess the currency code from symbols or codes in a price string."""
    if not isinstance(value, str):
        return default
    lowered = value.lower()
    for symbol, code in CURRENCY_SYMBOLS.items():
        if symbol in lowered:
            return code
    return default


def parse_money(value: PriceInput, default_currency: str = "EUR", currency: Optional[str] = None) -> Optional[Price]:
    """Parse a price into a ``Price`` model, or None when unparseable."""
    amount = parse_price(value)
    if amount is None:
        return None
    code = (currency or detect_currency(value, default_currency)).upper()
    return Price(amount=amount, currency=code)
