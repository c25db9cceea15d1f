"""Helpers for consistent wire and console formatting of dates, money and points."""
from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable

WIRE_DATE_FORMAT = "%Y-%m-%d"
_STRING_PARSE_PATTERNS: Iterable[str] = (
    "%Y-%m-%d",
    "%d/%m/%Y",
    "%Y-%m-%d %H:%M:%S",
)

CURRENCIES = {
    "MXN": {"code": "MXN", "symbol": "$", "name": "Peso mexicano"},
    "USD": {"code": "USD", "symbol": "$", "name": "Dólar estadounidense"},
    "COP": {"code": "COP", "symbol": "$", "name": "Peso colombiano"},
    "GTQ": {"code": "GTQ", "symbol": "Q", "name": "Quetzal guatemalteco"},
}
DEFAULT_CURRENCY = "MXN"

_CENTS = Decimal("0.01")


def _coerce_to_datetime(value: Any) -> datetime | None:
    """Attempt to normalise incoming date-like values to a datetime."""
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return datetime.fromisoformat(text)
        except ValueError:
            for pattern in _STRING_PARSE_PATTERNS:
                try:
                    return datetime.strptime(text, pattern)
                except ValueError:
                    continue
        return None
    return None


def format_wire_date(value: Any) -> str | None:
    """Format a value as yyyy-mm-dd, ``None`` when empty."""
    coerced = _coerce_to_datetime(value)
    if coerced is None:
        return None if value in (None, "") else str(value)
    return coerced.strftime(WIRE_DATE_FORMAT)


def money(value: Any) -> float:
    """Round a monetary amount half-up to cents and return it as a JSON number."""
    if value is None:
        return 0.0
    return float(Decimal(value).quantize(_CENTS, rounding=ROUND_HALF_UP))


def rate_percent(rate: Decimal) -> float:
    """``Decimal("0.05")`` -> ``5.0``."""
    return float(rate * 100)


def currency_info(code: str | None) -> dict:
    normalized = (code or DEFAULT_CURRENCY).strip().upper() or DEFAULT_CURRENCY
    if normalized in CURRENCIES:
        return dict(CURRENCIES[normalized])
    return {"code": normalized, "symbol": "$", "name": normalized}


def format_money(value: Any, code: str | None = DEFAULT_CURRENCY) -> str:
    info = currency_info(code)
    return f"{info['symbol']}{money(value):,.2f} {info['code']}"


__all__ = [
    "format_wire_date",
    "money",
    "rate_percent",
    "currency_info",
    "format_money",
]
