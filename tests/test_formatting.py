from datetime import date, datetime
from decimal import Decimal

from compdesk.core import formatting
from compdesk.core.formatting import currency_info, format_money, format_wire_date, money, rate_percent


def test_format_wire_date_accepts_dates_and_strings():
    assert format_wire_date(date(2025, 1, 31)) == "2025-01-31"
    assert format_wire_date(datetime(2025, 1, 31, 8, 30)) == "2025-01-31"
    assert format_wire_date("31/01/2025") == "2025-01-31"
    assert format_wire_date(None) is None
    assert format_wire_date("someday") == "someday"


def test_money_rounds_half_up_to_cents():
    assert money(Decimal("0.125")) == 0.13
    assert money(None) == 0.0


def test_rate_percent():
    assert rate_percent(Decimal("0.05")) == 5.0


def test_currency_info_falls_back_for_unknown_codes():
    assert currency_info("gtq")["symbol"] == "Q"
    assert currency_info("EUR") == {"code": "EUR", "symbol": "$", "name": "EUR"}
    assert format_money(Decimal("1234.5"), "MXN") == "$1,234.50 MXN"


def test_only_wire_helpers_are_exported():
    assert set(formatting.__all__) == {"format_wire_date", "money", "rate_percent", "currency_info", "format_money"}
