from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from technifold.domain.geo import CURRENCY_SYMBOLS

D = Decimal

MONEY = D("0.01")
PCT_DISPLAY = D("0.1")
ZERO = D("0.00")


def qmoney(x: Decimal) -> Decimal:
    return x.quantize(MONEY, rounding=ROUND_HALF_UP)


def to_decimal(value: Any, *, field: str = "amount") -> Decimal:
    """
    Strict decimal parsing for money and percentages: Decimal, int or numeric string.
    Floats are refused, currency math never goes through binary floating point.
    """
    if isinstance(value, bool):
        raise TypeError(f"{field}: bool is not a monetary value")
    if isinstance(value, float):
        raise TypeError(f"{field}: float not allowed for money, use Decimal or str")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = D(value)
    elif isinstance(value, str):
        s = value.strip().lstrip("£€$").replace(",", "")
        try:
            result = D(s)
        except InvalidOperation:
            raise ValueError(f"{field}: invalid decimal: {value!r}")
    else:
        raise TypeError(f"{field}: expected Decimal/int/str, got {type(value).__name__}")

    if not result.is_finite():
        raise ValueError(f"{field}: not a finite number: {value!r}")
    return result


def format_pct(pct: Decimal) -> str:
    """10.00 -> '10', 12.50 -> '12.5'"""
    normalized = pct.normalize()
    return f"{normalized:f}"


def format_money(amount: Decimal, currency: str) -> str:
    symbol = CURRENCY_SYMBOLS.get(currency.upper())
    if symbol:
        return f"{symbol}{qmoney(amount)}"
    return f"{currency.upper()} {qmoney(amount)}"
