from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Sequence

from technifold.domain.models import PricedLine, PricingResult, VatResolution

from .money import ZERO, qmoney

D = Decimal


def subtotal_of(lines: Iterable[PricedLine]) -> D:
    return qmoney(sum((l.line_total for l in lines), ZERO))


def savings_of(lines: Iterable[PricedLine]) -> D:
    return qmoney(sum((l.savings for l in lines), ZERO))


def aggregate(
    lines: Sequence[PricedLine],
    *,
    shipping: D,
    vat: VatResolution,
    currency: str,
    validation_errors: Sequence[str] = (),
) -> PricingResult:
    subtotal = subtotal_of(lines)
    shipping = qmoney(shipping)
    return PricingResult(
        line_items=tuple(lines),
        subtotal=subtotal,
        shipping=shipping,
        vat_amount=vat.vat_amount,
        vat_rate=vat.vat_rate,
        vat_exempt_reason=vat.vat_exempt_reason,
        total=qmoney(subtotal + shipping + vat.vat_amount),
        total_savings=savings_of(lines),
        currency=currency,
        validation_errors=tuple(validation_errors),
    )
