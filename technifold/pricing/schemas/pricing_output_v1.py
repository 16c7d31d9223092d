# technifold/pricing/schemas/pricing_output_v1.py
from __future__ import annotations

from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict

from technifold.domain.models import PricedLine, PricingResult


def _money(x: Decimal) -> str:
    # fixed-point, nooit exponent notatie ("0E-2")
    return f"{x:f}"


class PricedLineV1(BaseModel):
    model_config = ConfigDict(extra="forbid")

    product_code: str
    description: str
    quantity: int
    base_price: str
    unit_price: str
    line_total: str
    discount_applied: Optional[str] = None
    currency: str

    @classmethod
    def from_line(cls, line: PricedLine) -> "PricedLineV1":
        return cls(
            product_code=line.product_code,
            description=line.description,
            quantity=line.quantity,
            base_price=_money(line.base_price),
            unit_price=_money(line.unit_price),
            line_total=_money(line.line_total),
            discount_applied=line.discount_applied,
            currency=line.currency,
        )


class PricingResultV1(BaseModel):
    """
    Output lock v1: every amount is a fixed-point string ("90.00"), vat_rate too ("0.20").
    """

    model_config = ConfigDict(extra="forbid")

    version: Literal["v1"] = "v1"
    currency: str
    line_items: List[PricedLineV1]
    subtotal: str
    shipping: str
    vat_amount: str
    vat_rate: str
    vat_exempt_reason: Optional[str] = None
    total: str
    total_savings: str
    validation_errors: List[str]

    @classmethod
    def from_result(cls, result: PricingResult) -> "PricingResultV1":
        return cls(
            currency=result.currency,
            line_items=[PricedLineV1.from_line(l) for l in result.line_items],
            subtotal=_money(result.subtotal),
            shipping=_money(result.shipping),
            vat_amount=_money(result.vat_amount),
            vat_rate=_money(result.vat_rate),
            vat_exempt_reason=result.vat_exempt_reason,
            total=_money(result.total),
            total_savings=_money(result.total_savings),
            validation_errors=list(result.validation_errors),
        )
