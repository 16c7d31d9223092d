# technifold/pricing/schemas/pricing_input_v1.py
from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict, Field, StrictInt, constr, field_validator

from technifold.domain.models import CartLine, TaxContext


class PricingItemV1(BaseModel):
    model_config = ConfigDict(extra="forbid")

    product_code: constr(strip_whitespace=True, min_length=1)  # type: ignore
    # StrictInt: "2" of 2.0 uit de UI is geen geldige hoeveelheid
    quantity: StrictInt = Field(gt=0)


class PricingRequestV1(BaseModel):
    """
    Checkout -> pricing. Allowlist: alles wat hier niet staat wordt geweigerd.
    Lege items is toegestaan en geeft een nul-resultaat.
    """

    model_config = ConfigDict(extra="forbid")

    items: List[PricingItemV1] = Field(default_factory=list)
    destination_country: constr(strip_whitespace=True, to_upper=True, min_length=2, max_length=2)  # type: ignore
    has_valid_vat_number: bool = False

    @field_validator("destination_country")
    @classmethod
    def _alpha2(cls, v: str) -> str:
        if not v.isalpha() or not v.isascii():
            raise ValueError("destination_country must be an ISO alpha-2 code")
        return v

    def to_domain(self) -> tuple[list[CartLine], TaxContext]:
        cart = [CartLine(product_code=i.product_code, quantity=i.quantity) for i in self.items]
        return cart, TaxContext(self.destination_country, self.has_valid_vat_number)
