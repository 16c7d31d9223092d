from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from technifold.pricing.calculators.money import ZERO, qmoney, to_decimal

D = Decimal

# max_qty = 999 betekent "en hoger"
OPEN_ENDED_MAX_QTY = 999


class ProductType(str, Enum):
    TOOL = "tool"
    CONSUMABLE = "consumable"
    OTHER = "other"

    @classmethod
    def parse(cls, raw: Any) -> "ProductType":
        value = str(raw or "").strip().lower()
        for member in cls:
            if member.value == value:
                return member
        return cls.OTHER


class TierScope(str, Enum):
    GROUP = "group"  # total qty across all lines sharing the tier set
    SKU = "sku"  # qty of the line itself


# -----------------------------
# Input
# -----------------------------


@dataclass(frozen=True)
class CartLine:
    product_code: str
    quantity: int


@dataclass(frozen=True)
class ProductFact:
    product_code: str
    description: str
    base_price: D
    category: Optional[str]
    product_type: ProductType
    pricing_tier: Optional[str] = None
    currency: str = "GBP"

    def __post_init__(self) -> None:
        # altijd hele pence; unit_price wordt op dezelfde schaal afgerond
        object.__setattr__(
            self, "base_price", qmoney(to_decimal(self.base_price, field=f"{self.product_code}.base_price"))
        )

    @staticmethod
    def from_row(row: Dict[str, Any]) -> "ProductFact":
        """
        Catalog rows as they come out of the products table:
          {"product_code": "T-100", "description": "...", "price": "100.00",
           "category": "Creasing Tool", "type": "tool", "pricing_tier": null,
           "currency": "GBP"}
        """
        code = str(row.get("product_code") or "").strip()
        if not code:
            raise ValueError("catalog row without product_code")

        raw_price = row.get("base_price", row.get("price"))
        if raw_price is None:
            raise ValueError(f"{code}: catalog row without price")
        base_price = to_decimal(raw_price, field=f"{code}.base_price")
        if base_price < 0:
            raise ValueError(f"{code}: base_price must be >= 0")

        pricing_tier = row.get("pricing_tier")
        pricing_tier = str(pricing_tier).strip() if pricing_tier else None

        return ProductFact(
            product_code=code,
            description=str(row.get("description") or code),
            base_price=base_price,
            category=(str(row["category"]).strip() if row.get("category") else None),
            product_type=ProductType.parse(row.get("product_type", row.get("type"))),
            pricing_tier=pricing_tier or None,
            currency=str(row.get("currency") or "GBP").upper(),
        )


@dataclass(frozen=True)
class DiscountTierRow:
    min_qty: int
    max_qty: int
    discount_pct: D
    active: bool = True

    @property
    def open_ended(self) -> bool:
        return self.max_qty == OPEN_ENDED_MAX_QTY

    def contains(self, qty: int) -> bool:
        if qty < self.min_qty:
            return False
        return self.open_ended or qty <= self.max_qty


@dataclass(frozen=True)
class CategoryTierBreakpoint:
    min_qty: int
    max_qty: Optional[int] = None  # None of 999 = open-ended
    unit_price: Optional[D] = None
    discount_pct: Optional[D] = None

    @property
    def open_ended(self) -> bool:
        return self.max_qty is None or self.max_qty == OPEN_ENDED_MAX_QTY

    def contains(self, qty: int) -> bool:
        if qty < self.min_qty:
            return False
        return self.open_ended or qty <= self.max_qty  # type: ignore[operator]


@dataclass(frozen=True)
class CategoryPricingTier:
    pricing_tier: str
    breakpoints: Tuple[CategoryTierBreakpoint, ...]
    category: Optional[str] = None  # None = geldt voor elke categorie
    scope: TierScope = TierScope.SKU
    max_qty_per_sku: Optional[int] = None

    @property
    def key(self) -> Tuple[Optional[str], str]:
        return (self.category, self.pricing_tier)


@dataclass(frozen=True)
class ShippingRate:
    country_code: str
    rate: D
    free_shipping_threshold: Optional[D] = None
    # advisory voor de UI, wordt hier niet afgedwongen
    min_order_value: Optional[D] = None


@dataclass(frozen=True)
class TaxContext:
    destination_country: str
    has_valid_vat_number: bool = False


# -----------------------------
# Output
# -----------------------------


@dataclass(frozen=True)
class PricedLine:
    product_code: str
    description: str
    quantity: int
    base_price: D
    unit_price: D
    line_total: D
    discount_applied: Optional[str]
    currency: str

    @property
    def savings(self) -> D:
        return (self.base_price - self.unit_price) * self.quantity

    @staticmethod
    def build(
        product: ProductFact,
        quantity: int,
        unit_price: D,
        discount_applied: Optional[str] = None,
    ) -> "PricedLine":
        unit = qmoney(unit_price)
        return PricedLine(
            product_code=product.product_code,
            description=product.description,
            quantity=quantity,
            base_price=product.base_price,
            unit_price=unit,
            # exact: unit is al gequantized, geen tweede afronding
            line_total=unit * quantity,
            discount_applied=discount_applied,
            currency=product.currency,
        )


@dataclass(frozen=True)
class VatResolution:
    vat_amount: D
    vat_rate: D
    vat_exempt_reason: Optional[str] = None
    rule: Optional[str] = None


@dataclass(frozen=True)
class PricingResult:
    line_items: Tuple[PricedLine, ...]
    subtotal: D
    shipping: D
    vat_amount: D
    vat_rate: D
    total: D
    total_savings: D
    currency: str
    vat_exempt_reason: Optional[str] = None
    validation_errors: Tuple[str, ...] = field(default_factory=tuple)

    @staticmethod
    def zero(currency: str) -> "PricingResult":
        return PricingResult(
            line_items=(),
            subtotal=ZERO,
            shipping=ZERO,
            vat_amount=ZERO,
            vat_rate=ZERO,
            total=ZERO,
            total_savings=ZERO,
            currency=currency,
        )
