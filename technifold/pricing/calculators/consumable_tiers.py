from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import (
    Any,
    Dict,
    Iterable,
    List,
    Optional,
    Protocol,
    Sequence,
    Tuple,
    runtime_checkable,
)

from technifold.domain.models import (
    CategoryPricingTier,
    CategoryTierBreakpoint,
    OPEN_ENDED_MAX_QTY,
    TierScope,
)

from .money import format_money, format_pct, qmoney, to_decimal

D = Decimal
HUNDRED = D("100")


@dataclass(frozen=True)
class ConsumableLine:
    product_code: str
    category: Optional[str]
    base_price: D
    pricing_tier: Optional[str]
    quantity: int
    currency: str = "GBP"


@dataclass(frozen=True)
class TierPrice:
    unit_price: D
    discount_applied: Optional[str] = None


@dataclass(frozen=True)
class TierPricingOutcome:
    """prices[i] belongs to lines[i]; the strategy never drops a line."""

    prices: Tuple[TierPrice, ...]
    validation_errors: Tuple[str, ...] = field(default_factory=tuple)


@runtime_checkable
class ConsumableTierStrategy(Protocol):
    def price(self, lines: Sequence[ConsumableLine]) -> TierPricingOutcome: ...


class CategoryTierStrategy:
    """
    Default consumable pricing, keyed on (category, pricing_tier).

    - scope=group: unit price / discount follows the TOTAL quantity of every
      cart line that resolves to the same tier set (the "standard" ladder)
    - scope=sku: each line uses its own quantity (the "premium" ladder)

    Inconsistent tier data never fails the cart: the line falls back to its
    base_price and the problem is reported in validation_errors.
    """

    def __init__(self, tiers: Iterable[CategoryPricingTier]):
        self._tiers: Dict[Tuple[Optional[str], str], CategoryPricingTier] = {}
        for tier in tiers:
            self._tiers[tier.key] = tier

    @classmethod
    def from_config(cls, rows: Sequence[Dict[str, Any]]) -> "CategoryTierStrategy":
        return cls(parse_category_tiers(rows))

    @property
    def tiers(self) -> Tuple[CategoryPricingTier, ...]:
        return tuple(self._tiers.values())

    def resolve(
        self, category: Optional[str], pricing_tier: str
    ) -> Optional[CategoryPricingTier]:
        if category is not None:
            specific = self._tiers.get((category, pricing_tier))
            if specific is not None:
                return specific
        return self._tiers.get((None, pricing_tier))

    def price(self, lines: Sequence[ConsumableLine]) -> TierPricingOutcome:
        errors: List[str] = []
        prices: List[Optional[TierPrice]] = [None] * len(lines)

        resolved: Dict[int, CategoryPricingTier] = {}
        for i, line in enumerate(lines):
            if not line.pricing_tier:
                # geen tier = gewone catalogusprijs, geen fout
                prices[i] = TierPrice(unit_price=line.base_price)
                continue

            tier = self.resolve(line.category, line.pricing_tier)
            if tier is None:
                errors.append(
                    f"{line.product_code}: no pricing tier '{line.pricing_tier}' "
                    f"configured for category '{line.category or '-'}'; charged at base price"
                )
                prices[i] = TierPrice(unit_price=line.base_price)
                continue

            resolved[i] = tier
            if tier.max_qty_per_sku is not None and line.quantity > tier.max_qty_per_sku:
                errors.append(
                    f"{line.product_code}: Maximum {tier.max_qty_per_sku} units per SKU "
                    f"(you have {line.quantity})"
                )

        # group scope: totals per tier set
        group_totals: Dict[Tuple[Optional[str], str], int] = {}
        for i, tier in resolved.items():
            if tier.scope == TierScope.GROUP:
                group_totals[tier.key] = group_totals.get(tier.key, 0) + lines[i].quantity

        for i, tier in resolved.items():
            line = lines[i]
            qty = group_totals[tier.key] if tier.scope == TierScope.GROUP else line.quantity
            prices[i] = self._price_line(line, tier, qty, errors)

        return TierPricingOutcome(
            prices=tuple(prices),  # type: ignore[arg-type]
            validation_errors=tuple(errors),
        )

    @staticmethod
    def _price_line(
        line: ConsumableLine,
        tier: CategoryPricingTier,
        qty: int,
        errors: List[str],
    ) -> TierPrice:
        bp = find_breakpoint(tier.breakpoints, qty)
        if bp is None:
            errors.append(
                f"{line.product_code}: pricing tier '{tier.pricing_tier}' has no "
                f"breakpoint for quantity {qty}; charged at base price"
            )
            return TierPrice(unit_price=line.base_price)

        if bp.unit_price is not None:
            unit = qmoney(bp.unit_price)
            if unit > line.base_price:
                errors.append(
                    f"{line.product_code}: tier price {format_money(unit, line.currency)} "
                    f"exceeds base price {format_money(line.base_price, line.currency)}; "
                    "charged at base price"
                )
                return TierPrice(unit_price=line.base_price)
            if unit == line.base_price:
                return TierPrice(unit_price=unit)

            if tier.scope == TierScope.GROUP:
                label = (
                    f"Tier pricing: {qty} total units @ "
                    f"{format_money(unit, line.currency)}"
                )
            else:
                label = f"Tier pricing: {qty} units @ {format_money(unit, line.currency)}"
            return TierPrice(unit_price=unit, discount_applied=label)

        pct = bp.discount_pct if bp.discount_pct is not None else D("0")
        unit = qmoney(line.base_price * (1 - pct / HUNDRED))
        if pct <= 0:
            return TierPrice(unit_price=unit)
        return TierPrice(
            unit_price=unit, discount_applied=f"{format_pct(pct)}% volume discount"
        )


def find_breakpoint(
    breakpoints: Sequence[CategoryTierBreakpoint], qty: int
) -> Optional[CategoryTierBreakpoint]:
    matches = [bp for bp in breakpoints if bp.contains(qty)]
    if len(matches) != 1:
        # 0 = gat in de staffel, >1 = overlap; beide zijn inconsistent
        return None
    return matches[0]


def parse_category_tiers(rows: Sequence[Dict[str, Any]]) -> List[CategoryPricingTier]:
    """
    Config shape:
      - pricing_tier: standard
        category: null            # optional, null = any category
        scope: group              # group | sku
        max_qty_per_sku: 20       # optional
        breakpoints:
          - {min_qty: 1, max_qty: 3, unit_price: "33.00"}
          - {min_qty: 4, max_qty: 999, unit_price: "29.00"}
    """
    out: List[CategoryPricingTier] = []
    for r in rows:
        bps: List[CategoryTierBreakpoint] = []
        for b in r.get("breakpoints") or []:
            max_qty = b.get("max_qty")
            unit_price = b.get("unit_price")
            discount_pct = b.get("discount_pct")
            bps.append(
                CategoryTierBreakpoint(
                    min_qty=int(b["min_qty"]),
                    max_qty=int(max_qty) if max_qty is not None else None,
                    unit_price=(
                        to_decimal(unit_price, field="unit_price")
                        if unit_price is not None
                        else None
                    ),
                    discount_pct=(
                        to_decimal(discount_pct, field="discount_pct")
                        if discount_pct is not None
                        else None
                    ),
                )
            )
        bps.sort(key=lambda bp: (bp.min_qty, bp.max_qty or OPEN_ENDED_MAX_QTY))

        max_per_sku = r.get("max_qty_per_sku")
        out.append(
            CategoryPricingTier(
                pricing_tier=str(r["pricing_tier"]),
                category=(str(r["category"]) if r.get("category") else None),
                scope=TierScope(str(r.get("scope") or TierScope.SKU.value)),
                breakpoints=tuple(bps),
                max_qty_per_sku=int(max_per_sku) if max_per_sku is not None else None,
            )
        )
    return out
