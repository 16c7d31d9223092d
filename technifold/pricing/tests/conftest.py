from __future__ import annotations

from decimal import Decimal

import pytest
from structlog.testing import capture_logs

from technifold.domain.models import (
    CategoryPricingTier,
    CategoryTierBreakpoint,
    ProductFact,
    ProductType,
    ShippingRate,
    TierScope,
)
from technifold.pricing.calculators.consumable_tiers import CategoryTierStrategy
from technifold.pricing.calculators.shipping import ShippingCalculator
from technifold.pricing.calculators.tool_ladder import ToolDiscountLadder
from technifold.pricing.engine.context import PricingSnapshot
from technifold.pricing.engine.pricing_engine import PricingEngine

D = Decimal


@pytest.fixture(autouse=True)
def captured_logs():
    """Silences structlog output and lets tests assert on emitted events."""
    with capture_logs() as logs:
        yield logs


def _product(code, price, product_type, category=None, tier=None, currency="GBP"):
    return ProductFact(
        product_code=code,
        description=f"{code} description",
        base_price=D(price),
        category=category,
        product_type=product_type,
        pricing_tier=tier,
        currency=currency,
    )


@pytest.fixture
def catalog():
    products = [
        _product("T-100", "100.00", ProductType.TOOL, "Creasing Tool"),
        _product("T-200", "250.00", ProductType.TOOL, "Perforating Tool"),
        _product("C-STD-1", "33.00", ProductType.CONSUMABLE, "Creasing Matrix", "standard"),
        _product("C-STD-2", "33.00", ProductType.CONSUMABLE, "Creasing Rib", "standard"),
        _product("C-PRM-1", "40.00", ProductType.CONSUMABLE, "Perforating Blade", "premium"),
        _product("C-NOTIER", "12.50", ProductType.CONSUMABLE, "Spare Part"),
        _product("O-MANUAL", "5.00", ProductType.OTHER, "Literature"),
    ]
    return {p.product_code: p for p in products}


@pytest.fixture
def tool_ladder():
    return ToolDiscountLadder.from_rows(
        [
            {"min_qty": 1, "max_qty": 1, "discount_pct": 0},
            {"min_qty": 2, "max_qty": 2, "discount_pct": 10},
            {"min_qty": 3, "max_qty": 3, "discount_pct": 20},
            {"min_qty": 4, "max_qty": 4, "discount_pct": 30},
            {"min_qty": 5, "max_qty": 999, "discount_pct": 40},
        ]
    )


@pytest.fixture
def standard_tier():
    return CategoryPricingTier(
        pricing_tier="standard",
        scope=TierScope.GROUP,
        max_qty_per_sku=20,
        breakpoints=(
            CategoryTierBreakpoint(1, 3, unit_price=D("33.00")),
            CategoryTierBreakpoint(4, 7, unit_price=D("29.00")),
            CategoryTierBreakpoint(8, 9, unit_price=D("27.00")),
            CategoryTierBreakpoint(10, 999, unit_price=D("25.00")),
        ),
    )


@pytest.fixture
def premium_tier():
    return CategoryPricingTier(
        pricing_tier="premium",
        scope=TierScope.SKU,
        max_qty_per_sku=10,
        breakpoints=(
            CategoryTierBreakpoint(1, 2, discount_pct=D("0")),
            CategoryTierBreakpoint(3, 4, discount_pct=D("7")),
            CategoryTierBreakpoint(5, 9, discount_pct=D("15")),
            CategoryTierBreakpoint(10, 999, discount_pct=D("25")),
        ),
    )


@pytest.fixture
def tier_strategy(standard_tier, premium_tier):
    return CategoryTierStrategy([standard_tier, premium_tier])


@pytest.fixture
def shipping_rates():
    return [
        ShippingRate("GB", D("15.00"), free_shipping_threshold=D("500.00")),
        ShippingRate("DE", D("25.00"), free_shipping_threshold=D("1000.00")),
        ShippingRate("US", D("45.00")),
    ]


@pytest.fixture
def shipping(shipping_rates):
    return ShippingCalculator(shipping_rates)


@pytest.fixture
def snapshot(catalog, tool_ladder, tier_strategy, shipping):
    return PricingSnapshot.build(
        catalog=catalog,
        tool_ladder=tool_ladder,
        consumable_strategy=tier_strategy,
        shipping_rates=shipping,
    )


@pytest.fixture
def engine(snapshot):
    return PricingEngine(snapshot)
