from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from technifold.core.settings import settings

from .money import PCT_DISPLAY, qmoney

D = Decimal
HUNDRED = D("100")


@dataclass(frozen=True)
class FloorPriceResult:
    original_price: D
    sales_price: D
    new_price: D
    percentage: D  # 1 decimal, "60.0"
    price_difference: D
    adjusted: bool


def apply_floor_price(
    distributor_price: D,
    sales_price: D,
    floor_pct: Optional[D] = None,
) -> FloorPriceResult:
    """
    Distributor price may not drop below floor_pct (default 60) of retail.
    Below the floor: raise to sales_price * floor, shown as exactly the floor.
    At or above: keep price and its true percentage.
    """
    if sales_price <= 0:
        raise ValueError(f"sales_price must be > 0 (got {sales_price})")
    if distributor_price < 0:
        raise ValueError(f"distributor_price must be >= 0 (got {distributor_price})")

    floor = D(str(floor_pct if floor_pct is not None else settings.DISTRIBUTOR_FLOOR_PCT))
    current_pct = distributor_price / sales_price * HUNDRED

    if current_pct < floor:
        new_price = qmoney(sales_price * floor / HUNDRED)
        return FloorPriceResult(
            original_price=distributor_price,
            sales_price=sales_price,
            new_price=new_price,
            percentage=floor.quantize(PCT_DISPLAY, rounding=ROUND_HALF_UP),
            price_difference=qmoney(new_price - distributor_price),
            adjusted=True,
        )

    return FloorPriceResult(
        original_price=distributor_price,
        sales_price=sales_price,
        new_price=qmoney(distributor_price),
        percentage=current_pct.quantize(PCT_DISPLAY, rounding=ROUND_HALF_UP),
        price_difference=qmoney(D("0")),
        adjusted=False,
    )
