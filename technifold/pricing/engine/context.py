from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, List, Mapping, Optional, Union

from technifold.core.logging_config import logger
from technifold.domain.models import ProductFact, ShippingRate, TaxContext

from ..calculators.consumable_tiers import CategoryTierStrategy, ConsumableTierStrategy
from ..calculators.shipping import ShippingCalculator
from ..calculators.tool_ladder import ToolDiscountLadder


# -----------------------------
# Snapshot (read-only per request)
# -----------------------------


@dataclass(frozen=True)
class PricingSnapshot:
    """
    Everything one pricing call reads. Built once from the data layer and
    shared between requests; the engine never mutates it.
    """

    catalog: Mapping[str, ProductFact]
    tool_ladder: ToolDiscountLadder
    consumable_strategy: ConsumableTierStrategy
    shipping: Optional[ShippingCalculator]

    @staticmethod
    def build(
        *,
        catalog: Union[Mapping[str, ProductFact], Iterable[ProductFact]],
        tool_ladder: Optional[ToolDiscountLadder] = None,
        consumable_strategy: Optional[ConsumableTierStrategy] = None,
        shipping_rates: Union[
            None, ShippingCalculator, Mapping[str, ShippingRate], Iterable[ShippingRate]
        ] = None,
    ) -> "PricingSnapshot":
        if isinstance(catalog, Mapping):
            by_code = dict(catalog)
        else:
            by_code = {p.product_code: p for p in catalog}

        if shipping_rates is None or isinstance(shipping_rates, ShippingCalculator):
            shipping = shipping_rates
        else:
            shipping = ShippingCalculator(shipping_rates)

        return PricingSnapshot(
            catalog=by_code,
            tool_ladder=tool_ladder or ToolDiscountLadder([]),
            consumable_strategy=consumable_strategy or CategoryTierStrategy([]),
            shipping=shipping,
        )

    def with_catalog(
        self, catalog: Union[Mapping[str, ProductFact], Iterable[ProductFact]]
    ) -> "PricingSnapshot":
        return PricingSnapshot.build(
            catalog=catalog,
            tool_ladder=self.tool_ladder,
            consumable_strategy=self.consumable_strategy,
            shipping_rates=self.shipping,
        )


# -----------------------------
# Runtime state (per request)
# -----------------------------


@dataclass
class PricingContext:
    """
    Per-request accumulator. Stateless outside this object so concurrent
    requests never share anything.
    """

    tax: TaxContext
    currency: str
    validation_errors: List[str] = field(default_factory=list)

    def flag(self, message: str) -> None:
        """Customer-visible, non-blocking."""
        self.validation_errors.append(message)

    def warn(self, code: str, message: str, **meta: Any) -> None:
        """Internal data-integrity note; logged, not shown in the result."""
        logger.warning(code.lower(), message=message, **meta)
