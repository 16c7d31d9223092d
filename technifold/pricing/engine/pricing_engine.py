from __future__ import annotations

from decimal import Decimal
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from technifold.core.logging_config import logger
from technifold.core.settings import settings
from technifold.domain.geo import normalize_country
from technifold.domain.models import (
    CartLine,
    PricedLine,
    PricingResult,
    ProductFact,
    ShippingRate,
    TaxContext,
)

from ..calculators.aggregator import aggregate, subtotal_of
from ..calculators.classifier import ClassifiedLine, partition_cart
from ..calculators.consumable_tiers import (
    ConsumableLine,
    ConsumableTierStrategy,
    TierPrice,
)
from ..calculators.flat import price_flat_lines
from ..calculators.money import format_money, qmoney
from ..calculators.shipping import ShippingCalculator
from ..calculators.tax import VatPolicy
from ..calculators.tool_ladder import ToolDiscountLadder, price_tool_lines
from ..errors import StructuralInputError, UnresolvableDestination
from .config_loader import PricingConfig, load_pricing_config
from .context import PricingContext, PricingSnapshot

D = Decimal


class PricingEngine:
    """
    Cart -> priced, taxed, shipped totals.

    Pure computation over an immutable PricingSnapshot: no I/O, no clock, no
    shared mutable state. Safe to call concurrently with the same snapshot.

    Hard failures (raise): malformed cart, no catalog match at all, mixed
    currencies, missing shipping table, unresolvable destination, no shipping
    rate for the destination.
    Soft failures (validation_errors): unknown product codes are skipped,
    tier inconsistencies fall back to base_price.
    """

    def __init__(
        self,
        snapshot: PricingSnapshot,
        vat_policy: Optional[VatPolicy] = None,
        *,
        default_currency: Optional[str] = None,
    ):
        self.snapshot = snapshot
        self.vat_policy = vat_policy or VatPolicy.from_order()
        self.default_currency = (default_currency or settings.DEFAULT_CURRENCY).upper()

    @classmethod
    def from_config(
        cls,
        config: PricingConfig,
        catalog: Union[Mapping[str, ProductFact], Iterable[ProductFact]],
    ) -> "PricingEngine":
        snapshot = PricingSnapshot.build(
            catalog=catalog,
            tool_ladder=config.tool_ladder,
            consumable_strategy=config.consumable_strategy,
            shipping_rates=config.shipping,
        )
        return cls(snapshot, config.vat_policy, default_currency=config.currency)

    @classmethod
    def from_yaml_file(
        cls,
        path: Optional[str],
        catalog: Union[Mapping[str, ProductFact], Iterable[ProductFact]],
    ) -> "PricingEngine":
        return cls.from_config(load_pricing_config(path), catalog)

    def price_cart(self, cart: Sequence[CartLine], tax_context: TaxContext) -> PricingResult:
        self._validate_cart(cart)

        if not cart:
            return PricingResult.zero(self.default_currency)

        destination = normalize_country(tax_context.destination_country)
        if destination is None:
            logger.info(
                "pricing_rejected",
                reason="unresolvable_destination",
                destination=tax_context.destination_country,
            )
            raise UnresolvableDestination(
                f"Destination country not resolvable: {tax_context.destination_country!r}",
                meta={"destination_country": tax_context.destination_country},
            )

        shipping = self.snapshot.shipping
        if shipping is None:
            raise StructuralInputError(
                "Shipping rate table missing from pricing snapshot",
                code="SHIPPING_TABLE_MISSING",
            )

        classified = partition_cart(cart, self.snapshot.catalog)
        if classified.known_count == 0:
            logger.info("pricing_rejected", reason="no_catalog_match", codes=classified.unknown)
            raise StructuralInputError(
                "Cart does not reference any product in the catalog",
                code="NO_CATALOG_MATCH",
                meta={"product_codes": list(classified.unknown)},
            )

        currency = self._cart_currency(classified.tools + classified.consumables + classified.others)
        ctx = PricingContext(tax=tax_context, currency=currency)

        for code in classified.unknown:
            ctx.warn(
                "CART_LINE_UNKNOWN_PRODUCT",
                f"Product {code} not in catalog snapshot; line skipped",
                product_code=code,
            )

        priced: List[Tuple[int, PricedLine]] = []
        priced.extend(self._price_tools(ctx, classified.tools))
        priced.extend(self._price_consumables(ctx, classified.consumables))
        priced.extend(price_flat_lines(classified.others))

        # cart volgorde terugzetten
        priced.sort(key=lambda entry: entry[0])
        lines = [line for _, line in priced]

        subtotal = subtotal_of(lines)
        shipping_cost = shipping.shipping_cost(destination, subtotal)
        vat = self.vat_policy.resolve(
            TaxContext(destination, tax_context.has_valid_vat_number),
            subtotal + shipping_cost,
        )

        result = aggregate(
            lines,
            shipping=shipping_cost,
            vat=vat,
            currency=currency,
            validation_errors=ctx.validation_errors,
        )

        logger.info(
            "cart_priced",
            lines=len(lines),
            skipped=len(classified.unknown),
            destination=destination,
            vat_rule=vat.rule,
            subtotal=str(result.subtotal),
            total=str(result.total),
            validation_errors=len(result.validation_errors),
        )
        return result

    # -----------------
    # internals
    # -----------------

    @staticmethod
    def _validate_cart(cart: Sequence[CartLine]) -> None:
        if not isinstance(cart, (list, tuple)):
            raise StructuralInputError(
                f"Cart must be a list of CartLine, got {type(cart).__name__}",
                code="MALFORMED_CART",
            )

        for pos, line in enumerate(cart):
            if not isinstance(line, CartLine):
                raise StructuralInputError(
                    f"Cart line {pos} is not a CartLine ({type(line).__name__})",
                    code="MALFORMED_CART",
                    meta={"position": pos},
                )
            if not isinstance(line.product_code, str) or not line.product_code.strip():
                raise StructuralInputError(
                    f"Cart line {pos} has no product_code",
                    code="BLANK_PRODUCT_CODE",
                    meta={"position": pos},
                )
            qty = line.quantity
            if isinstance(qty, bool) or not isinstance(qty, int) or qty <= 0:
                raise StructuralInputError(
                    f"{line.product_code}: quantity must be a positive integer (got {qty!r})",
                    code="INVALID_QUANTITY",
                    meta={"position": pos, "product_code": line.product_code},
                )

    @staticmethod
    def _cart_currency(lines: Sequence[ClassifiedLine]) -> str:
        currencies = sorted({product.currency for _, _, product in lines})
        if len(currencies) > 1:
            raise StructuralInputError(
                f"Cart mixes currencies: {currencies}",
                code="MIXED_CURRENCY",
                meta={"currencies": currencies},
            )
        return currencies[0]

    def _price_tools(
        self, ctx: PricingContext, lines: Sequence[ClassifiedLine]
    ) -> List[Tuple[int, PricedLine]]:
        if not lines:
            return []

        priced, discount = price_tool_lines(lines, self.snapshot.tool_ladder)
        if discount.integrity_error:
            ctx.warn(
                discount.integrity_code or "TOOL_LADDER_INTEGRITY",
                discount.integrity_error,
                total_qty=discount.total_qty,
            )
            ctx.flag(discount.integrity_error)
        return priced

    def _price_consumables(
        self, ctx: PricingContext, lines: Sequence[ClassifiedLine]
    ) -> List[Tuple[int, PricedLine]]:
        if not lines:
            return []

        inputs = [
            ConsumableLine(
                product_code=product.product_code,
                category=product.category,
                base_price=product.base_price,
                pricing_tier=product.pricing_tier,
                quantity=line.quantity,
                currency=product.currency,
            )
            for _, line, product in lines
        ]
        outcome = self.snapshot.consumable_strategy.price(inputs)

        # doorgeven zoals ze binnenkomen
        for message in outcome.validation_errors:
            ctx.flag(message)

        prices = list(outcome.prices)
        if len(prices) != len(inputs):
            ctx.warn(
                "TIER_STRATEGY_MISALIGNED",
                f"Tier strategy returned {len(prices)} prices for {len(inputs)} lines",
                expected=len(inputs),
                got=len(prices),
            )

        out: List[Tuple[int, PricedLine]] = []
        for pos, (idx, line, product) in enumerate(lines):
            tier_price: Optional[TierPrice] = prices[pos] if pos < len(prices) else None
            out.append((idx, self._guarded_line(ctx, product, line.quantity, tier_price)))
        return out

    @staticmethod
    def _guarded_line(
        ctx: PricingContext,
        product: ProductFact,
        quantity: int,
        tier_price: Optional[TierPrice],
    ) -> PricedLine:
        """Any delegate result outside [0, base_price] is replaced by base_price."""
        if tier_price is None:
            ctx.flag(f"{product.product_code}: no tier price returned; charged at base price")
            return PricedLine.build(product, quantity, product.base_price)

        unit = qmoney(tier_price.unit_price)
        if unit < 0 or unit > product.base_price:
            ctx.flag(
                f"{product.product_code}: tier price {format_money(unit, product.currency)} "
                f"outside 0..{format_money(product.base_price, product.currency)}; "
                "charged at base price"
            )
            return PricedLine.build(product, quantity, product.base_price)

        label = tier_price.discount_applied if unit < product.base_price else None
        return PricedLine.build(product, quantity, unit, label)


def price_cart(
    cart: Sequence[CartLine],
    catalog: Union[Mapping[str, ProductFact], Iterable[ProductFact]],
    tool_discount_ladder: ToolDiscountLadder,
    consumable_tier_strategy: ConsumableTierStrategy,
    shipping_rates: Union[
        None, ShippingCalculator, Mapping[str, ShippingRate], Iterable[ShippingRate]
    ],
    tax_context: TaxContext,
    vat_policy: Optional[VatPolicy] = None,
) -> PricingResult:
    snapshot = PricingSnapshot.build(
        catalog=catalog,
        tool_ladder=tool_discount_ladder,
        consumable_strategy=consumable_tier_strategy,
        shipping_rates=shipping_rates,
    )
    return PricingEngine(snapshot, vat_policy).price_cart(cart, tax_context)
