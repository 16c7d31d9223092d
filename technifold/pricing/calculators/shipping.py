from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Sequence, Union

from technifold.core.logging_config import logger
from technifold.domain.geo import country_aliases, normalize_country
from technifold.domain.models import ShippingRate

from ..errors import ShippingRateNotFound, UnresolvableDestination
from .money import ZERO, qmoney, to_decimal

D = Decimal


class ShippingCalculator:
    """
    Flat rate per destination country, free above the configured threshold.
    min_order_value is carried for the presentation layer only.
    """

    def __init__(self, rates: Union[Mapping[str, ShippingRate], Iterable[ShippingRate]]):
        values = rates.values() if isinstance(rates, Mapping) else rates
        self._rates: Dict[str, ShippingRate] = {}
        for r in values:
            self._rates[r.country_code.strip().upper()] = r

    @classmethod
    def from_rows(cls, rows: Sequence[Dict[str, Any]]) -> "ShippingCalculator":
        return cls(parse_shipping_rates(rows))

    @property
    def rates(self) -> Dict[str, ShippingRate]:
        return dict(self._rates)

    def __len__(self) -> int:
        return len(self._rates)

    def rate_for(self, destination_country: str) -> ShippingRate:
        code = normalize_country(destination_country)
        if code is None:
            raise UnresolvableDestination(
                f"Destination country not resolvable: {destination_country!r}",
                meta={"destination_country": destination_country},
            )

        # GB/UK zijn hetzelfde land, tabel kan een van beide gebruiken
        for alias in country_aliases(code):
            rate = self._rates.get(alias)
            if rate is not None:
                return rate

        logger.warning("shipping_rate_missing", country=code)
        raise ShippingRateNotFound(
            f"No shipping rate configured for {code}",
            meta={"destination_country": code},
        )

    def shipping_cost(self, destination_country: str, subtotal: D) -> D:
        rate = self.rate_for(destination_country)
        threshold = rate.free_shipping_threshold
        if threshold is not None and subtotal >= threshold:
            return ZERO
        return qmoney(rate.rate)


def shipping_cost(
    destination_country: str,
    subtotal: D,
    rates: Union[Mapping[str, ShippingRate], Iterable[ShippingRate]],
) -> D:
    return ShippingCalculator(rates).shipping_cost(destination_country, subtotal)


def parse_shipping_rates(rows: Sequence[Dict[str, Any]]) -> List[ShippingRate]:
    out: List[ShippingRate] = []
    for r in rows:
        code = str(r["country_code"]).strip().upper()
        threshold = r.get("free_shipping_threshold")
        min_order = r.get("min_order_value")
        out.append(
            ShippingRate(
                country_code=code,
                rate=to_decimal(r["rate"], field=f"{code}.rate"),
                free_shipping_threshold=(
                    to_decimal(threshold, field=f"{code}.free_shipping_threshold")
                    if threshold is not None
                    else None
                ),
                min_order_value=(
                    to_decimal(min_order, field=f"{code}.min_order_value")
                    if min_order is not None
                    else None
                ),
            )
        )
    return out
