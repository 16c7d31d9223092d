from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Optional, Sequence

from technifold.core.settings import settings
from technifold.domain.geo import Jurisdiction, jurisdiction_for, normalize_country
from technifold.domain.models import TaxContext, VatResolution

from ..errors import NoVatRuleMatched, UnresolvableDestination
from .money import ZERO, qmoney

D = Decimal

EU_REVERSE_CHARGE = "EU Reverse Charge"
EXPORT = "Export"


@dataclass(frozen=True)
class VatRule:
    """
    One line of the VAT precedence table.
    jurisdiction None = any destination; requires_vat_number None = don't care.
    """

    name: str
    vat_rate: D
    jurisdiction: Optional[Jurisdiction] = None
    requires_vat_number: Optional[bool] = None
    exempt_reason: Optional[str] = None

    def matches(self, jurisdiction: Jurisdiction, has_valid_vat_number: bool) -> bool:
        if self.jurisdiction is not None and self.jurisdiction != jurisdiction:
            return False
        if (
            self.requires_vat_number is not None
            and self.requires_vat_number != has_valid_vat_number
        ):
            return False
        return True


def builtin_vat_rules(standard_rate: Optional[D] = None) -> Dict[str, VatRule]:
    rate = D(str(standard_rate if standard_rate is not None else settings.STANDARD_VAT_RATE))
    return {
        "uk_domestic": VatRule("uk_domestic", rate, Jurisdiction.UK),
        "eu_reverse_charge": VatRule(
            "eu_reverse_charge", ZERO, Jurisdiction.EU, True, EU_REVERSE_CHARGE
        ),
        # EU zonder btw-nummer: UK btw rekenen alsof binnenlands
        "eu_no_vat_number": VatRule("eu_no_vat_number", rate, Jurisdiction.EU, False),
        "export": VatRule("export", ZERO, None, None, EXPORT),
    }


class VatPolicy:
    """Ordered VAT rules; the first matching rule decides."""

    def __init__(self, rules: Sequence[VatRule]):
        if not rules:
            raise ValueError("VatPolicy needs at least one rule")
        self.rules = tuple(rules)

    @classmethod
    def from_order(
        cls, order: Optional[Sequence[str]] = None, standard_rate: Optional[D] = None
    ) -> "VatPolicy":
        available = builtin_vat_rules(standard_rate)
        names = list(order if order is not None else settings.VAT_RULE_ORDER)
        unknown = [n for n in names if n not in available]
        if unknown:
            raise ValueError(
                f"Unknown VAT rules: {unknown}. Available: {sorted(available)}"
            )
        return cls([available[n] for n in names])

    def resolve(self, tax_context: TaxContext, taxable_amount: D) -> VatResolution:
        code = normalize_country(tax_context.destination_country)
        if code is None:
            raise UnresolvableDestination(
                f"Destination country not resolvable: {tax_context.destination_country!r}",
                meta={"destination_country": tax_context.destination_country},
            )

        jurisdiction = jurisdiction_for(code)
        has_vat = bool(tax_context.has_valid_vat_number)
        for rule in self.rules:
            if rule.matches(jurisdiction, has_vat):
                return VatResolution(
                    vat_amount=qmoney(taxable_amount * rule.vat_rate),
                    vat_rate=rule.vat_rate,
                    vat_exempt_reason=rule.exempt_reason,
                    rule=rule.name,
                )

        raise NoVatRuleMatched(
            f"No VAT rule matched {code} (vat number: {has_vat})",
            meta={"destination_country": code, "rules": [r.name for r in self.rules]},
        )


def resolve_vat(
    destination_country: str,
    has_valid_vat_number: bool,
    taxable_amount: D,
    policy: Optional[VatPolicy] = None,
) -> VatResolution:
    """taxable_amount = subtotal + shipping; VAT is charged on shipping too."""
    policy = policy or VatPolicy.from_order()
    return policy.resolve(
        TaxContext(destination_country, has_valid_vat_number), taxable_amount
    )
