from __future__ import annotations

from typing import Any, Dict, List, Optional


class PricingError(Exception):
    """
    Base for every hard failure of the pricing core.
    Per-line problems never raise; they end up in validation_errors.
    """

    default_code = "PRICING_ERROR"

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        meta: Optional[Dict[str, Any]] = None,
    ):
        self.code = str(code or self.default_code)
        self.message = str(message)
        self.meta = meta or {}
        super().__init__(f"{self.code}: {self.message}")


class StructuralInputError(PricingError):
    """Rejected before any pricing work begins (malformed cart, no catalog match)."""

    default_code = "STRUCTURAL_INPUT"


class UnresolvableDestination(StructuralInputError):
    default_code = "UNRESOLVABLE_DESTINATION"


class ShippingRateNotFound(PricingError):
    default_code = "SHIPPING_RATE_MISSING"


class NoVatRuleMatched(PricingError):
    default_code = "NO_VAT_RULE"


class PricingConfigError(PricingError):
    """Pricing config failed schema or ladder validation at load time."""

    default_code = "INVALID_PRICING_CONFIG"

    def __init__(
        self,
        message: str,
        *,
        errors: Optional[List[Any]] = None,
        code: Optional[str] = None,
        meta: Optional[Dict[str, Any]] = None,
    ):
        self.errors = list(errors or [])
        super().__init__(message, code=code, meta=meta)
