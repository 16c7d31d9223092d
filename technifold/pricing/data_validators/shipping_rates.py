from __future__ import annotations

from typing import Any

from technifold.domain.geo import normalize_country

from .common import (
    ValidationError,
    ValidationResult,
    ValidationWarning,
    _err,
    _warn,
    to_decimal,
    to_str,
)


def validate_shipping_rate_rows(rows: list[dict[str, Any]]) -> ValidationResult:
    dataset = "shipping_rates"
    errors: list[ValidationError] = []
    warnings: list[ValidationWarning] = []

    if not rows:
        return ValidationResult(
            ok=False,
            errors=[_err(dataset, None, None, "EMPTY_TABLE", "No shipping rates configured.")],
            warnings=[],
        )

    seen: set[str] = set()
    for idx, r in enumerate(rows):
        rownum = idx + 1

        raw_code = to_str(r.get("country_code"))
        code = normalize_country(raw_code)
        if code is None:
            errors.append(
                _err(dataset, rownum, "country_code", "INVALID_FORMAT", f"country_code must be ISO alpha-2 (got '{raw_code}').")
            )
        else:
            # GB en UK tellen als hetzelfde land
            canonical = "GB" if code == "UK" else code
            if canonical in seen:
                errors.append(_err(dataset, rownum, "country_code", "DUPLICATE", f"Country '{code}' is listed twice."))
            seen.add(canonical)

        rate = to_decimal(r.get("rate"))
        if rate is None:
            errors.append(_err(dataset, rownum, "rate", "INVALID_NUMBER", "rate must be a number (>= 0)."))
        elif rate < 0:
            errors.append(_err(dataset, rownum, "rate", "OUT_OF_RANGE", "rate must be >= 0."))

        for field in ("free_shipping_threshold", "min_order_value"):
            raw = r.get(field)
            if raw is None:
                continue
            value = to_decimal(raw)
            if value is None or value < 0:
                errors.append(_err(dataset, rownum, field, "INVALID_NUMBER", f"{field} must be a number >= 0."))

        if r.get("free_shipping_threshold") is None:
            warnings.append(
                _warn(dataset, rownum, "free_shipping_threshold", "NO_FREE_SHIPPING", f"{code or raw_code}: shipping is always charged.")
            )

    return ValidationResult(ok=len(errors) == 0, errors=errors, warnings=warnings)
