from __future__ import annotations

from typing import Any, Optional

from technifold.domain.models import OPEN_ENDED_MAX_QTY

from .common import (
    ValidationError,
    ValidationResult,
    ValidationWarning,
    _err,
    _warn,
    to_decimal,
    to_int,
)

VALID_SCOPES = {"group", "sku"}


def _check_ranges(
    dataset: str,
    ranges: list[tuple[int, Optional[int], int]],
    errors: list[ValidationError],
    warnings: list[ValidationWarning],
) -> None:
    """
    ranges: (min_qty, max_qty, rownum); max_qty None/999 = open-ended.
    Strict: start at 1, no overlap, no gaps. Missing open-ended top row is a warning.
    """
    if not ranges:
        return

    ranges = sorted(ranges, key=lambda x: x[0])

    if ranges[0][0] != 1:
        errors.append(
            _err(dataset, ranges[0][2], "min_qty", "COVERAGE_GAP", "First range must start at min_qty=1.")
        )

    for i in range(len(ranges) - 1):
        v1, t1, _ = ranges[i]
        v2, _, r2 = ranges[i + 1]

        if t1 is None or t1 == OPEN_ENDED_MAX_QTY:
            errors.append(
                _err(dataset, r2, "min_qty", "OVERLAP", "Range follows an open-ended range.")
            )
            break

        if v2 <= t1:
            errors.append(
                _err(
                    dataset, r2, "min_qty", "OVERLAP",
                    f"Ranges overlap: previous ends at {t1}, next starts at {v2}.",
                )
            )
        elif v2 != t1 + 1:
            errors.append(
                _err(
                    dataset, r2, "min_qty", "COVERAGE_GAP",
                    f"Gap found: previous ends at {t1}, next starts at {v2}.",
                )
            )

    last_max = ranges[-1][1]
    if last_max is not None and last_max != OPEN_ENDED_MAX_QTY:
        warnings.append(
            _warn(
                dataset, ranges[-1][2], "max_qty", "NOT_OPEN_ENDED",
                f"Last range ends at {last_max}; larger quantities get no tier.",
            )
        )


def _parse_range(
    dataset: str,
    row: dict[str, Any],
    rownum: int,
    errors: list[ValidationError],
    *,
    max_required: bool,
) -> Optional[tuple[int, Optional[int]]]:
    v = to_int(row.get("min_qty"))
    raw_max = row.get("max_qty")
    t = to_int(raw_max)

    if v is None:
        errors.append(_err(dataset, rownum, "min_qty", "INVALID_INT", "min_qty must be an integer (>= 1)."))
        return None
    if v < 1:
        errors.append(_err(dataset, rownum, "min_qty", "OUT_OF_RANGE", "min_qty must be >= 1."))
        return None

    if raw_max is None and max_required:
        errors.append(_err(dataset, rownum, "max_qty", "REQUIRED", "max_qty is required (999 = open-ended)."))
        return None
    if raw_max is not None and t is None:
        errors.append(_err(dataset, rownum, "max_qty", "INVALID_INT", "max_qty must be an integer."))
        return None
    if t is not None and v > t:
        errors.append(_err(dataset, rownum, "max_qty", "INVALID_RANGE", "min_qty must be <= max_qty."))
        return None

    return v, t


def validate_tool_ladder_rows(rows: list[dict[str, Any]]) -> ValidationResult:
    dataset = "tool_discount_ladder"
    errors: list[ValidationError] = []
    warnings: list[ValidationWarning] = []

    if not rows:
        # lege ladder is toegestaan: geen tool korting
        warnings.append(_warn(dataset, None, None, "EMPTY_LADDER", "No tool discount rows configured."))
        return ValidationResult(ok=True, errors=errors, warnings=warnings)

    ranges: list[tuple[int, Optional[int], int]] = []
    for idx, r in enumerate(rows):
        rownum = idx + 1
        rng = _parse_range(dataset, r, rownum, errors, max_required=True)

        k = to_decimal(r.get("discount_pct"))
        if k is None:
            errors.append(_err(dataset, rownum, "discount_pct", "INVALID_NUMBER", "discount_pct must be a number (0-100)."))
        elif k < 0 or k > 100:
            errors.append(_err(dataset, rownum, "discount_pct", "OUT_OF_RANGE", "discount_pct must be between 0 and 100."))

        if rng is not None and r.get("active", True):
            ranges.append((rng[0], rng[1], rownum))

    if errors:
        return ValidationResult(ok=False, errors=errors, warnings=warnings)

    _check_ranges(dataset, ranges, errors, warnings)
    return ValidationResult(ok=len(errors) == 0, errors=errors, warnings=warnings)


def validate_category_tier_rows(rows: list[dict[str, Any]]) -> ValidationResult:
    dataset = "category_pricing_tiers"
    errors: list[ValidationError] = []
    warnings: list[ValidationWarning] = []

    seen: set[tuple[Optional[str], str]] = set()

    for idx, r in enumerate(rows):
        rownum = idx + 1
        name = str(r.get("pricing_tier") or "").strip()
        category = str(r.get("category")).strip() if r.get("category") else None
        tier_set = f"{dataset}[{name or rownum}]"

        if not name:
            errors.append(_err(dataset, rownum, "pricing_tier", "REQUIRED", "pricing_tier is required."))
            continue

        key = (category, name)
        if key in seen:
            errors.append(
                _err(
                    dataset, rownum, "pricing_tier", "DUPLICATE",
                    f"Tier set '{name}' for category '{category or '*'}' is defined twice.",
                )
            )
        seen.add(key)

        scope = str(r.get("scope") or "sku").strip().lower()
        if scope not in VALID_SCOPES:
            errors.append(_err(dataset, rownum, "scope", "INVALID_VALUE", f"scope must be one of {sorted(VALID_SCOPES)}."))

        max_per_sku = r.get("max_qty_per_sku")
        if max_per_sku is not None:
            m = to_int(max_per_sku)
            if m is None or m < 1:
                errors.append(_err(dataset, rownum, "max_qty_per_sku", "OUT_OF_RANGE", "max_qty_per_sku must be an integer >= 1."))

        breakpoints = r.get("breakpoints") or []
        if not breakpoints:
            errors.append(_err(dataset, rownum, "breakpoints", "REQUIRED", f"Tier set '{name}' has no breakpoints."))
            continue

        bp_errors: list[ValidationError] = []
        ranges: list[tuple[int, Optional[int], int]] = []
        for bp_idx, bp in enumerate(breakpoints):
            bp_row = bp_idx + 1
            rng = _parse_range(tier_set, bp, bp_row, bp_errors, max_required=False)

            has_unit = bp.get("unit_price") is not None
            has_pct = bp.get("discount_pct") is not None
            if has_unit == has_pct:
                bp_errors.append(
                    _err(tier_set, bp_row, None, "AMBIGUOUS_PRICE", "Set exactly one of unit_price or discount_pct.")
                )
            elif has_unit:
                unit = to_decimal(bp.get("unit_price"))
                if unit is None or unit < 0:
                    bp_errors.append(_err(tier_set, bp_row, "unit_price", "INVALID_NUMBER", "unit_price must be a number >= 0."))
            else:
                pct = to_decimal(bp.get("discount_pct"))
                if pct is None or pct < 0 or pct > 100:
                    bp_errors.append(_err(tier_set, bp_row, "discount_pct", "OUT_OF_RANGE", "discount_pct must be between 0 and 100."))

            if rng is not None:
                ranges.append((rng[0], rng[1], bp_row))

        if not bp_errors:
            _check_ranges(tier_set, ranges, bp_errors, warnings)
        errors.extend(bp_errors)

    return ValidationResult(ok=len(errors) == 0, errors=errors, warnings=warnings)
