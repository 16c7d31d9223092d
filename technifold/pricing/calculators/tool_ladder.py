from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from technifold.core.logging_config import logger
from technifold.domain.models import DiscountTierRow, PricedLine

from .classifier import ClassifiedLine
from .money import ZERO, format_pct, to_decimal

D = Decimal
HUNDRED = D("100")


@dataclass(frozen=True)
class ToolDiscount:
    total_qty: int
    discount_pct: D
    label: Optional[str] = None
    row: Optional[DiscountTierRow] = None
    # gevuld als de ladder niet eenduidig was
    integrity_error: Optional[str] = None
    integrity_code: Optional[str] = None

    @staticmethod
    def none(
        total_qty: int,
        integrity_error: Optional[str] = None,
        integrity_code: Optional[str] = None,
    ) -> "ToolDiscount":
        return ToolDiscount(
            total_qty=total_qty,
            discount_pct=ZERO,
            integrity_error=integrity_error,
            integrity_code=integrity_code,
        )

    def apply(self, base_price: D) -> D:
        return base_price * (1 - self.discount_pct / HUNDRED)


def tool_discount_label(row: DiscountTierRow) -> str:
    pct = format_pct(row.discount_pct)
    if row.open_ended:
        return f"{row.min_qty}+ tools - {pct}% off"
    if row.min_qty == row.max_qty:
        noun = "tool" if row.min_qty == 1 else "tools"
        return f"{row.min_qty} {noun} - {pct}% off"
    return f"{row.min_qty}-{row.max_qty} tools - {pct}% off"


class ToolDiscountLadder:
    """
    Quantity ladder for tools. One percentage, looked up on the total tool
    quantity of the cart, applied to every tool line.

    Only active rows are kept, sorted on min_qty. Overlap/coverage is checked
    at load time (data_validators.ladders); lookup still refuses to guess when
    it finds more than one row for a quantity.
    """

    def __init__(self, rows: Iterable[DiscountTierRow]):
        self.rows: Tuple[DiscountTierRow, ...] = tuple(
            sorted((r for r in rows if r.active), key=lambda r: (r.min_qty, r.max_qty))
        )

    @classmethod
    def from_rows(cls, rows: Sequence[Dict[str, Any]]) -> "ToolDiscountLadder":
        return cls(parse_tool_ladder_rows(rows))

    def __len__(self) -> int:
        return len(self.rows)

    def lookup(self, total_qty: int) -> ToolDiscount:
        if total_qty <= 0:
            return ToolDiscount.none(total_qty)

        matches = [r for r in self.rows if r.contains(total_qty)]
        if not matches:
            return ToolDiscount.none(total_qty)

        if len(matches) > 1:
            logger.error(
                "tool_ladder_ambiguous",
                qty=total_qty,
                rows=[(r.min_qty, r.max_qty, str(r.discount_pct)) for r in matches],
            )
            return ToolDiscount.none(
                total_qty,
                integrity_error=(
                    f"Tool discount ladder has {len(matches)} active rows for "
                    f"{total_qty} tools; no tool discount applied"
                ),
                integrity_code="TOOL_LADDER_AMBIGUOUS",
            )

        row = matches[0]
        if not (ZERO <= row.discount_pct <= HUNDRED):
            logger.error(
                "tool_ladder_invalid_pct",
                qty=total_qty,
                row=(row.min_qty, row.max_qty, str(row.discount_pct)),
            )
            return ToolDiscount.none(
                total_qty,
                integrity_error=(
                    f"Tool discount ladder row {row.min_qty}-{row.max_qty} has discount "
                    f"{format_pct(row.discount_pct)}% (allowed 0-100); no tool discount applied"
                ),
                integrity_code="TOOL_LADDER_INVALID_PCT",
            )

        label = tool_discount_label(row) if row.discount_pct > 0 else None
        return ToolDiscount(
            total_qty=total_qty, discount_pct=row.discount_pct, label=label, row=row
        )


def parse_tool_ladder_rows(rows: Sequence[Dict[str, Any]]) -> List[DiscountTierRow]:
    out: List[DiscountTierRow] = []
    for r in rows:
        out.append(
            DiscountTierRow(
                min_qty=int(r["min_qty"]),
                max_qty=int(r["max_qty"]),
                discount_pct=to_decimal(r["discount_pct"], field="discount_pct"),
                active=bool(r.get("active", True)),
            )
        )
    return out


def price_tool_lines(
    lines: Sequence[ClassifiedLine], ladder: ToolDiscountLadder
) -> Tuple[List[Tuple[int, PricedLine]], ToolDiscount]:
    """Sum over all tool lines (not per line), then one discount for all of them."""
    total_qty = sum(line.quantity for _, line, _ in lines)
    discount = ladder.lookup(total_qty)

    priced = [
        (
            idx,
            PricedLine.build(
                product,
                line.quantity,
                discount.apply(product.base_price),
                discount.label,
            ),
        )
        for idx, line, product in lines
    ]
    return priced, discount
