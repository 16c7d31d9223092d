from decimal import Decimal

import pytest

from technifold.domain.models import CartLine, DiscountTierRow
from technifold.pricing.calculators.tool_ladder import (
    ToolDiscountLadder,
    price_tool_lines,
    tool_discount_label,
)

D = Decimal


def _lines(catalog, *pairs):
    return [
        (idx, CartLine(code, qty), catalog[code]) for idx, (code, qty) in enumerate(pairs)
    ]


@pytest.mark.parametrize(
    "row, expected",
    [
        (DiscountTierRow(5, 999, D("40")), "5+ tools - 40% off"),
        (DiscountTierRow(4, 4, D("30")), "4 tools - 30% off"),
        (DiscountTierRow(1, 1, D("5")), "1 tool - 5% off"),
        (DiscountTierRow(1, 4, D("10")), "1-4 tools - 10% off"),
        (DiscountTierRow(2, 3, D("12.50")), "2-3 tools - 12.5% off"),
    ],
)
def test_label_forms(row, expected):
    assert tool_discount_label(row) == expected


def test_lookup_uses_matching_row(tool_ladder):
    d = tool_ladder.lookup(3)
    assert d.discount_pct == D("20")
    assert d.label == "3 tools - 20% off"
    assert d.integrity_error is None


def test_open_ended_row_covers_large_quantities(tool_ladder):
    d = tool_ladder.lookup(1200)
    assert d.discount_pct == D("40")
    assert d.label == "5+ tools - 40% off"


def test_zero_percent_row_has_no_label(tool_ladder):
    d = tool_ladder.lookup(1)
    assert d.discount_pct == 0
    assert d.label is None


def test_no_tools_means_no_discount(tool_ladder):
    d = tool_ladder.lookup(0)
    assert d.discount_pct == 0
    assert d.integrity_error is None


def test_boundary_selects_singular_tier_not_neighbour():
    ladder = ToolDiscountLadder(
        [
            DiscountTierRow(1, 4, D("10")),
            DiscountTierRow(5, 5, D("25")),
            DiscountTierRow(6, 999, D("30")),
        ]
    )
    d = ladder.lookup(5)
    assert d.discount_pct == D("25")
    assert d.label == "5 tools - 25% off"


def test_quantity_outside_ladder_gets_no_discount():
    ladder = ToolDiscountLadder([DiscountTierRow(2, 4, D("10"))])
    assert ladder.lookup(1).discount_pct == 0
    assert ladder.lookup(5).discount_pct == 0


def test_inactive_rows_are_ignored():
    ladder = ToolDiscountLadder(
        [
            DiscountTierRow(1, 999, D("50"), active=False),
            DiscountTierRow(1, 999, D("10")),
        ]
    )
    assert len(ladder) == 1
    assert ladder.lookup(3).discount_pct == D("10")


def test_overlapping_rows_fall_back_to_zero_and_log(captured_logs):
    ladder = ToolDiscountLadder(
        [DiscountTierRow(1, 5, D("10")), DiscountTierRow(3, 999, D("20"))]
    )

    d = ladder.lookup(4)

    assert d.discount_pct == 0
    assert d.label is None
    assert "2 active rows" in d.integrity_error
    events = [e for e in captured_logs if e["event"] == "tool_ladder_ambiguous"]
    assert len(events) == 1
    assert events[0]["log_level"] == "error"
    assert events[0]["qty"] == 4


def test_scenario_a_three_tools_ten_percent(catalog):
    ladder = ToolDiscountLadder.from_rows([{"min_qty": 1, "max_qty": 4, "discount_pct": 10}])

    priced, discount = price_tool_lines(_lines(catalog, ("T-100", 3)), ladder)

    (_, line), = priced
    assert line.unit_price == D("90.00")
    assert line.line_total == D("270.00")
    assert line.discount_applied == "1-4 tools - 10% off"
    assert discount.total_qty == 3


def test_discount_follows_total_across_tool_lines(catalog, tool_ladder):
    # 1 + 2 = 3 tools -> 20% on every tool line
    priced, discount = price_tool_lines(_lines(catalog, ("T-100", 1), ("T-200", 2)), tool_ladder)

    assert discount.discount_pct == D("20")
    by_code = {line.product_code: line for _, line in priced}
    assert by_code["T-100"].unit_price == D("80.00")
    assert by_code["T-200"].unit_price == D("200.00")
    assert by_code["T-200"].line_total == D("400.00")
    assert {line.discount_applied for _, line in priced} == {"3 tools - 20% off"}


def test_from_rows_refuses_float_percentages():
    with pytest.raises(TypeError):
        ToolDiscountLadder.from_rows([{"min_qty": 1, "max_qty": 999, "discount_pct": 10.5}])


@pytest.mark.parametrize("pct", [D("150"), D("-5")])
def test_out_of_range_pct_falls_back_to_zero_and_logs(catalog, pct, captured_logs):
    ladder = ToolDiscountLadder([DiscountTierRow(1, 999, pct)])

    priced, discount = price_tool_lines(_lines(catalog, ("T-100", 1)), ladder)

    assert discount.discount_pct == 0
    assert discount.label is None
    assert discount.integrity_code == "TOOL_LADDER_INVALID_PCT"
    assert "allowed 0-100" in discount.integrity_error
    (_, line) = priced[0]
    assert line.unit_price == D("100.00")
    events = [e for e in captured_logs if e["event"] == "tool_ladder_invalid_pct"]
    assert len(events) == 1
    assert events[0]["log_level"] == "error"


def test_full_hundred_percent_is_allowed(catalog):
    ladder = ToolDiscountLadder([DiscountTierRow(1, 999, D("100"))])

    priced, discount = price_tool_lines(_lines(catalog, ("T-100", 1)), ladder)

    assert discount.integrity_error is None
    assert priced[0][1].unit_price == D("0.00")
