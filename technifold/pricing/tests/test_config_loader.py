from __future__ import annotations

import copy
import os
from decimal import Decimal

import pytest
import yaml

from technifold.core.settings import settings
from technifold.pricing.engine.config_loader import (
    DEFAULT_CONFIG_PATH,
    PricingConfigLoader,
    default_config_path,
    load_pricing_config,
    parse_pricing_config,
)
from technifold.pricing.errors import PricingConfigError

D = Decimal


@pytest.fixture
def raw_config():
    with DEFAULT_CONFIG_PATH.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f)


def _write(path, data):
    path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")


def _bump_mtime(path, seconds):
    st = os.stat(path)
    os.utime(path, ns=(st.st_atime_ns, st.st_mtime_ns + seconds * 1_000_000_000))


def test_packaged_config_loads():
    cfg = load_pricing_config()

    assert cfg.version == "1"
    assert cfg.currency == "GBP"
    assert len(cfg.tool_ladder) == 5
    assert cfg.tool_ladder.lookup(7).discount_pct == D("40")
    assert cfg.shipping.rates["GB"].free_shipping_threshold == D("500.00")
    assert [r.name for r in cfg.vat_policy.rules] == [
        "uk_domestic",
        "eu_reverse_charge",
        "eu_no_vat_number",
        "export",
    ]
    assert cfg.warnings == ()


def test_standard_ladder_from_packaged_config():
    cfg = load_pricing_config()
    standard = cfg.consumable_strategy.resolve("Creasing Matrix", "standard")

    assert standard is not None
    assert standard.max_qty_per_sku == 20
    assert [bp.unit_price for bp in standard.breakpoints][:2] == [D("33.00"), D("29.00")]


def test_float_money_fails_schema(raw_config):
    raw_config["shipping_rates"][0]["rate"] = 15.0

    with pytest.raises(PricingConfigError) as exc:
        parse_pricing_config(raw_config)

    assert any(e.startswith("shipping_rates/0/rate") for e in exc.value.errors)


def test_unknown_top_level_key_fails_schema(raw_config):
    raw_config["discount_codes"] = []
    with pytest.raises(PricingConfigError):
        parse_pricing_config(raw_config)


def test_overlapping_ladder_fails_validation(raw_config):
    raw_config["tool_ladder"].append({"min_qty": 3, "max_qty": 6, "discount_pct": 25})

    with pytest.raises(PricingConfigError) as exc:
        parse_pricing_config(raw_config)

    assert any("OVERLAP" in e for e in exc.value.errors)


def test_tier_breakpoint_with_both_prices_fails(raw_config):
    raw_config["consumable_tiers"][1]["breakpoints"][0]["unit_price"] = "40.00"

    with pytest.raises(PricingConfigError) as exc:
        parse_pricing_config(raw_config)

    assert any("AMBIGUOUS_PRICE" in e for e in exc.value.errors)


def test_vat_rule_order_from_config(raw_config):
    raw_config["vat_rule_order"] = ["uk_domestic", "eu_reverse_charge", "export"]
    cfg = parse_pricing_config(raw_config)
    assert [r.name for r in cfg.vat_policy.rules][-1] == "export"
    assert len(cfg.vat_policy.rules) == 3


def test_warnings_are_kept_not_fatal(raw_config, captured_logs):
    raw_config["tool_ladder"][-1]["max_qty"] = 50

    cfg = parse_pricing_config(raw_config)

    assert any("NOT_OPEN_ENDED" in w for w in cfg.warnings)
    assert any(e["event"] == "pricing_config_warning" for e in captured_logs)


def test_invalid_yaml(tmp_path):
    path = tmp_path / "broken.yaml"
    path.write_text("tool_ladder: [\n", encoding="utf-8")
    with pytest.raises(PricingConfigError):
        load_pricing_config(path)


def test_config_path_from_settings(tmp_path, raw_config, monkeypatch):
    path = tmp_path / "pricing.yaml"
    raw_config["version"] = "custom"
    _write(path, raw_config)
    monkeypatch.setattr(settings, "CONFIG_PATH", str(path))

    assert default_config_path() == path
    assert load_pricing_config().version == "custom"


# -----------------
# Hot reload
# -----------------


def test_loader_reloads_on_mtime_change(tmp_path, raw_config, captured_logs):
    path = tmp_path / "pricing.yaml"
    _write(path, raw_config)
    loader = PricingConfigLoader(path)
    assert loader.get().version == "1"

    updated = copy.deepcopy(raw_config)
    updated["version"] = "2"
    updated["shipping_rates"][0]["rate"] = "17.50"
    _write(path, updated)
    _bump_mtime(path, 5)

    cfg = loader.get()
    assert cfg.version == "2"
    assert cfg.shipping.rates["GB"].rate == D("17.50")
    assert any(e["event"] == "pricing_config_reloaded" for e in captured_logs)


def test_loader_keeps_last_known_good(tmp_path, raw_config, captured_logs):
    path = tmp_path / "pricing.yaml"
    _write(path, raw_config)
    loader = PricingConfigLoader(path)
    good = loader.get()

    broken = copy.deepcopy(raw_config)
    broken["tool_ladder"].append({"min_qty": 2, "max_qty": 2, "discount_pct": 99})
    _write(path, broken)
    _bump_mtime(path, 5)

    assert loader.get() is good
    assert any(e["event"] == "pricing_config_reload_failed" for e in captured_logs)


def test_loader_survives_deleted_file(tmp_path, raw_config):
    path = tmp_path / "pricing.yaml"
    _write(path, raw_config)
    loader = PricingConfigLoader(path)
    good = loader.get()

    path.unlink()

    assert loader.get() is good


def test_loader_fails_fast_on_invalid_initial_config(tmp_path, raw_config):
    path = tmp_path / "pricing.yaml"
    raw_config["tool_ladder"] = [{"min_qty": 2, "max_qty": 999, "discount_pct": 10}]
    _write(path, raw_config)

    with pytest.raises(PricingConfigError) as exc:
        PricingConfigLoader(path)
    assert any("COVERAGE_GAP" in e for e in exc.value.errors)
