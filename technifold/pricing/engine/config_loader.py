from __future__ import annotations

import json
import os
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml
from jsonschema import Draft202012Validator

from technifold.core.logging_config import logger
from technifold.core.settings import settings

from ..calculators.consumable_tiers import CategoryTierStrategy
from ..calculators.shipping import ShippingCalculator
from ..calculators.tax import VatPolicy
from ..calculators.tool_ladder import ToolDiscountLadder
from ..data_validators.common import ValidationResult
from ..data_validators.ladders import (
    validate_category_tier_rows,
    validate_tool_ladder_rows,
)
from ..data_validators.shipping_rates import validate_shipping_rate_rows
from ..errors import PricingConfigError

PACKAGE_DIR = Path(__file__).resolve().parents[1]
DEFAULT_CONFIG_PATH = PACKAGE_DIR / "config" / "pricing_v1.yaml"
SCHEMA_PATH = PACKAGE_DIR / "schemas" / "pricing_config.schema.json"


@dataclass(frozen=True)
class PricingConfig:
    version: str
    currency: str
    tool_ladder: ToolDiscountLadder
    consumable_strategy: CategoryTierStrategy
    shipping: ShippingCalculator
    vat_policy: VatPolicy
    warnings: Tuple[str, ...] = ()


def default_config_path() -> Path:
    return Path(settings.CONFIG_PATH) if settings.CONFIG_PATH else DEFAULT_CONFIG_PATH


def _load_schema() -> Dict[str, Any]:
    with SCHEMA_PATH.open("r", encoding="utf-8") as f:
        return json.load(f)


def parse_pricing_config(raw: Dict[str, Any], *, source: str = "<dict>") -> PricingConfig:
    """
    Validate + build. Schema first (shape, quoted money), then the ladder
    validators (overlap, coverage, duplicates). Raises PricingConfigError.
    """
    schema_errors = sorted(
        Draft202012Validator(_load_schema()).iter_errors(raw),
        key=lambda e: list(e.absolute_path),
    )
    if schema_errors:
        messages = [
            f"{'/'.join(str(p) for p in e.absolute_path) or '<root>'}: {e.message}"
            for e in schema_errors
        ]
        raise PricingConfigError(
            f"{source}: pricing config does not match schema ({len(messages)} errors)",
            errors=messages,
        )

    result = ValidationResult.merge(
        validate_tool_ladder_rows(raw["tool_ladder"]),
        validate_category_tier_rows(raw["consumable_tiers"]),
        validate_shipping_rate_rows(raw["shipping_rates"]),
    )
    if not result.ok:
        raise PricingConfigError(
            f"{source}: pricing config failed validation ({len(result.errors)} errors)",
            errors=[str(e) for e in result.errors],
        )

    for w in result.warnings:
        logger.warning(
            "pricing_config_warning",
            source=source,
            dataset=w.dataset_type,
            row=w.row_number,
            code=w.warning_code,
            message=w.message,
        )

    try:
        vat_policy = VatPolicy.from_order(raw.get("vat_rule_order"))
    except ValueError as e:
        raise PricingConfigError(f"{source}: {e}", errors=[str(e)]) from e

    return PricingConfig(
        version=str(raw["version"]),
        currency=str(raw.get("currency") or settings.DEFAULT_CURRENCY).upper(),
        tool_ladder=ToolDiscountLadder.from_rows(raw["tool_ladder"]),
        consumable_strategy=CategoryTierStrategy.from_config(raw["consumable_tiers"]),
        shipping=ShippingCalculator.from_rows(raw["shipping_rates"]),
        vat_policy=vat_policy,
        warnings=tuple(f"{w.dataset_type}: {w.warning_code} {w.message}" for w in result.warnings),
    )


def load_pricing_config(path: Optional[str | Path] = None) -> PricingConfig:
    config_path = Path(path) if path is not None else default_config_path()
    try:
        with config_path.open("r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise PricingConfigError(f"{config_path}: invalid YAML: {e}", errors=[str(e)]) from e

    if not isinstance(raw, dict):
        raise PricingConfigError(f"{config_path}: top level must be a mapping")
    return parse_pricing_config(raw, source=str(config_path))


@dataclass(frozen=True)
class LoadedConfig:
    config: PricingConfig
    mtime_ns: int


class PricingConfigLoader:
    """
    Hot reload pricing config from disk (thread-safe).

    - Keeps last known-good config active
    - On each get(): checks mtime_ns; if changed -> reload + validate
    - If reload fails: logs error and keeps old active config
    """

    def __init__(self, yaml_path: Optional[str | Path] = None):
        self.yaml_path = Path(yaml_path) if yaml_path is not None else default_config_path()
        self._lock = threading.Lock()
        self._loaded: Optional[LoadedConfig] = None

        # eager initial load (fail-fast if missing/invalid)
        self._loaded = self._load_from_disk_or_raise()

    def get(self) -> PricingConfig:
        try:
            current_mtime = self._stat_mtime_ns()
        except FileNotFoundError:
            if self._loaded is None:
                raise
            logger.error("pricing_config_missing", path=str(self.yaml_path), keeping="previous")
            return self._loaded.config

        loaded = self._loaded
        if loaded is not None and current_mtime == loaded.mtime_ns:
            return loaded.config

        with self._lock:
            loaded = self._loaded
            # double-check na lock
            try:
                current_mtime = self._stat_mtime_ns()
            except FileNotFoundError:
                if loaded is None:
                    raise
                logger.error("pricing_config_missing", path=str(self.yaml_path), keeping="previous")
                return loaded.config

            if loaded is not None and current_mtime == loaded.mtime_ns:
                return loaded.config

            try:
                new_loaded = self._load_from_disk_or_raise(expected_mtime_ns=current_mtime)
            except (PricingConfigError, OSError) as e:
                if loaded is None:
                    raise
                logger.error(
                    "pricing_config_reload_failed",
                    path=str(self.yaml_path),
                    error=str(e),
                    errors=getattr(e, "errors", []),
                )
                return loaded.config

            self._loaded = new_loaded
            logger.info(
                "pricing_config_reloaded",
                path=str(self.yaml_path),
                version=new_loaded.config.version,
                mtime_ns=new_loaded.mtime_ns,
            )
            return new_loaded.config

    def _stat_mtime_ns(self) -> int:
        return os.stat(self.yaml_path).st_mtime_ns

    def _load_from_disk_or_raise(self, expected_mtime_ns: Optional[int] = None) -> LoadedConfig:
        if expected_mtime_ns is None:
            expected_mtime_ns = self._stat_mtime_ns()
        config = load_pricing_config(self.yaml_path)
        return LoadedConfig(config=config, mtime_ns=expected_mtime_ns)
