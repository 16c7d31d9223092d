# technifold/core/settings.py
from decimal import Decimal
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # --- Money ---
    DEFAULT_CURRENCY: str = "GBP"

    # --- VAT ---
    STANDARD_VAT_RATE: Decimal = Decimal("0.20")
    # Volgorde = precedence; eerste match wint
    VAT_RULE_ORDER: list[str] = [
        "uk_domestic",
        "eu_reverse_charge",
        "eu_no_vat_number",
        "export",
    ]

    # --- Distributor catalog ---
    DISTRIBUTOR_FLOOR_PCT: Decimal = Decimal("60")

    # --- Pricing config (ladders, tiers, shipping) ---
    CONFIG_PATH: Optional[str] = None

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="PRICING_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = Settings()  # leest .env
