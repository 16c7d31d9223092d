from __future__ import annotations

import re
from enum import StrEnum


class Jurisdiction(StrEnum):
    UK = "UK"
    EU = "EU"
    EXPORT = "EXPORT"


# Beide literal codes komen voor in adressen; GB is de ISO code
UK_CODES: frozenset[str] = frozenset({"GB", "UK"})

EU_MEMBER_STATES: frozenset[str] = frozenset(
    {
        "AT", "BE", "BG", "HR", "CY", "CZ", "DK", "EE", "FI",
        "FR", "DE", "GR", "HU", "IE", "IT", "LV", "LT", "LU",
        "MT", "NL", "PL", "PT", "RO", "SK", "SI", "ES", "SE",
    }
)

CURRENCY_SYMBOLS: dict[str, str] = {
    "GBP": "£",
    "EUR": "€",
    "USD": "$",
}

_COUNTRY_RE = re.compile(r"^[A-Z]{2}$")


def normalize_country(raw: str | None) -> str | None:
    """
    Uppercase + trim. Returns None when the value is not a two-letter code,
    callers decide whether that is fatal.
    """
    code = (raw or "").strip().upper()
    if not _COUNTRY_RE.match(code):
        return None
    return code


def country_aliases(code: str) -> tuple[str, ...]:
    if code in UK_CODES:
        return ("GB", "UK") if code == "GB" else ("UK", "GB")
    return (code,)


def jurisdiction_for(code: str) -> Jurisdiction:
    if code in UK_CODES:
        return Jurisdiction.UK
    if code in EU_MEMBER_STATES:
        return Jurisdiction.EU
    return Jurisdiction.EXPORT
