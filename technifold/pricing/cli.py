from __future__ import annotations

import argparse
import json
import sys
from decimal import Decimal
from pathlib import Path
from typing import Any, List, Optional, Sequence

from pydantic import ValidationError

from technifold.core.logging_config import logger, setup_logging
from technifold.domain.models import ProductFact

from .calculators.money import to_decimal
from .data_validators.common import ParseError
from .engine.pricing_engine import PricingEngine
from .errors import PricingError
from .export.distributor_catalog import (
    build_distributor_catalog,
    export_catalog_to_excel,
    read_distributor_price_list,
    write_catalog_csv,
)
from .schemas.pricing_input_v1 import PricingRequestV1
from .schemas.pricing_output_v1 import PricingResultV1

EXIT_OK = 0
EXIT_FAILED = 2


def _read_json(path: str) -> Any:
    # floats als Decimal inlezen; geen binaire afronding op prijzen
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f, parse_float=Decimal)


def _load_catalog(path: str) -> List[ProductFact]:
    raw = _read_json(path)
    rows = raw.get("products", []) if isinstance(raw, dict) else raw
    return [ProductFact.from_row(r) for r in rows]


def _cmd_price(args: argparse.Namespace) -> int:
    catalog = _load_catalog(args.catalog)

    cart_raw = _read_json(args.cart)
    items = cart_raw.get("items", []) if isinstance(cart_raw, dict) else cart_raw
    request = PricingRequestV1(
        items=items,
        destination_country=args.country,
        has_valid_vat_number=args.vat_number,
    )
    cart, tax_context = request.to_domain()

    engine = PricingEngine.from_yaml_file(args.config, catalog)
    result = engine.price_cart(cart, tax_context)

    print(json.dumps(PricingResultV1.from_result(result).model_dump(), indent=2, ensure_ascii=False))
    return EXIT_OK


def _cmd_distributor_catalog(args: argparse.Namespace) -> int:
    rows = read_distributor_price_list(Path(args.input), delimiter=args.delimiter)
    floor_pct = to_decimal(args.floor_pct, field="floor_pct") if args.floor_pct is not None else None
    catalog = build_distributor_catalog(rows, floor_pct)

    write_catalog_csv(catalog, Path(args.out))
    if args.xlsx:
        export_catalog_to_excel(catalog, Path(args.xlsx))

    print(
        f"Wrote {len(catalog.rows)} products to {args.out} "
        f"({catalog.adjusted_count} raised to floor, {len(catalog.skipped)} skipped)"
    )
    for reason in catalog.skipped:
        print(f"  skipped: {reason}", file=sys.stderr)
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="technifold-pricing", description="Cart pricing and distributor catalog tools"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("price", help="Price a cart and print the result as JSON")
    p.add_argument("--catalog", required=True, help="JSON list of catalog rows")
    p.add_argument("--cart", required=True, help="JSON list of {product_code, quantity}")
    p.add_argument("--country", required=True, help="Destination country (ISO alpha-2)")
    p.add_argument("--vat-number", action="store_true", help="Buyer has a valid VAT number")
    p.add_argument("--config", default=None, help="Pricing config YAML (default: packaged v1)")
    p.set_defaults(func=_cmd_price)

    d = sub.add_parser("distributor-catalog", help="Apply the distributor floor price to a CSV")
    d.add_argument("input", help="CSV with Product Code, Description, Sales Price, Distributor Price")
    d.add_argument("--out", required=True, help="Output CSV")
    d.add_argument("--xlsx", default=None, help="Also write an Excel workbook")
    d.add_argument("--floor-pct", default=None, help="Floor percentage (default from settings)")
    d.add_argument("--delimiter", default=",", help="CSV delimiter")
    d.set_defaults(func=_cmd_distributor_catalog)

    return parser


def run(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except PricingError as e:
        logger.info("cli_failed", command=args.command, code=e.code, error=e.message)
        print(f"error: {e}", file=sys.stderr)
        return EXIT_FAILED
    except (ValidationError, ParseError, ValueError, TypeError, OSError) as e:
        logger.info("cli_failed", command=args.command, error=str(e))
        print(f"error: {e}", file=sys.stderr)
        return EXIT_FAILED


def main() -> None:
    # stdout is voor het resultaat
    setup_logging(stream=sys.stderr)
    sys.exit(run())


if __name__ == "__main__":
    main()
