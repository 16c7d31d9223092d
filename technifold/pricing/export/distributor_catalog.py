from __future__ import annotations

import csv
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Any, Iterable, List, Optional

from openpyxl import Workbook

from technifold.core.logging_config import logger

from ..calculators.distributor_floor import FloorPriceResult, apply_floor_price
from ..data_validators.common import get_cell, parse_csv, to_decimal, to_str

H_CODE = ["Product Code", "product_code", "Code", "SKU"]
H_DESC = ["Description", "description", "Name"]
H_SALES = ["Sales Price", "sales_price", "Price", "Retail Price"]
H_DIST = ["Distributor Price", "distributor_price", "Dist Price"]

REQUIRED_HEADERS = [H_CODE, H_SALES, H_DIST]

OUTPUT_HEADERS = [
    "Product Code",
    "Description",
    "Sales Price",
    "Distributor Price",
    "New Distributor Price",
    "Distributor %",
    "Difference",
]


@dataclass(frozen=True)
class DistributorPriceRow:
    row_number: int
    product_code: str
    description: str
    sales_price: Optional[Decimal]
    distributor_price: Optional[Decimal]


@dataclass(frozen=True)
class DistributorCatalogRow:
    product_code: str
    description: str
    floor: FloorPriceResult

    def as_cells(self) -> list[str]:
        f = self.floor
        return [
            self.product_code,
            self.description,
            f"{f.sales_price:f}",
            f"{f.original_price:f}",
            f"{f.new_price:f}",
            f"{f.percentage:f}",
            f"{f.price_difference:f}",
        ]


@dataclass
class DistributorCatalog:
    rows: List[DistributorCatalogRow] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)

    @property
    def adjusted_count(self) -> int:
        return sum(1 for r in self.rows if r.floor.adjusted)


def read_distributor_price_list(path: Path, *, delimiter: str = ",") -> List[DistributorPriceRow]:
    rows = parse_csv(path, required_headers=REQUIRED_HEADERS, delimiter=delimiter)
    out: List[DistributorPriceRow] = []
    for idx, r in enumerate(rows):
        code = to_str(get_cell(r, H_CODE))
        out.append(
            DistributorPriceRow(
                row_number=idx + 2,  # header = rij 1
                product_code=code,
                description=to_str(get_cell(r, H_DESC)) or code,
                sales_price=to_decimal(get_cell(r, H_SALES)),
                distributor_price=to_decimal(get_cell(r, H_DIST)),
            )
        )
    return out


def build_distributor_catalog(
    rows: Iterable[DistributorPriceRow], floor_pct: Optional[Decimal] = None
) -> DistributorCatalog:
    """
    Floor rule per product. Bad rows are skipped and reported, never fatal:
    one broken price must not block the nightly regeneration.
    """
    catalog = DistributorCatalog()
    for r in rows:
        label = r.product_code or f"row {r.row_number}"
        if not r.product_code:
            catalog.skipped.append(f"row {r.row_number}: missing product code")
            continue
        if r.sales_price is None or r.distributor_price is None:
            catalog.skipped.append(f"{label}: missing or invalid price")
            continue

        try:
            floor = apply_floor_price(r.distributor_price, r.sales_price, floor_pct)
        except ValueError as e:
            catalog.skipped.append(f"{label}: {e}")
            continue

        catalog.rows.append(DistributorCatalogRow(r.product_code, r.description, floor))

    logger.info(
        "distributor_catalog_built",
        rows=len(catalog.rows),
        adjusted=catalog.adjusted_count,
        skipped=len(catalog.skipped),
    )
    for reason in catalog.skipped:
        logger.warning("distributor_row_skipped", reason=reason)
    return catalog


def write_catalog_csv(catalog: DistributorCatalog, path: Path) -> None:
    with path.open("w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(OUTPUT_HEADERS)
        for row in catalog.rows:
            writer.writerow(row.as_cells())


def export_catalog_to_excel(catalog: DistributorCatalog, path: Any) -> None:
    """Amounts go in as strings, same as the CSV; no float conversion."""
    wb = Workbook()
    ws = wb.active
    ws.title = "Distributor Prices"

    ws.append(OUTPUT_HEADERS)
    for row in catalog.rows:
        ws.append(row.as_cells())

    if catalog.skipped:
        skipped = wb.create_sheet("Skipped")
        skipped.append(["Reason"])
        for reason in catalog.skipped:
            skipped.append([reason])

    wb.save(str(path))
