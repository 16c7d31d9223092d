from __future__ import annotations

import csv
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Any, Iterable, Iterator, Optional, Sequence

from ..calculators.money import to_decimal as _strict_decimal

CSV_DELIMITER = ","


class ParseError(ValueError):
    """A price list or rule table could not be read without guessing."""


# -----------------
# CSV reading
# -----------------


def _blank(cell: Any) -> bool:
    return cell is None or (isinstance(cell, str) and not cell.strip())


def _content_rows(reader: Iterable[list[str]]) -> Iterator[list[str]]:
    # regels met alleen lege cellen (ook ",,,") tellen niet mee
    for raw in reader:
        if not all(_blank(c) for c in raw):
            yield raw


def require_headers(headers: Sequence[str], required: list[list[str]], *, source: str) -> None:
    """Raise ParseError naming every required column that has none of its aliases present.

    Each entry of ``required`` is an alias list; the first alias is the name
    used in the error message.
    """
    present = {normalize_header(h) for h in headers if h is not None}
    missing = [names[0] for names in required if present.isdisjoint(map(normalize_header, names))]
    if missing:
        raise ParseError(f"{source}: missing required headers: {missing}")


def parse_csv(
    file_path: Path,
    *,
    required_headers: Optional[list[list[str]]] = None,
    delimiter: str = CSV_DELIMITER,
) -> list[dict[str, Any]]:
    """Read a header-first CSV into a list of dicts keyed by the stripped header text.

    Blank lines are skipped, cells are stripped and a BOM is tolerated.
    A row whose width differs from the header is an error, not a guess.
    """
    if not file_path.exists():
        raise ParseError(f"CSV not found: {file_path}")

    with file_path.open("r", encoding="utf-8-sig", newline="") as f:
        rows = _content_rows(csv.reader(f, delimiter=delimiter))

        first = next(rows, None)
        if first is None:
            raise ParseError(f"CSV has no header row: {file_path}")

        headers = [str(c).strip() for c in first]
        if "" in headers:
            raise ParseError(f"CSV header row has a blank column name: {file_path}")
        if required_headers:
            require_headers(headers, required_headers, source=str(file_path))

        records: list[dict[str, Any]] = []
        for line_no, raw in enumerate(rows, start=2):
            if len(raw) != len(headers):
                raise ParseError(
                    f"{file_path}: data row {line_no} has {len(raw)} cells, expected {len(headers)}"
                )
            records.append({h: c.strip() if isinstance(c, str) else c for h, c in zip(headers, raw)})

    return records


# -----------------
# Validation results
# -----------------


@dataclass(frozen=True)
class ValidationError:
    dataset_type: str
    row_number: Optional[int]  # None = hele dataset
    field: Optional[str]
    error_code: str
    message: str

    def __str__(self) -> str:
        where = f"row {self.row_number}" if self.row_number is not None else "dataset"
        return f"{self.dataset_type} {where}: {self.error_code} {self.message}"


@dataclass(frozen=True)
class ValidationWarning:
    dataset_type: str
    row_number: Optional[int]
    field: Optional[str]
    warning_code: str
    message: str


@dataclass
class ValidationResult:
    ok: bool
    errors: list[ValidationError]
    warnings: list[ValidationWarning]

    @classmethod
    def of(
        cls, errors: list[ValidationError], warnings: list[ValidationWarning]
    ) -> "ValidationResult":
        return cls(ok=not errors, errors=errors, warnings=warnings)

    @staticmethod
    def merge(*results: "ValidationResult") -> "ValidationResult":
        return ValidationResult.of(
            [e for r in results for e in r.errors],
            [w for r in results for w in r.warnings],
        )


def _err(dataset: str, row: Optional[int], field: Optional[str], code: str, message: str) -> ValidationError:
    return ValidationError(dataset, row, field, code, message)


def _warn(dataset: str, row: Optional[int], field: Optional[str], code: str, message: str) -> ValidationWarning:
    return ValidationWarning(dataset, row, field, code, message)


# -----------------
# Cell helpers
# -----------------


def normalize_header(name: Optional[str]) -> str:
    return (name or "").strip().lower()


def get_cell(row: dict[str, Any], header_aliases: list[str]) -> Any:
    """First value whose header matches one of the aliases (case/space-insensitive), else None."""
    by_norm = {normalize_header(k): v for k, v in row.items()}
    for alias in header_aliases:
        key = normalize_header(alias)
        if key in by_norm:
            return by_norm[key]
    return None


def to_str(v: Any) -> str:
    return "" if v is None else str(v).strip()


def to_int(v: Any) -> Optional[int]:
    # bool is een int-subclass; True als aantal is bijna altijd een fout in de bron
    if isinstance(v, bool):
        return None
    if isinstance(v, int):
        return v
    try:
        return int(to_str(v))
    except ValueError:
        return None


def to_decimal(v: Any) -> Optional[Decimal]:
    """Lenient variant of the money parser: None on empty or unparseable input."""
    if _blank(v):
        return None
    try:
        return _strict_decimal(v)
    except (TypeError, ValueError):
        return None
