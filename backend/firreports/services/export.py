"""Project report groups or detail rows onto flat export columns."""

from collections.abc import Iterable, Mapping, Sequence
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel

from firreports.schemas.report import Report, ReportTable

Column = tuple[str, str]  # (header, dot path)

RANKED = [("Rank", "rank")]
STATUS_COLUMNS = [
    ("Total FIRs", "metrics.incidents"),
    ("Total Accused", "metrics.accused"),
    ("Arrested", "metrics.arrested"),
    ("Bailed", "metrics.bailed"),
    ("Absconding", "metrics.absconding"),
]

DEFAULT_COLUMNS: dict[str, list[Column]] = {
    "district-wise": [*RANKED, ("District", "key.0"), *STATUS_COLUMNS],
    "thana-wise": [*RANKED, ("District", "key.0"), ("Police Station", "key.1"), *STATUS_COLUMNS],
    "monthly": [("Month", "key.0"), *STATUS_COLUMNS],
    "daily": [
        ("FIR Number", "fir_number"),
        ("Date", "incident_date"),
        ("Police Station", "thana_name"),
        ("District", "district_name"),
        ("Complainant", "complainant_name"),
        ("Status", "case_status"),
    ],
    "custom": [*RANKED, ("Group", "label"), *STATUS_COLUMNS],
    "custody-status": [
        ("Name", "name"),
        ("Mobile", "mobile"),
        ("FIR Number", "fir_number"),
        ("Police Station", "thana_name"),
        ("District", "district_name"),
        ("Status", "accused_type"),
    ],
    "repeat-offenders": [
        *RANKED,
        ("Name", "details.name"),
        ("Mobile", "details.mobile"),
        ("Aadhaar", "details.aadhaar"),
        ("Cases", "metrics.cases"),
        ("FIRs", "metrics.firs"),
        ("FIR Numbers", "details.fir_numbers"),
    ],
    "sureties": [
        *RANKED,
        ("Name", "details.name"),
        ("Mobile", "details.mobile"),
        ("Relation", "details.relation"),
        ("Bails", "metrics.bails"),
        ("Accused", "metrics.accused"),
        ("Total Amount", "metrics.total_amount"),
    ],
    "overview": [("Age Group", "label"), ("Accused", "metrics.accused")],
}

# Reports whose table is built from detail rows instead of groups
ROW_REPORTS = {"daily", "custody-status"}


def resolve_path(item: Any, path: str) -> Any:
    """
    Follow a dot path through nested mappings, sequences, and attributes.

    Numeric segments index into lists ("key.1"). Returns None when any
    segment is missing.
    """
    current = item
    for part in path.split("."):
        if current is None:
            return None
        if isinstance(current, Mapping):
            current = current.get(part)
        elif isinstance(current, (list, tuple)):
            try:
                current = current[int(part)]
            except (ValueError, IndexError):
                return None
        else:
            current = getattr(current, part, None)
    return current


def render_cell(value: Any) -> str:
    """Stringify one cell; missing values render as an empty string."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return f"{value:.2f}"
    if isinstance(value, (list, tuple, set)):
        return "; ".join(render_cell(v) for v in value)
    return str(value)


def tabulate(items: Iterable[Any], columns: Sequence[Column]) -> list[list[str]]:
    """One row of rendered cells per item, in column order."""
    rows = []
    for item in items:
        source = item.model_dump() if isinstance(item, BaseModel) else item
        rows.append([render_cell(resolve_path(source, path)) for _, path in columns])
    return rows


def report_table(report: Report, columns: Sequence[Column] | None = None) -> ReportTable:
    """Flatten a report for CSV/PDF style export."""
    columns = list(columns or DEFAULT_COLUMNS.get(report.kind, [*RANKED, ("Group", "label")]))
    items: Iterable[Any] = (report.rows or []) if report.kind in ROW_REPORTS else report.groups
    return ReportTable(
        kind=report.kind,
        headers=[header for header, _ in columns],
        rows=tabulate(items, columns),
    )
