"""Grouping engine: dimension keys, status classification, and per-group folds."""

from collections.abc import Callable, Hashable, Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, TypeVar

Row = Mapping[str, Any]
Key = tuple[str, ...]
KeyFn = Callable[[Row], Key]
A = TypeVar("A")

UNKNOWN = "Unknown"

# Accused custody classifications
ARRESTED = "arrested"
BAILED = "bailed"
ABSCONDING = "absconding"
UNCLASSIFIED = "unknown"
CLASSIFICATIONS = (ARRESTED, BAILED, ABSCONDING, UNCLASSIFIED)

AGE_BRACKETS = ("minor", "18-30", "30-50", "50+")


def dimension(value: Any) -> str:
    """Coalesce a dimension value to a non-blank string, "Unknown" when missing."""
    if value is None:
        return UNKNOWN
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    text = str(value).strip()
    return text or UNKNOWN


def as_date(value: Any) -> date | None:
    """Read a date from a date, datetime, or ISO string; None when unreadable."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            return None
    return None


def field_key(*fields: str) -> KeyFn:
    """Key on one or more row fields, e.g. field_key("district_name", "thana_name")."""

    def key(row: Row) -> Key:
        return tuple(dimension(row.get(name)) for name in fields)

    return key


def month_key(field_name: str, fallback: str | None = None) -> KeyFn:
    """Key on the calendar month (YYYY-MM) of a date field, optionally falling back to another."""

    def key(row: Row) -> Key:
        day = as_date(row.get(field_name))
        if day is None and fallback:
            day = as_date(row.get(fallback))
        return (day.strftime("%Y-%m") if day else UNKNOWN,)

    return key


def date_key(field_name: str) -> KeyFn:
    """Key on the calendar day (YYYY-MM-DD) of a date field."""

    def key(row: Row) -> Key:
        day = as_date(row.get(field_name))
        return (day.isoformat() if day else UNKNOWN,)

    return key


def composite_key(*key_fns: KeyFn) -> KeyFn:
    """Concatenate the tuples of several key functions."""

    def key(row: Row) -> Key:
        return tuple(part for fn in key_fns for part in fn(row))

    return key


def classify(status: Any) -> str | None:
    """
    Map a raw accused status to a classification.

    Blank means "unknown". Unrecognized values return None: such rows still
    count toward totals but toward no status counter.
    """
    if status is None:
        return UNCLASSIFIED
    text = str(status).strip().lower()
    if not text:
        return UNCLASSIFIED
    return text if text in CLASSIFICATIONS else None


def status_key(field_name: str = "accused_type") -> KeyFn:
    """Key on the classification, keeping unrecognized raw values as their own group."""

    def key(row: Row) -> Key:
        raw = row.get(field_name)
        return (classify(raw) or dimension(raw),)

    return key


def age_bracket(age: Any) -> str:
    """Bucket an age into minor / 18-30 / 30-50 / 50+."""
    try:
        years = int(age)
    except (TypeError, ValueError):
        return UNKNOWN
    if years < 18:
        return "minor"
    if years < 30:
        return "18-30"
    if years < 50:
        return "30-50"
    return "50+"


def group_by(
    rows: Iterable[Row],
    key_fn: Callable[[Row], Hashable],
    fold_fn: Callable[[A, Row], None],
    factory: Callable[[Hashable], A],
) -> dict[Hashable, A]:
    """
    Partition rows by key and fold each row into its group's accumulator.

    Every row lands in exactly one group. Output order is not meaningful.
    """
    groups: dict[Hashable, A] = {}
    for row in rows:
        key = key_fn(row)
        acc = groups.get(key)
        if acc is None:
            acc = groups[key] = factory(key)
        fold_fn(acc, row)
    return groups


@dataclass
class StatusCounts:
    """Row total plus per-classification counters."""

    total: int = 0
    arrested: int = 0
    bailed: int = 0
    absconding: int = 0
    unknown: int = 0

    def add(self, status: Any) -> None:
        self.total += 1
        classification = classify(status)
        if classification is not None:
            setattr(self, classification, getattr(self, classification) + 1)

    def as_dict(self) -> dict[str, int]:
        return {
            "arrested": self.arrested,
            "bailed": self.bailed,
            "absconding": self.absconding,
            "unknown": self.unknown,
        }


@dataclass
class DimensionStats:
    """Aggregate for one dimension key: incidents, accused, and status breakdown."""

    key: Key
    incidents: int = 0
    accused: StatusCounts = field(default_factory=StatusCounts)
    fir_ids: set[Any] = field(default_factory=set)

    def metrics(self) -> dict[str, int]:
        return {
            "incidents": self.incidents,
            "accused": self.accused.total,
            **self.accused.as_dict(),
        }


def count_incident(acc: DimensionStats, row: Row) -> None:
    acc.incidents += 1


def count_accused(acc: DimensionStats, row: Row) -> None:
    acc.accused.add(row.get("accused_type"))
    acc.fir_ids.add(row.get("fir_id"))
