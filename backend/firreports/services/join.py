"""In-memory join of dependent rows onto their parent rows."""

from collections.abc import Callable, Hashable, Iterable, Mapping
from typing import Any

Row = Mapping[str, Any]
KeySpec = str | Callable[[Row], Hashable]


def _key_fn(spec: KeySpec) -> Callable[[Row], Hashable]:
    if callable(spec):
        return spec
    return lambda row: row.get(spec)


def index_by(rows: Iterable[Row], key: KeySpec) -> dict[Hashable, Row]:
    """Index rows by key. Rows with a None key are skipped; the first row wins on duplicates."""
    key_fn = _key_fn(key)
    index: dict[Hashable, Row] = {}
    for row in rows:
        value = key_fn(row)
        if value is not None and value not in index:
            index[value] = row
    return index


def resolve(
    primary_rows: Iterable[Row],
    secondary_rows: Iterable[Row],
    primary_key: KeySpec,
    foreign_key: KeySpec,
    parent_fields: Iterable[str] | Mapping[str, str] | None = None,
) -> list[dict[str, Any]]:
    """
    Attach parent fields to each dependent row.

    Args:
        primary_rows: Parent rows (e.g. FIRs)
        secondary_rows: Dependent rows (e.g. accused) pointing at a parent
        primary_key: Field name or function giving a parent's identifier
        foreign_key: Field name or function giving a dependent row's parent identifier
        parent_fields: Parent fields to copy, as names or {parent field: output name}.
            When omitted, every parent field the dependent row lacks is copied.

    Returns:
        One new dict per dependent row whose parent exists, in input order.
        Dependent rows pointing at a missing parent are dropped.
    """
    parents = index_by(primary_rows, primary_key)
    fk = _key_fn(foreign_key)

    if parent_fields is None:
        mapping = None
    elif isinstance(parent_fields, Mapping):
        mapping = dict(parent_fields)
    else:
        mapping = {name: name for name in parent_fields}

    enriched: list[dict[str, Any]] = []
    for row in secondary_rows:
        parent = parents.get(fk(row))
        if parent is None:
            continue

        merged = dict(row)
        if mapping is None:
            for name, value in parent.items():
                merged.setdefault(name, value)
        else:
            for source, target in mapping.items():
                merged[target] = parent.get(source)
        enriched.append(merged)

    return enriched
