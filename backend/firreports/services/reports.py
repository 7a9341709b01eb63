"""
Report assembler: filter, fetch dependents, join, aggregate, rank, emit.

Every report follows the same pipeline over the record store:

1. incident filters become store predicates on the FIR fetch
2. accused/bail rows are fetched only for the filtered FIR ids; an empty id
   set short-circuits to an empty report with no dependent fetch
3. dependent rows are joined onto their FIRs in memory
4. rows are grouped by the report's dimension key and folded into aggregates
5. post-filters (accused classification, repeat-offender threshold) re-derive
   counts from the filtered rows rather than adjusting step 4's numbers
6. groups are ranked: primary metric descending, key ascending
7. summary totals are summed from the ranked groups

A record store failure propagates unchanged; there are no partial reports.
"""

import asyncio
from collections.abc import Callable, Coroutine, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, timedelta
from decimal import Decimal, InvalidOperation
from operator import itemgetter
from typing import Any

from firreports.config import Settings, get_settings
from firreports.schemas.report import (
    FilterOptions,
    Report,
    ReportFilters,
    ReportGroup,
    ReportSummary,
)
from firreports.services.grouping import (
    AGE_BRACKETS,
    UNKNOWN,
    DimensionStats,
    Key,
    KeyFn,
    StatusCounts,
    age_bracket,
    classify,
    composite_key,
    count_accused,
    count_incident,
    date_key,
    field_key,
    group_by,
    month_key,
    status_key,
)
from firreports.services.identity import fingerprint, is_blank_fingerprint
from firreports.services.join import resolve
from firreports.services.record_store import Predicate, RecordStore, sort_rows

# Incident fields carried onto joined accused/bail rows
INCIDENT_FIELDS = ("fir_number", "district_name", "thana_name", "incident_date", "case_status")

DIMENSION_METRICS = ("incidents", "accused", "arrested", "bailed", "absconding", "unknown")

DIMENSION_KEYS: dict[str, KeyFn] = {
    "district": field_key("district_name"),
    "thana": field_key("thana_name"),
    "month": month_key("incident_date", fallback="created_at"),
    "date": date_key("incident_date"),
    "case_status": field_key("case_status"),
}


class ReportError(Exception):
    """Base exception for report generation errors other than store failures."""

    pass


class UnknownReportError(ReportError):
    """Raised for a report kind that does not exist."""

    pass


class ReportFilterError(ReportError):
    """Raised when a report is missing a filter it requires."""

    pass


@dataclass
class OffenderStats:
    """Accumulator for one identity fingerprint."""

    key: Key
    cases: int = 0
    fir_ids: set[Any] = field(default_factory=set)
    fir_numbers: set[str] = field(default_factory=set)
    names: set[str] = field(default_factory=set)
    name: str | None = None
    mobile: str | None = None
    aadhaar: str | None = None

    def add(self, row: Mapping[str, Any]) -> None:
        self.cases += 1
        self.fir_ids.add(row.get("fir_id"))
        if row.get("fir_number"):
            self.fir_numbers.add(str(row["fir_number"]))
        if row.get("name"):
            self.names.add(str(row["name"]))
        self.name = self.name or row.get("name")
        self.mobile = self.mobile or row.get("mobile")
        self.aadhaar = self.aadhaar or row.get("aadhaar")


@dataclass
class SuretyStats:
    """Accumulator for one surety."""

    key: Key
    bails: int = 0
    accused_ids: set[Any] = field(default_factory=set)
    total_amount: Decimal = Decimal("0")
    fir_numbers: set[str] = field(default_factory=set)
    accused_names: set[str] = field(default_factory=set)
    name: str | None = None
    mobile: str | None = None
    relation: str | None = None

    def add(self, row: Mapping[str, Any]) -> None:
        self.bails += 1
        self.accused_ids.add(row.get("accused_id"))
        self.total_amount += parse_amount(row.get("bail_amount"))
        if row.get("fir_number"):
            self.fir_numbers.add(str(row["fir_number"]))
        if row.get("accused_name"):
            self.accused_names.add(str(row["accused_name"]))
        self.name = self.name or row.get("bailer_name")
        self.mobile = self.mobile or row.get("bailer_mobile")
        self.relation = self.relation or row.get("bailer_relation")


def parse_amount(value: Any) -> Decimal:
    """Read a monetary amount; missing or unreadable amounts count as zero."""
    if value is None or value == "":
        return Decimal("0")
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        return Decimal("0")
    return amount if amount.is_finite() else Decimal("0")


def month_span(start: date, end: date) -> list[str]:
    """All YYYY-MM labels from start's month through end's month."""
    months = []
    year, month = start.year, start.month
    while (year, month) <= (end.year, end.month):
        months.append(f"{year:04d}-{month:02d}")
        year, month = (year + 1, 1) if month == 12 else (year, month + 1)
    return months


def _distinct(rows: Iterable[Mapping[str, Any]], name: str) -> list[str]:
    values = {str(row.get(name)).strip() for row in rows if row.get(name) is not None}
    return sorted(v for v in values if v)


def rank_groups(
    items: Sequence[tuple[Key, dict[str, Any], dict[str, Any]]],
    metric: str | None,
) -> list[ReportGroup]:
    """
    Order and rank (key, metrics, details) triples.

    With a metric: descending by that metric, ties broken by key ascending.
    Without one: ascending by key.
    """
    ordered = sorted(items, key=itemgetter(0))
    if metric is not None:
        ordered = sorted(ordered, key=lambda item: item[1][metric], reverse=True)
    return [
        ReportGroup(
            rank=position,
            key=list(key),
            label=" / ".join(key),
            metrics=metrics,
            details=details,
        )
        for position, (key, metrics, details) in enumerate(ordered, start=1)
    ]


async def fetch_together(*fetches: Coroutine[Any, Any, Any]) -> list[Any]:
    """Run independent fetches concurrently; the first failure cancels the rest and is re-raised as is."""
    try:
        async with asyncio.TaskGroup() as tg:
            tasks = [tg.create_task(fetch) for fetch in fetches]
    except ExceptionGroup as group:
        raise group.exceptions[0] from None
    return [task.result() for task in tasks]


def summarize(groups: Sequence[ReportGroup], zeros: Mapping[str, int | Decimal]) -> dict[str, int | Decimal]:
    """Sum group metrics; every expected metric is present, zero when there are no groups."""
    totals: dict[str, int | Decimal] = dict(zeros)
    for group in groups:
        for name, value in group.metrics.items():
            totals[name] = totals.get(name, 0) + value
    return totals


class ReportAssembler:
    """
    Builds every report from a record store passed in by the caller.

    Holds no state between calls; concurrent reports on one assembler are safe.
    """

    KINDS = (
        "district-wise",
        "thana-wise",
        "monthly",
        "daily",
        "custom",
        "custody-status",
        "repeat-offenders",
        "sureties",
        "overview",
    )

    def __init__(self, store: RecordStore, settings: Settings | None = None):
        self.store = store
        self.settings = settings or get_settings()

    async def generate(self, kind: str, filters: ReportFilters | None = None) -> Report:
        """Generate a report by kind name."""
        builders: dict[str, Callable[[ReportFilters], Any]] = {
            "district-wise": self.district_wise,
            "thana-wise": self.thana_wise,
            "monthly": self.monthly,
            "daily": self.daily,
            "custom": self.custom,
            "custody-status": self.custody_status,
            "repeat-offenders": self.repeat_offenders,
            "sureties": self.sureties,
            "overview": self.overview,
        }
        builder = builders.get(kind)
        if builder is None:
            raise UnknownReportError(f"Unknown report: {kind}")
        return await builder(filters or ReportFilters())

    # -- Pipeline steps -------------------------------------------------

    def incident_predicates(
        self, filters: ReportFilters, date_range: tuple[date | None, date | None] | None = None
    ) -> list[Predicate]:
        """Translate filters into predicates on the FIR fetch."""
        start, end = date_range or filters.date_range()
        predicates = []
        if start:
            predicates.append(Predicate("incident_date", "gte", start))
        if end:
            predicates.append(Predicate("incident_date", "lte", end))
        if filters.district:
            predicates.append(Predicate("district_name", "eq", filters.district))
        if filters.thana:
            predicates.append(Predicate("thana_name", "eq", filters.thana))
        if filters.case_status:
            predicates.append(Predicate("case_status", "eq", filters.case_status))
        return predicates

    async def fetch_incidents(
        self, filters: ReportFilters, order: str | None = None
    ) -> list[dict[str, Any]]:
        return await self.store.fetch("fir", self.incident_predicates(filters), order=order)

    async def fetch_dependents(
        self, entity: str, incidents: Sequence[Mapping[str, Any]], order: str | None = None
    ) -> list[dict[str, Any]]:
        """Fetch accused or bail rows for the given FIRs only."""
        fir_ids = list(dict.fromkeys(row["id"] for row in incidents if row.get("id") is not None))
        if not fir_ids:
            return []
        return await self.store.fetch(entity, [Predicate("fir_id", "in", fir_ids)], order=order)

    def _matching_status(
        self, rows: Iterable[Mapping[str, Any]], filters: ReportFilters
    ) -> list[Mapping[str, Any]]:
        if filters.accused_status is None:
            return list(rows)
        return [r for r in rows if classify(r.get("accused_type")) == filters.accused_status]

    def _emit(
        self,
        kind: str,
        groups: list[ReportGroup],
        filters: ReportFilters,
        zeros: Mapping[str, int | Decimal],
        rows: list[dict[str, Any]] | None = None,
        extras: dict[str, Any] | None = None,
    ) -> Report:
        return Report(
            kind=kind,
            groups=groups,
            summary=ReportSummary(
                group_count=len(groups),
                totals=summarize(groups, zeros),
                extras=extras or {},
            ),
            filters=filters,
            rows=rows,
            generated_at=datetime.now(UTC),
        )

    # -- Incident dimension reports ---------------------------------------

    async def _dimension_report(
        self,
        kind: str,
        filters: ReportFilters,
        key_fn: KeyFn,
        *,
        chronological: bool = False,
        incident_order: str | None = None,
        include_rows: bool = False,
    ) -> Report:
        zeros = dict.fromkeys(DIMENSION_METRICS, 0)

        incidents = await self.fetch_incidents(filters, order=incident_order)
        if not incidents:
            return self._emit(kind, [], filters, zeros, rows=[] if include_rows else None)

        accused = await self.fetch_dependents("accused", incidents)

        # Derive each FIR's key once; accused rows inherit it through the join
        tagged = [dict(incident, group_key=key_fn(incident)) for incident in incidents]
        enriched = resolve(tagged, accused, "id", "fir_id", [*INCIDENT_FIELDS, "group_key"])
        group_key = itemgetter("group_key")

        if filters.accused_status is not None:
            matching = self._matching_status(enriched, filters)
            groups = group_by(matching, group_key, count_accused, DimensionStats)
            for stats in groups.values():
                stats.incidents = len(stats.fir_ids)
        else:
            groups = group_by(tagged, group_key, count_incident, DimensionStats)
            for row in enriched:
                count_accused(groups[row["group_key"]], row)

            start, end = filters.date_range()
            if chronological and start and end:
                for month in month_span(start, end):
                    groups.setdefault((month,), DimensionStats((month,)))

        ranked = rank_groups(
            [(stats.key, stats.metrics(), {}) for stats in groups.values()],
            None if chronological else "incidents",
        )
        rows = incidents if include_rows else None
        return self._emit(kind, ranked, filters, zeros, rows=rows)

    async def district_wise(self, filters: ReportFilters) -> Report:
        """FIR and accused counts per district."""
        return await self._dimension_report("district-wise", filters, DIMENSION_KEYS["district"])

    async def thana_wise(self, filters: ReportFilters) -> Report:
        """FIR and accused counts per (district, thana)."""
        key_fn = composite_key(DIMENSION_KEYS["district"], DIMENSION_KEYS["thana"])
        return await self._dimension_report("thana-wise", filters, key_fn)

    async def monthly(self, filters: ReportFilters) -> Report:
        """Counts per calendar month, in month order; empty months filled when the range is closed."""
        return await self._dimension_report(
            "monthly", filters, DIMENSION_KEYS["month"], chronological=True
        )

    async def daily(self, filters: ReportFilters) -> Report:
        """One day's FIRs grouped by (district, thana), with the FIRs newest first."""
        if filters.day is None:
            raise ReportFilterError("The daily report requires a day")
        key_fn = composite_key(DIMENSION_KEYS["district"], DIMENSION_KEYS["thana"])
        return await self._dimension_report(
            "daily", filters, key_fn, incident_order="created_at.desc", include_rows=True
        )

    async def custom(self, filters: ReportFilters) -> Report:
        """Counts grouped by any combination of dimensions (district by default)."""
        dimensions = list(dict.fromkeys(filters.group_by)) or ["district"]
        key_fn = composite_key(*(DIMENSION_KEYS[name] for name in dimensions))
        return await self._dimension_report("custom", filters, key_fn)

    # -- Accused-centric reports --------------------------------------------

    async def custody_status(self, filters: ReportFilters) -> Report:
        """Accused counts per custody classification, with the enriched accused rows."""
        zeros = {"accused": 0}

        incidents = await self.fetch_incidents(filters)
        if not incidents:
            return self._emit("custody-status", [], filters, zeros, rows=[])

        accused = await self.fetch_dependents("accused", incidents)
        enriched = resolve(incidents, accused, "id", "fir_id", INCIDENT_FIELDS)
        matching = self._matching_status(enriched, filters)

        groups = group_by(
            matching,
            status_key(),
            lambda acc, row: acc.add(row.get("accused_type")),
            lambda key: StatusCounts(),
        )
        ranked = rank_groups(
            [(key, {"accused": counts.total}, {}) for key, counts in groups.items()],
            "accused",
        )
        rows = sort_rows([dict(row) for row in matching], "created_at.desc")
        return self._emit("custody-status", ranked, filters, zeros, rows=rows)

    async def repeat_offenders(self, filters: ReportFilters) -> Report:
        """Persons (by identity fingerprint) appearing on at least the configured number of rows."""
        zeros = {"cases": 0, "firs": 0}
        no_offenders = {"persons": 0, "three_plus_cases": 0, "five_plus_cases": 0}

        incidents = await self.fetch_incidents(filters)
        if not incidents:
            return self._emit("repeat-offenders", [], filters, zeros, extras=no_offenders)

        accused = await self.fetch_dependents("accused", incidents)
        enriched = resolve(incidents, accused, "id", "fir_id", INCIDENT_FIELDS)
        matching = self._matching_status(enriched, filters)

        if not self.settings.repeat_offender_include_blank_identity:
            matching = [row for row in matching if not is_blank_fingerprint(fingerprint(row))]

        groups = group_by(
            matching,
            lambda row: (fingerprint(row),),
            OffenderStats.add,
            OffenderStats,
        )

        threshold = self.settings.repeat_offender_min_cases
        ranked = rank_groups(
            [
                (
                    stats.key,
                    {"cases": stats.cases, "firs": len(stats.fir_ids)},
                    {
                        "name": stats.name or UNKNOWN,
                        "mobile": stats.mobile,
                        "aadhaar": stats.aadhaar,
                        "names": sorted(stats.names),
                        "fir_numbers": sorted(stats.fir_numbers),
                    },
                )
                for stats in groups.values()
                if stats.cases >= threshold
            ],
            "cases",
        )
        for group in ranked:
            group.label = group.details["name"]
        extras = {
            "persons": len(ranked),
            "three_plus_cases": sum(1 for group in ranked if group.metrics["cases"] >= 3),
            "five_plus_cases": sum(1 for group in ranked if group.metrics["cases"] >= 5),
        }
        return self._emit("repeat-offenders", ranked, filters, zeros, extras=extras)

    async def sureties(self, filters: ReportFilters) -> Report:
        """Bail counts, distinct accused, and amounts per surety."""
        zeros = {"bails": 0, "accused": 0, "total_amount": Decimal("0")}

        incidents = await self.fetch_incidents(filters)
        if not incidents:
            return self._emit("sureties", [], filters, zeros)

        # Independent of each other once the FIR ids are known
        accused, bails = await fetch_together(
            self.fetch_dependents("accused", incidents),
            self.fetch_dependents("bail", incidents),
        )
        matching_accused = self._matching_status(accused, filters)

        with_accused = resolve(
            matching_accused,
            bails,
            "id",
            "accused_id",
            {"name": "accused_name", "accused_type": "accused_type"},
        )
        enriched = resolve(incidents, with_accused, "id", "fir_id", INCIDENT_FIELDS)

        if filters.surety_mobile:
            wanted = filters.surety_mobile.strip()
            enriched = [row for row in enriched if str(row.get("bailer_mobile") or "").strip() == wanted]

        groups = group_by(
            enriched,
            lambda row: (
                fingerprint(
                    row,
                    mobile_field="bailer_mobile",
                    national_id_field="bailer_aadhaar",
                    name_field="bailer_name",
                ),
            ),
            SuretyStats.add,
            SuretyStats,
        )
        ranked = rank_groups(
            [
                (
                    stats.key,
                    {
                        "bails": stats.bails,
                        "accused": len(stats.accused_ids),
                        "total_amount": stats.total_amount,
                    },
                    {
                        "name": stats.name or UNKNOWN,
                        "mobile": stats.mobile,
                        "relation": stats.relation,
                        "accused_names": sorted(stats.accused_names),
                        "fir_numbers": sorted(stats.fir_numbers),
                    },
                )
                for stats in groups.values()
            ],
            "bails",
        )
        for group in ranked:
            group.label = group.details["name"]
        return self._emit("sureties", ranked, filters, zeros)

    async def overview(self, filters: ReportFilters) -> Report:
        """
        Dashboard overview: accused by age bracket.

        The summary extras carry FIR and status totals for the period and, when
        the date range is closed, the FIR change against the preceding period
        of equal length.
        """
        zeros = {"accused": 0}

        incidents = await self.fetch_incidents(filters)
        if not incidents:
            extras = {"incidents": 0, **StatusCounts().as_dict()}
            extras.update(await self._period_change(filters, 0))
            return self._emit("overview", [], filters, zeros, extras=extras)

        accused = await self.fetch_dependents("accused", incidents)
        enriched = resolve(incidents, accused, "id", "fir_id", INCIDENT_FIELDS)
        matching = self._matching_status(enriched, filters)

        brackets = group_by(
            matching,
            lambda row: (age_bracket(row.get("age")),),
            lambda acc, row: acc.add(row.get("accused_type")),
            lambda key: StatusCounts(),
        )
        order = [*AGE_BRACKETS, UNKNOWN]
        items = [
            ((name,), {"accused": brackets[(name,)].total if (name,) in brackets else 0}, {})
            for name in order
            if name != UNKNOWN or (name,) in brackets
        ]
        groups = rank_groups(items, None)
        groups.sort(key=lambda group: order.index(group.key[0]))
        for position, group in enumerate(groups, start=1):
            group.rank = position

        statuses = StatusCounts()
        for row in matching:
            statuses.add(row.get("accused_type"))

        extras: dict[str, Any] = {
            "incidents": len(incidents),
            **statuses.as_dict(),
        }

        extras.update(await self._period_change(filters, len(incidents)))

        return self._emit("overview", groups, filters, zeros, extras=extras)

    async def _period_change(self, filters: ReportFilters, current: int) -> dict[str, Any]:
        """FIR count of the preceding period of equal length, only for a closed range."""
        start, end = filters.date_range()
        if not (start and end):
            return {}
        length = (end - start).days + 1
        previous = (start - timedelta(days=length), start - timedelta(days=1))
        previous_incidents = await self.store.fetch(
            "fir", self.incident_predicates(filters, previous), columns=["id"]
        )
        count = len(previous_incidents)
        return {
            "previous_incidents": count,
            "change_pct": round((current - count) / count * 100, 1) if count else 0.0,
        }

    # -- Filter dropdowns --------------------------------------------------

    async def filter_options(self) -> FilterOptions:
        """Distinct districts and thanas, fetched concurrently."""
        districts, thanas = await fetch_together(
            self.store.fetch("fir", columns=["district_name"]),
            self.store.fetch("fir", columns=["thana_name"]),
        )
        return FilterOptions(
            districts=_distinct(districts, "district_name"),
            thanas=_distinct(thanas, "thana_name"),
        )
