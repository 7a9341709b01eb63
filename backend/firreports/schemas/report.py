"""Pydantic schemas for report filters and report output."""

from calendar import monthrange
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

AccusedStatus = Literal["arrested", "bailed", "absconding", "unknown"]
Dimension = Literal["district", "thana", "month", "date", "case_status"]


class ReportFilters(BaseModel):
    """Caller-supplied filters; echoed back in every report."""

    model_config = ConfigDict(extra="forbid")

    date_from: date | None = Field(None, description="Incident date on or after")
    date_to: date | None = Field(None, description="Incident date on or before")
    month: str | None = Field(
        None, pattern=r"^\d{4}-(0[1-9]|1[0-2])$", description="Calendar month, YYYY-MM"
    )
    day: date | None = Field(None, description="Single incident date (daily report)")
    district: str | None = None
    thana: str | None = None
    case_status: str | None = None
    accused_status: AccusedStatus | None = Field(
        None, description="Keep only accused with this classification"
    )
    group_by: list[Dimension] = Field(
        default_factory=list, description="Dimensions for the custom report"
    )
    surety_mobile: str | None = Field(None, description="Single surety profile (sureties report)")

    @model_validator(mode="after")
    def check_range(self) -> "ReportFilters":
        if self.date_from and self.date_to and self.date_from > self.date_to:
            raise ValueError("date_from must not be after date_to")
        return self

    def date_range(self) -> tuple[date | None, date | None]:
        """Effective incident date bounds; month and day narrow the explicit range."""
        start, end = self.date_from, self.date_to
        if self.month:
            year, month = (int(part) for part in self.month.split("-"))
            month_start = date(year, month, 1)
            month_end = date(year, month, monthrange(year, month)[1])
            start = max(start, month_start) if start else month_start
            end = min(end, month_end) if end else month_end
        if self.day:
            start = max(start, self.day) if start else self.day
            end = min(end, self.day) if end else self.day
        return start, end


class ReportGroup(BaseModel):
    """One aggregate group of a report."""

    rank: int
    key: list[str]
    label: str
    metrics: dict[str, int | Decimal]
    details: dict[str, Any] = Field(default_factory=dict)


class ReportSummary(BaseModel):
    """Grand totals, summed from the groups."""

    group_count: int
    totals: dict[str, int | Decimal]
    extras: dict[str, Any] = Field(default_factory=dict)


class Report(BaseModel):
    """Report structure handed to the presentation and export layers."""

    kind: str
    groups: list[ReportGroup]
    summary: ReportSummary
    filters: ReportFilters
    rows: list[dict[str, Any]] | None = None
    generated_at: datetime


class ReportTable(BaseModel):
    """Report groups (or detail rows) projected onto export columns."""

    kind: str
    headers: list[str]
    rows: list[list[str]]


class FilterOptions(BaseModel):
    """Distinct values for the filter dropdowns."""

    districts: list[str]
    thanas: list[str]
