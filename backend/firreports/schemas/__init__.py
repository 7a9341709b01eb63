"""Pydantic schemas for API request/response validation."""

from firreports.schemas.report import (
    FilterOptions,
    Report,
    ReportFilters,
    ReportGroup,
    ReportSummary,
    ReportTable,
)

__all__ = [
    "FilterOptions",
    "Report",
    "ReportFilters",
    "ReportGroup",
    "ReportSummary",
    "ReportTable",
]
