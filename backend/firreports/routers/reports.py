"""API routes for aggregated FIR reports."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query

from firreports.config import get_settings
from firreports.schemas.report import FilterOptions, Report, ReportFilters, ReportTable
from firreports.services.export import report_table
from firreports.services.record_store import PostgRESTRecordStore, RecordStore
from firreports.services.reports import (
    ReportAssembler,
    ReportFilterError,
    UnknownReportError,
)
from firreports.services.sql_store import SQLRecordStore

logger = logging.getLogger(__name__)
router = APIRouter(tags=["reports"])


def get_record_store() -> RecordStore:
    """Dependency selecting the record store backend from settings."""
    if get_settings().record_store_backend == "sql":
        return SQLRecordStore()
    return PostgRESTRecordStore()


def get_report_assembler(
    store: Annotated[RecordStore, Depends(get_record_store)],
) -> ReportAssembler:
    return ReportAssembler(store)


async def _generate(assembler: ReportAssembler, kind: str, filters: ReportFilters) -> Report:
    try:
        report = await assembler.generate(kind, filters)
    except UnknownReportError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ReportFilterError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e

    logger.info(f"Generated {kind} report with {report.summary.group_count} groups")
    return report


@router.get("/reports", response_model=list[str])
async def list_reports() -> list[str]:
    """Names of the available reports."""
    return list(ReportAssembler.KINDS)


@router.get("/reports/{kind}", response_model=Report)
async def get_report(
    kind: str,
    filters: Annotated[ReportFilters, Query()],
    assembler: Annotated[ReportAssembler, Depends(get_report_assembler)],
) -> Report:
    """
    Generate a report.

    Filters are passed as query parameters, e.g.
    `/reports/district-wise?date_from=2024-01-01&date_to=2024-01-31&accused_status=arrested`.
    The custom report takes repeated `group_by` parameters.
    """
    return await _generate(assembler, kind, filters)


@router.get("/reports/{kind}/table", response_model=ReportTable)
async def get_report_table(
    kind: str,
    filters: Annotated[ReportFilters, Query()],
    assembler: Annotated[ReportAssembler, Depends(get_report_assembler)],
) -> ReportTable:
    """Generate a report flattened to export headers and string cells."""
    report = await _generate(assembler, kind, filters)
    return report_table(report)


@router.get("/filters", response_model=FilterOptions)
async def get_filter_options(
    assembler: Annotated[ReportAssembler, Depends(get_report_assembler)],
) -> FilterOptions:
    """Distinct districts and police stations for the filter dropdowns."""
    return await assembler.filter_options()
