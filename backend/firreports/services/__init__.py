"""Record stores and the report engine."""

from firreports.services.record_store import (
    PostgRESTRecordStore,
    Predicate,
    RecordStore,
    RecordStoreError,
)
from firreports.services.reports import ReportAssembler, UnknownReportError
from firreports.services.sql_store import SQLRecordStore

__all__ = [
    "PostgRESTRecordStore",
    "Predicate",
    "RecordStore",
    "RecordStoreError",
    "ReportAssembler",
    "SQLRecordStore",
    "UnknownReportError",
]
