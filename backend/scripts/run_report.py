#!/usr/bin/env python3
"""
Generate a report from the command line and print it as JSON or CSV.

Reads the record store settings from the environment (.env supported), e.g.

    python scripts/run_report.py district-wise --date-from 2024-01-01 --date-to 2024-01-31
    python scripts/run_report.py custom --group-by district --group-by month --csv
"""

import argparse
import asyncio
import csv
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import ValidationError

load_dotenv()

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from firreports.config import get_settings  # noqa: E402
from firreports.schemas.report import ReportFilters  # noqa: E402
from firreports.services.export import report_table  # noqa: E402
from firreports.services.record_store import PostgRESTRecordStore, RecordStoreError  # noqa: E402
from firreports.services.reports import ReportAssembler, ReportError  # noqa: E402
from firreports.services.sql_store import SQLRecordStore  # noqa: E402


def log(msg):
    """Print to stderr so stdout stays machine readable."""
    print(msg, file=sys.stderr, flush=True)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate an FIR report")
    parser.add_argument("kind", choices=ReportAssembler.KINDS)
    parser.add_argument("--date-from")
    parser.add_argument("--date-to")
    parser.add_argument("--month", help="YYYY-MM")
    parser.add_argument("--day", help="YYYY-MM-DD (daily report)")
    parser.add_argument("--district")
    parser.add_argument("--thana")
    parser.add_argument("--case-status")
    parser.add_argument("--accused-status")
    parser.add_argument("--group-by", action="append", default=[])
    parser.add_argument("--surety-mobile")
    parser.add_argument("--csv", action="store_true", help="Write the export table as CSV")
    return parser.parse_args(argv)


async def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    try:
        filters = ReportFilters.model_validate(
            {
                name: value
                for name, value in {
                    "date_from": args.date_from,
                    "date_to": args.date_to,
                    "month": args.month,
                    "day": args.day,
                    "district": args.district,
                    "thana": args.thana,
                    "case_status": args.case_status,
                    "accused_status": args.accused_status,
                    "group_by": args.group_by,
                    "surety_mobile": args.surety_mobile,
                }.items()
                if value not in (None, [])
            }
        )
    except ValidationError as e:
        log(f"Invalid filters: {e}")
        return 1

    settings = get_settings()
    store = SQLRecordStore() if settings.record_store_backend == "sql" else PostgRESTRecordStore()
    assembler = ReportAssembler(store, settings)

    try:
        report = await assembler.generate(args.kind, filters)
    except (RecordStoreError, ReportError) as e:
        log(f"Report failed: {e}")
        return 1

    log(f"{args.kind}: {report.summary.group_count} groups")
    if args.csv:
        table = report_table(report)
        writer = csv.writer(sys.stdout)
        writer.writerow(table.headers)
        writer.writerows(table.rows)
    else:
        print(report.model_dump_json(indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
