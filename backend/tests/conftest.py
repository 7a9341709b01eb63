"""Pytest fixtures for FIR reports backend tests."""

import copy
from collections.abc import AsyncGenerator, Sequence
from datetime import date, datetime
from decimal import Decimal
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from firreports.config import Settings
from firreports.database import Base
from firreports.main import app, limiter
from firreports.models import AccusedDetail, BailDetail, FirRecord
from firreports.routers.reports import get_record_store
from firreports.services.record_store import Predicate, RecordStoreError, sort_rows


class FakeRecordStore:
    """In-memory record store evaluating predicates like the real backends."""

    def __init__(self, tables: dict[str, list[dict[str, Any]]], fail_on: str | None = None):
        self.tables = tables
        self.fail_on = fail_on
        self.calls: list[tuple[str, list[Predicate]]] = []

    async def fetch(
        self,
        entity: str,
        predicates: Sequence[Predicate] = (),
        *,
        columns: Sequence[str] | None = None,
        order: str | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        self.calls.append((entity, list(predicates)))
        if entity == self.fail_on:
            raise RecordStoreError(f"HTTP error: 503 on {entity}")

        rows = [
            copy.deepcopy(row)
            for row in self.tables.get(entity, [])
            if all(p.matches(row) for p in predicates)
        ]
        if order:
            rows = sort_rows(rows, order)
        if limit is not None:
            rows = rows[:limit]
        if columns:
            rows = [{name: row.get(name) for name in columns} for row in rows]
        return rows

    def entities_fetched(self) -> list[str]:
        return [entity for entity, _ in self.calls]


@pytest.fixture
def test_settings() -> Settings:
    """Test settings with safe defaults."""
    return Settings(
        supabase_url="http://test",
        supabase_key="test_key",
        debug=True,
    )


@pytest.fixture
def sample_firs() -> list[dict[str, Any]]:
    """FIR rows as the REST interface returns them."""
    return [
        {
            "id": 1,
            "fir_number": "FIR/2024/001",
            "district_name": "Central",
            "thana_name": "Kotwali",
            "case_status": "registered",
            "complainant_name": "Anil",
            "incident_date": "2024-01-05",
            "created_at": "2024-01-05T10:00:00+00:00",
        },
        {
            "id": 2,
            "fir_number": "FIR/2024/002",
            "district_name": "Central",
            "thana_name": "Civil Lines",
            "case_status": "under_investigation",
            "complainant_name": "Bina",
            "incident_date": "2024-01-20",
            "created_at": "2024-01-20T09:00:00+00:00",
        },
        {
            "id": 3,
            "fir_number": "FIR/2024/003",
            "district_name": "North",
            "thana_name": "Sadar",
            "case_status": "registered",
            "complainant_name": "Chetan",
            "incident_date": "2024-02-10",
            "created_at": "2024-02-10T14:00:00+00:00",
        },
        {
            "id": 4,
            "fir_number": "FIR/2024/004",
            "district_name": None,
            "thana_name": "  ",
            "case_status": "closed",
            "complainant_name": None,
            "incident_date": "2024-02-15",
            "created_at": "2024-02-15T08:00:00+00:00",
        },
    ]


@pytest.fixture
def sample_accused() -> list[dict[str, Any]]:
    """Accused rows; 13 points at a FIR that does not exist."""
    return [
        {"id": 10, "fir_id": 1, "name": "Ramesh", "mobile": "9990001111", "aadhaar": None,
         "age": 25, "accused_type": "arrested", "created_at": "2024-01-05T11:00:00+00:00"},
        {"id": 11, "fir_id": 2, "name": "Ramesh K", "mobile": " 9990001111 ", "aadhaar": None,
         "age": 26, "accused_type": "bailed", "created_at": "2024-01-20T10:00:00+00:00"},
        {"id": 12, "fir_id": 3, "name": "Suresh", "mobile": None, "aadhaar": "1234",
         "age": 45, "accused_type": "absconding", "created_at": "2024-02-10T15:00:00+00:00"},
        {"id": 13, "fir_id": 99, "name": "Ghost", "mobile": "9990001111", "aadhaar": None,
         "age": 30, "accused_type": "arrested", "created_at": "2024-02-11T15:00:00+00:00"},
        {"id": 14, "fir_id": 4, "name": "Minor X", "mobile": None, "aadhaar": None,
         "age": 16, "accused_type": None, "created_at": "2024-02-15T09:00:00+00:00"},
        {"id": 15, "fir_id": 3, "name": "Suresh", "mobile": "", "aadhaar": "1234",
         "age": 45, "accused_type": "ARRESTED", "created_at": "2024-02-10T16:00:00+00:00"},
    ]


@pytest.fixture
def sample_bails() -> list[dict[str, Any]]:
    """Bail rows; 103 points at an accused that does not exist."""
    return [
        {"id": 100, "accused_id": 11, "fir_id": 2, "bailer_name": "Mahesh",
         "bailer_mobile": "8880001111", "bailer_relation": "brother", "bail_amount": "25000.50"},
        {"id": 101, "accused_id": 12, "fir_id": 3, "bailer_name": "Mahesh",
         "bailer_mobile": "8880001111", "bailer_relation": "brother", "bail_amount": 10000},
        {"id": 102, "accused_id": 10, "fir_id": 1, "bailer_name": "Dinesh",
         "bailer_mobile": None, "bailer_relation": "father", "bail_amount": None},
        {"id": 103, "accused_id": 999, "fir_id": 1, "bailer_name": "Nobody",
         "bailer_mobile": "7770001111", "bailer_relation": None, "bail_amount": 500},
    ]


@pytest.fixture
def fake_store(sample_firs, sample_accused, sample_bails) -> FakeRecordStore:
    """Record store holding the sample rows."""
    return FakeRecordStore(
        {"fir": sample_firs, "accused": sample_accused, "bail": sample_bails}
    )


@pytest_asyncio.fixture
async def async_engine(tmp_path):
    """SQLite engine with the source tables (file-backed so sessions share data)."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'firreports.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(async_engine) -> async_sessionmaker[AsyncSession]:
    """Session factory over a database seeded with a small FIR set."""
    factory = async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        session.add_all([
            FirRecord(id=1, fir_number="FIR/1", district_name="Central", thana_name="Kotwali",
                      case_status="registered", incident_date=date(2024, 1, 5),
                      created_at=datetime(2024, 1, 5, 10, 0)),
            FirRecord(id=2, fir_number="FIR/2", district_name="Central", thana_name="Civil Lines",
                      case_status="closed", incident_date=date(2024, 1, 20),
                      created_at=datetime(2024, 1, 20, 9, 0)),
            FirRecord(id=3, fir_number="FIR/3", district_name="North", thana_name="Sadar",
                      case_status="registered", incident_date=date(2024, 2, 10),
                      created_at=datetime(2024, 2, 10, 14, 0)),
            AccusedDetail(id=10, fir_id=1, name="Ramesh", mobile="9990001111", age=25,
                          accused_type="arrested", created_at=datetime(2024, 1, 5, 11, 0)),
            AccusedDetail(id=11, fir_id=2, name="Ramesh K", mobile="9990001111", age=26,
                          accused_type="bailed", created_at=datetime(2024, 1, 20, 10, 0)),
            AccusedDetail(id=12, fir_id=3, name="Suresh", aadhaar="1234", age=45,
                          accused_type=None, created_at=datetime(2024, 2, 10, 15, 0)),
            BailDetail(id=100, accused_id=11, fir_id=2, bailer_name="Mahesh",
                       bailer_mobile="8880001111", bail_amount=Decimal("25000.50"),
                       created_at=datetime(2024, 1, 21, 10, 0)),
        ])
        await session.commit()
    return factory


@pytest_asyncio.fixture
async def client(fake_store) -> AsyncGenerator[AsyncClient, None]:
    """Create test HTTP client with the record store overridden."""
    app.dependency_overrides[get_record_store] = lambda: fake_store
    limiter.reset()

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def make_store():
    """Build a FakeRecordStore from custom tables."""
    return FakeRecordStore
