"""Record store backed by a direct database session."""

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from sqlalchemy import ColumnElement, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from firreports.database import Base, async_session_maker
from firreports.models import AccusedDetail, BailDetail, FirRecord
from firreports.services.record_store import (
    Predicate,
    RecordStoreError,
    UnknownEntityError,
    parse_order,
)

logger = logging.getLogger(__name__)

DEFAULT_MODELS: dict[str, type[Base]] = {
    "fir": FirRecord,
    "accused": AccusedDetail,
    "bail": BailDetail,
}


def _clause(column: Any, predicate: Predicate) -> ColumnElement[bool]:
    """Translate a predicate into a WHERE clause."""
    value = predicate.value
    if predicate.op == "in":
        return column.in_(list(value))
    if value is None:
        return column.is_(None) if predicate.op == "eq" else column.is_not(None)
    if predicate.op == "eq":
        return column == value
    if predicate.op == "neq":
        return (column != value) | column.is_(None)
    if predicate.op == "gt":
        return column > value
    if predicate.op == "gte":
        return column >= value
    if predicate.op == "lt":
        return column < value
    return column <= value


class SQLRecordStore:
    """
    Reads the source tables through SQLAlchemy; same contract as the REST store.

    Each fetch runs in its own session so fetches may be awaited concurrently.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        models: Mapping[str, type[Base]] | None = None,
    ):
        self.session_factory = session_factory or async_session_maker
        self.models = dict(models or DEFAULT_MODELS)

    async def fetch(
        self,
        entity: str,
        predicates: Sequence[Predicate] = (),
        *,
        columns: Sequence[str] | None = None,
        order: str | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Fetch rows for an entity as plain dicts."""
        model = self.models.get(entity)
        if model is None:
            raise UnknownEntityError(f"Unknown entity: {entity}")
        table = model.__table__

        try:
            selected = [table.c[name] for name in columns] if columns else list(table.c)
            query = select(*selected)
            for predicate in predicates:
                query = query.where(_clause(table.c[predicate.field], predicate))
            if order:
                field, descending = parse_order(order)
                column = table.c[field]
                query = query.order_by(column.desc() if descending else column.asc())
        except KeyError as e:
            raise RecordStoreError(f"Unknown column on {table.name}: {e}") from e

        if limit is not None:
            query = query.limit(limit)

        try:
            async with self.session_factory() as session:
                result = await session.execute(query)
                rows = [dict(row._mapping) for row in result.all()]
        except SQLAlchemyError as e:
            raise RecordStoreError(f"Query on {table.name} failed: {e}") from e

        logger.info(f"Fetched {len(rows)} records from {table.name}")
        return rows
