"""Record store client for the hosted backend's REST interface, with retry logic."""

import asyncio
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Protocol

import httpx

from firreports.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

ENTITIES = ("fir", "accused", "bail")
OPERATORS = ("eq", "neq", "gt", "gte", "lt", "lte", "in")

# Characters PostgREST treats as syntax inside in.(...) lists
_RESERVED = set(',()"\\: ')


class RecordStoreError(Exception):
    """Base exception for record store errors."""

    pass


class UnknownEntityError(RecordStoreError):
    """Raised when a fetch names an entity the store does not know."""

    pass


def _literal(value: Any) -> Any:
    """Render dates and datetimes in ISO form; leave other values alone."""
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


def _comparable(left: Any, right: Any) -> tuple[Any, Any]:
    left, right = _literal(left), _literal(right)
    if isinstance(left, str) != isinstance(right, str):
        return str(left), str(right)
    return left, right


def _equal(left: Any, right: Any) -> bool:
    left, right = _comparable(left, right)
    return left == right


@dataclass(frozen=True)
class Predicate:
    """A single equality or range condition on one field."""

    field: str
    op: str
    value: Any

    def __post_init__(self) -> None:
        if self.op not in OPERATORS:
            raise ValueError(f"Unsupported predicate operator: {self.op}")
        if self.op == "in":
            object.__setattr__(self, "value", tuple(self.value))

    def matches(self, row: Mapping[str, Any]) -> bool:
        """Evaluate the predicate against a row held in memory."""
        actual = row.get(self.field)

        if self.op == "in":
            return actual is not None and any(_equal(actual, v) for v in self.value)
        if self.op == "eq":
            if self.value is None:
                return actual is None
            return actual is not None and _equal(actual, self.value)
        if self.op == "neq":
            if self.value is None:
                return actual is not None
            return actual is None or not _equal(actual, self.value)

        # Range comparisons never match missing values
        if actual is None or self.value is None:
            return False
        left, right = _comparable(actual, self.value)
        if self.op == "gt":
            return left > right
        if self.op == "gte":
            return left >= right
        if self.op == "lt":
            return left < right
        return left <= right

    def to_param(self) -> tuple[str, str]:
        """Encode as a PostgREST query parameter."""
        if self.op == "in":
            values = ",".join(_quote(v) for v in self.value)
            return self.field, f"in.({values})"
        if self.value is None:
            return self.field, "is.null" if self.op == "eq" else "not.is.null"
        return self.field, f"{self.op}.{_format(self.value)}"


def _format(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(_literal(value))


def _quote(value: Any) -> str:
    text = _format(value)
    if any(ch in _RESERVED for ch in text):
        escaped = text.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    return text


def parse_order(order: str) -> tuple[str, bool]:
    """Split a PostgREST-style order string ("created_at.desc") into field and direction."""
    field, _, direction = order.partition(".")
    if direction not in ("", "asc", "desc"):
        raise ValueError(f"Invalid order direction: {order}")
    return field, direction == "desc"


def paging_order(order: str | None) -> str:
    """
    Order expression for offset paging.

    Pages are only disjoint under a total order, so "id" is always the last key.
    """
    if not order:
        return "id"
    field, _ = parse_order(order)
    return order if field == "id" else f"{order},id"


def sort_rows(rows: list[dict[str, Any]], order: str) -> list[dict[str, Any]]:
    """Stable in-memory sort matching the store's ordering, missing values last."""
    field, descending = parse_order(order)
    present = [r for r in rows if r.get(field) is not None]
    missing = [r for r in rows if r.get(field) is None]
    present.sort(key=lambda r: _literal(r[field]), reverse=descending)
    return present + missing


class RecordStore(Protocol):
    """Anything that can return materialized rows for a named entity."""

    async def fetch(
        self,
        entity: str,
        predicates: Sequence[Predicate] = (),
        *,
        columns: Sequence[str] | None = None,
        order: str | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]: ...


def table_for(entity: str) -> str:
    """Map an entity name to its configured table."""
    tables = {
        "fir": settings.fir_table,
        "accused": settings.accused_table,
        "bail": settings.bail_table,
    }
    try:
        return tables[entity]
    except KeyError:
        raise UnknownEntityError(f"Unknown entity: {entity}") from None


class PostgRESTRecordStore:
    """
    Client for the hosted backend's PostgREST interface.

    Features:
    - API key headers (apikey + bearer)
    - Exponential backoff retry (3 attempts) on 429, 5xx and transport errors
    - limit/offset pagination with a safety cap
    - Chunked in.(...) filters so request URLs stay bounded
    """

    def __init__(
        self,
        base_url: str = settings.supabase_url,
        api_key: str | None = settings.supabase_key,
        max_retries: int = settings.store_max_retries,
        timeout: float = settings.store_timeout_seconds,
        batch_size: int = settings.fetch_batch_size,
        safety_limit: int = settings.fetch_safety_limit,
        chunk_size: int = settings.in_filter_chunk_size,
    ):
        self.base_url = base_url.rstrip("/") + settings.rest_path
        self.api_key = api_key
        self.max_retries = max_retries
        self.timeout = timeout
        self.batch_size = batch_size
        self.safety_limit = safety_limit
        self.chunk_size = chunk_size

        # Build headers
        self.headers: dict[str, str] = {
            "Accept": "application/json",
        }
        if api_key:
            self.headers["apikey"] = api_key
            self.headers["Authorization"] = f"Bearer {api_key}"

    async def _request_with_retry(
        self,
        url: str,
        params: list[tuple[str, str]] | None = None,
    ) -> list[dict[str, Any]]:
        """Make HTTP request with exponential backoff retry."""
        last_error: Exception | None = None

        for attempt in range(self.max_retries):
            try:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.get(url, headers=self.headers, params=params)
                    response.raise_for_status()
                    return response.json()

            except httpx.HTTPStatusError as e:
                last_error = e
                if e.response.status_code == 429:  # Rate limited
                    wait_time = 2**attempt * 10  # 10s, 20s, 40s
                    logger.warning(f"Rate limited, waiting {wait_time}s before retry")
                    await asyncio.sleep(wait_time)
                elif e.response.status_code >= 500:  # Server error
                    wait_time = 2**attempt
                    logger.warning(f"Server error {e.response.status_code}, retry in {wait_time}s")
                    await asyncio.sleep(wait_time)
                else:
                    raise RecordStoreError(f"HTTP error: {e}") from e

            except httpx.RequestError as e:
                last_error = e
                wait_time = 2**attempt
                logger.warning(f"Request error: {e}, retry in {wait_time}s")
                await asyncio.sleep(wait_time)

        raise RecordStoreError(f"Failed after {self.max_retries} retries: {last_error}")

    async def fetch(
        self,
        entity: str,
        predicates: Sequence[Predicate] = (),
        *,
        columns: Sequence[str] | None = None,
        order: str | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """
        Fetch rows for an entity.

        Args:
            entity: One of "fir", "accused", "bail"
            predicates: Conditions combined with AND
            columns: Columns to select (all when omitted)
            order: PostgREST order expression, e.g. "created_at.desc"
            limit: Maximum number of rows to return

        Returns:
            List of row dicts
        """
        url = f"{self.base_url}/{table_for(entity)}"

        # Split the largest in.(...) list into chunks
        in_preds = [p for p in predicates if p.op == "in"]
        if any(not p.value for p in in_preds):
            return []
        chunked = max(in_preds, key=lambda p: len(p.value), default=None)
        if chunked is None or len(chunked.value) <= self.chunk_size:
            return await self._fetch_pages(url, predicates, columns, order, limit)

        others = [p for p in predicates if p is not chunked]
        values = list(dict.fromkeys(chunked.value))
        records: list[dict[str, Any]] = []
        for i in range(0, len(values), self.chunk_size):
            chunk = Predicate(chunked.field, "in", values[i:i + self.chunk_size])
            records.extend(
                await self._fetch_pages(url, [*others, chunk], columns, order, limit)
            )

        if order:
            records = sort_rows(records, order)
        if limit is not None:
            records = records[:limit]
        return records

    async def _fetch_pages(
        self,
        url: str,
        predicates: Sequence[Predicate],
        columns: Sequence[str] | None,
        order: str | None,
        limit: int | None,
    ) -> list[dict[str, Any]]:
        """Fetch all pages of one query."""
        base_params: list[tuple[str, str]] = [p.to_param() for p in predicates]
        if columns:
            base_params.append(("select", ",".join(columns)))
        base_params.append(("order", paging_order(order)))

        all_records: list[dict[str, Any]] = []
        offset = 0

        while True:
            page_size = self.batch_size
            if limit is not None:
                page_size = min(page_size, limit - len(all_records))
                if page_size <= 0:
                    break

            params = [*base_params, ("limit", str(page_size)), ("offset", str(offset))]
            logger.info(f"Fetching {url}: limit={page_size}, offset={offset}")
            batch = await self._request_with_retry(url, params)

            all_records.extend(batch)
            if len(batch) < page_size:
                break
            offset += page_size

            # Safety limit to prevent runaway requests
            if offset >= self.safety_limit:
                if limit is None:
                    # A full page at the cap means rows remain unread
                    logger.error(f"Reached safety limit of {self.safety_limit} records for {url}")
                    raise RecordStoreError(
                        f"Result exceeds the safety limit of {self.safety_limit} records: {url}"
                    )
                logger.warning(f"Reached safety limit of {self.safety_limit} records for {url}")
                break

        logger.info(f"Fetched {len(all_records)} records from {url}")
        return all_records
