# extract_builder/extracts/executor.py
"""Paginated execution of a compiled extract statement against the membership warehouse."""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Protocol

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError, DisconnectionError

from extract_builder.core.exceptions import ExecutionFailure, QueryTimeout, TransientStoreFailure, ValidationFailure
from extract_builder.core.retry import with_store_retry

logger = logging.getLogger(__name__)

ROW_NUMBER_COLUMN = "rnum"

# sqlite checks the deadline every this many VM instructions
PROGRESS_INTERVAL = 10000

PAGE_QUERY = (
    "WITH base_query AS ({statement}) "
    "SELECT * FROM ("
    "SELECT a.*, ROWNUM rnum FROM (SELECT * FROM base_query ORDER BY 1) a WHERE ROWNUM <= :max_row"
    ") WHERE rnum > :min_row"
)
COUNT_QUERY = "WITH base_query AS ({statement}) SELECT COUNT(*) AS total_count FROM base_query"


class StatementRunner(Protocol):
    def fetch_all(self, sql: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        ...


class SqlAlchemyStatementRunner:
    """Runs raw SQL on the warehouse engine; one pooled connection per call.

    With ``timeout_seconds`` set, the driver itself abandons the call at the
    deadline: oracledb through ``call_timeout``, sqlite through a progress
    handler. A cancelled asyncio wait alone would leave the query running.
    """

    def __init__(self, engine: Engine, timeout_seconds: Optional[float] = None):
        self.engine = engine
        self.timeout_seconds = timeout_seconds

    def fetch_all(self, sql: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        try:
            connection = self.engine.connect()
        except DBAPIError as e:
            raise DisconnectionError(f"Could not connect to the membership warehouse: {e.orig}") from e

        with connection:
            driver_connection = connection.connection.driver_connection
            deadline = self.arm_deadline(driver_connection)
            try:
                result = connection.execute(text(sql), params)
                return [dict(row) for row in result.mappings()]
            except DBAPIError as e:
                if deadline is not None and time.monotonic() >= deadline:
                    raise QueryTimeout(f"Query did not finish within {self.timeout_seconds} seconds") from e
                raise
            finally:
                self.disarm_deadline(driver_connection)

    def arm_deadline(self, driver_connection) -> Optional[float]:
        if self.timeout_seconds is None:
            return None
        deadline = time.monotonic() + self.timeout_seconds
        if hasattr(driver_connection, "call_timeout"):
            driver_connection.call_timeout = max(1, int(self.timeout_seconds * 1000))
        elif hasattr(driver_connection, "set_progress_handler"):
            driver_connection.set_progress_handler(
                lambda: 1 if time.monotonic() > deadline else 0, PROGRESS_INTERVAL
            )
        else:
            logger.debug(f"No driver-level deadline for {type(driver_connection).__name__}")
        return deadline

    def disarm_deadline(self, driver_connection) -> None:
        if self.timeout_seconds is None:
            return
        if hasattr(driver_connection, "call_timeout"):
            driver_connection.call_timeout = 0
        elif hasattr(driver_connection, "set_progress_handler"):
            driver_connection.set_progress_handler(None, 0)


@dataclass
class PageResult:
    columns: List[str]
    rows: List[Dict[str, Optional[str]]]
    total_count: int
    current_page: int
    page_size: int
    has_more: bool
    execution_time_ms: float = field(default=0.0)


def escape_bind_markers(statement: str) -> str:
    """Keep literal colons in the statement from being read as bind parameters."""
    return statement.replace(":", "\\:")


def build_page_query(statement: str) -> str:
    return PAGE_QUERY.format(statement=escape_bind_markers(statement))


def build_count_query(statement: str) -> str:
    return COUNT_QUERY.format(statement=escape_bind_markers(statement))


def page_bounds(page: int, page_size: int) -> Dict[str, int]:
    """Row-number window for a 1-based page."""
    offset = (page - 1) * page_size
    return {"min_row": offset, "max_row": offset + page_size}


def format_value(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (datetime, date)):
        return value.strftime("%Y-%m-%d")
    return str(value)


def shape_rows(raw_rows: List[Dict[str, Any]]):
    """Column names come from the first row, minus the row-number column."""
    if not raw_rows:
        return [], []
    columns = [name for name in raw_rows[0].keys() if name.lower() != ROW_NUMBER_COLUMN]
    rows = [{column: format_value(raw.get(column)) for column in columns} for raw in raw_rows]
    return columns, rows


def _extract_count(raw_rows: List[Dict[str, Any]]) -> int:
    if not raw_rows:
        return 0
    return int(next(iter(raw_rows[0].values())) or 0)


class PaginatedExecutor:
    """Runs the page and count queries for a statement concurrently.

    Totals never exceed the row ceiling compiled into the statement, so paging
    walks a fixed-size sample rather than the full result set.
    """

    def __init__(
        self,
        runner: StatementRunner,
        timeout_seconds: float = 30.0,
        retry_attempts: int = 1,
        retry_delay: float = 0.5,
    ):
        self.runner = runner
        self.timeout_seconds = timeout_seconds
        self.retry_attempts = retry_attempts
        self.retry_delay = retry_delay

    def _fetch(self, sql: str, params: Dict[str, Any], label: str) -> List[Dict[str, Any]]:
        return with_store_retry(
            lambda: self.runner.fetch_all(sql, params),
            attempts=self.retry_attempts,
            base_delay=self.retry_delay,
            label=label,
        )

    async def execute(self, statement: str, page: int = 1, page_size: int = 10) -> PageResult:
        if page < 1 or page_size < 1:
            raise ValidationFailure("page and page_size must both be at least 1")

        page_sql = build_page_query(statement)
        count_sql = build_count_query(statement)
        start_time = time.time()

        try:
            raw_rows, count_rows = await asyncio.wait_for(
                asyncio.gather(
                    asyncio.to_thread(self._fetch, page_sql, page_bounds(page, page_size), "extract page query"),
                    asyncio.to_thread(self._fetch, count_sql, {}, "extract count query"),
                ),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            logger.warning(f"Extract query exceeded {self.timeout_seconds}s")
            raise QueryTimeout(f"Query did not finish within {self.timeout_seconds} seconds") from e
        except QueryTimeout:
            logger.warning(f"Warehouse abandoned extract query after {self.timeout_seconds}s")
            raise
        except TransientStoreFailure as e:
            logger.warning(f"Warehouse connection unavailable: {e.message}")
            raise TransientStoreFailure("The membership database is temporarily unavailable, please retry") from e
        except DBAPIError as e:
            logger.error(f"Warehouse rejected extract statement: {e}")
            raise ExecutionFailure(f"Failed to execute query: {e.orig}") from e

        columns, rows = shape_rows(raw_rows)
        total_count = _extract_count(count_rows)
        execution_time_ms = (time.time() - start_time) * 1000
        logger.info(f"Executed extract page {page} ({len(rows)}/{total_count} rows) in {execution_time_ms:.1f}ms")

        return PageResult(
            columns=columns,
            rows=rows,
            total_count=total_count,
            current_page=page,
            page_size=page_size,
            has_more=page * page_size < total_count,
            execution_time_ms=execution_time_ms,
        )
