"""Helpers shared by the repositories."""

import time
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import Any, ParamSpec, TypeVar

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from core.wide_event import set_wide_event_fields

SLOW_QUERY_THRESHOLD_MS = 500

P = ParamSpec("P")
R = TypeVar("R")


def log_slow_query(
    operation_name: str,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Tag the request's wide event when a repository call is slow or fails.

    The exception, if any, propagates unchanged.

        @log_slow_query("get_certification")
        async def get_by_id(self, certification_id: int) -> Certification | None:
    """

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            started = time.perf_counter()
            failure: Exception | None = None
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                failure = e
                raise
            finally:
                elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
                if failure is not None:
                    set_wide_event_fields(
                        db_query_error=True,
                        db_operation=operation_name,
                        db_duration_ms=elapsed_ms,
                        db_error=str(failure),
                        db_error_type=type(failure).__name__,
                    )
                elif elapsed_ms > SLOW_QUERY_THRESHOLD_MS:
                    set_wide_event_fields(
                        db_slow_query=True,
                        db_operation=operation_name,
                        db_duration_ms=elapsed_ms,
                    )

        return wrapper

    return decorator


def dialect_insert(db: AsyncSession, model: type[Any]):
    """INSERT construct supporting ON CONFLICT for the session's dialect.

    PostgreSQL in production, SQLite for local runs and tests.
    """
    dialect_name = db.get_bind().dialect.name
    if dialect_name == "postgresql":
        return postgresql.insert(model)
    if dialect_name == "sqlite":
        return sqlite.insert(model)
    raise NotImplementedError(f"ON CONFLICT not supported for {dialect_name}")


async def insert_if_absent(
    db: AsyncSession,
    model: type[Any],
    rows: list[dict[str, Any]],
    index_elements: list[str],
) -> int:
    """INSERT ... ON CONFLICT DO NOTHING for one or more rows.

    Returns the number of rows actually inserted. Safe to call concurrently
    and repeatedly; the unique constraint on ``index_elements`` decides.

    Note:
        Does NOT commit. Caller owns the transaction.
    """
    if not rows:
        return 0
    stmt = dialect_insert(db, model).values(rows)
    stmt = stmt.on_conflict_do_nothing(index_elements=index_elements)
    result = await db.execute(stmt)
    return max(result.rowcount or 0, 0)
