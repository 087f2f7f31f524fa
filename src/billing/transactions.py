"""Run a ledger operation as one transaction, replaying it on optimistic-lock conflicts."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TypeVar

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from src.config import settings
from src.core.exceptions import ConcurrencyConflictError
from src.core.logging import log

T = TypeVar("T")


async def atomic(
    db: AsyncSession,
    operation: Callable[[], Awaitable[T]],
    *,
    name: str,
    retry_on: tuple[type[Exception], ...] = (StaleDataError,),
    attempts: int | None = None,
) -> T:
    """Execute ``operation`` and commit, or roll back everything it did.

    ``operation`` must load every row it reads itself, so a replay after a
    conflict validates against fresh state. Errors other than ``retry_on``
    propagate after the rollback.
    """
    attempts = attempts or settings.concurrency_retry_attempts
    for attempt in range(1, attempts + 1):
        try:
            result = await operation()
            await db.commit()
            return result
        except retry_on as e:
            await db.rollback()
            log.warning(f"{name}: concurrent update detected (attempt {attempt}/{attempts}): {e}")
        except Exception:
            await db.rollback()
            raise

    raise ConcurrencyConflictError(
        f"{name} could not be applied because the invoice changed concurrently; please retry",
        details={"attempts": attempts},
    )
