"""
RecipeBox Backend — Unit of Work
=================================

What:  Runs one service operation as a single time-bounded transaction.
How:   The operation body is awaited inside asyncio.timeout(); on success the
       session is committed inside the same deadline. Any failure rolls the
       session back before the error leaves this module.
Who:   Every RecipeService, TagService, UserService, FileService and
       SessionService operation.

Failure Mapping:
    ┌──────────────────────────┬──────────┬─────────────────────────────┐
    │ Raised inside the work   │ Rollback │ Raised to the caller        │
    ├──────────────────────────┼──────────┼─────────────────────────────┤
    │ deadline exceeded        │   yes    │ OperationTimeoutError       │
    │ RecipeBoxError           │   yes    │ the same exception          │
    │ SQLAlchemyError          │   yes    │ DatabaseError               │
    │ commit failed            │   yes    │ CommitError                 │
    └──────────────────────────┴──────────┴─────────────────────────────┘

    A rollback that itself fails is logged; the original error still wins.
    Anything else (programming errors) propagates untouched after rollback.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from recipebox.config import settings
from recipebox.exceptions import (
    CommitError,
    DatabaseError,
    OperationTimeoutError,
    RecipeBoxError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def _rollback(db: AsyncSession, operation: str) -> None:
    try:
        await db.rollback()
    except Exception as e:
        logger.error("Rollback failed for %s: %s", operation, str(e), exc_info=True)


async def run_unit_of_work(
    db: AsyncSession,
    work: Callable[[AsyncSession], Awaitable[T]],
    *,
    operation: str,
    timeout: Optional[float] = None,
) -> T:
    """
    Execute `work(db)` and commit, all within `timeout` seconds.

    Args:
        db:        Session the work runs on (normally the request session)
        work:      Coroutine function doing the reads/writes; its return
                   value is returned from here after the commit
        operation: Short name used in logs and in OperationTimeoutError
        timeout:   Seconds; defaults to settings.operation_timeout

    Raises:
        OperationTimeoutError, DatabaseError, CommitError, or whatever
        RecipeBoxError the work raised. The session has been rolled back
        in every case.
    """
    limit = timeout if timeout is not None else settings.operation_timeout

    try:
        async with asyncio.timeout(limit):
            result = await work(db)
            try:
                await db.commit()
            except SQLAlchemyError as e:
                logger.error("Commit failed for %s: %s", operation, str(e))
                raise CommitError(
                    context={"operation": operation, "error_type": type(e).__name__}
                ) from e

    except TimeoutError as e:
        await _rollback(db, operation)
        logger.warning("%s exceeded %.2fs and was rolled back", operation, limit)
        raise OperationTimeoutError(operation=operation, timeout=limit) from e

    except RecipeBoxError:
        await _rollback(db, operation)
        raise

    except SQLAlchemyError as e:
        await _rollback(db, operation)
        logger.error("Database error during %s: %s", operation, str(e), exc_info=True)
        raise DatabaseError(
            context={"operation": operation, "error_type": type(e).__name__}
        ) from e

    except Exception:
        await _rollback(db, operation)
        raise

    return result
