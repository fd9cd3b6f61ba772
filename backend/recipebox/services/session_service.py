"""
RecipeBox Backend — Session Service
====================================

What:  Issues, checks, revokes and sweeps login sessions.
How:   A session is a random URL-safe token stored in the `sessions` table
       with an absolute expiry. The first check after expiry deletes the
       row and reports SessionExpiredError; SessionPruner deletes the rest
       on a timer.
Who:   Auth routes and the get_current_user dependency; SessionPruner is
       started and stopped by the application lifespan.

Sweep Loop:
    ┌──────────┐   interval   ┌──────────────────────┐
    │  sleep   │─────────────▶│ DELETE expired rows  │──┐
    └──────────┘              │ (tenacity retries on │  │
         ▲                    │  OperationalError)   │  │
         └────────────────────┴──────────────────────┴──┘
    A sweep that still fails is logged and the loop continues.
"""

import asyncio
import contextlib
import logging
import secrets
from datetime import timedelta
from typing import Optional, Tuple

from sqlalchemy import delete, select
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from recipebox.config import settings
from recipebox.database import async_session_factory, utcnow
from recipebox.exceptions import SessionExpiredError, SessionNotFoundError
from recipebox.models.user import User, UserSession
from recipebox.services.unit_of_work import run_unit_of_work

logger = logging.getLogger(__name__)


class SessionService:

    def generate_token(self) -> str:
        return secrets.token_urlsafe(settings.session_token_bytes)

    async def create_session(self, db: AsyncSession, user_id: int) -> UserSession:
        """Start a session for the user that lasts session_ttl_hours."""

        async def work(db: AsyncSession) -> UserSession:
            record = UserSession(
                token=self.generate_token(),
                user_id=user_id,
                expires_at=utcnow() + timedelta(hours=settings.session_ttl_hours),
            )
            db.add(record)
            await db.flush()
            logger.info("Session %s created for user %s", record.id, user_id)
            return record

        return await run_unit_of_work(db, work, operation="create_session")

    async def _resolve(
        self, db: AsyncSession, token: str, with_user: bool
    ) -> Tuple[Optional[UserSession], bool]:
        """
        Look the token up and delete it if expired.

        The expired-row delete must commit, so expiry is reported as a flag
        and raised by the caller after the unit of work has finished.
        """

        async def work(db: AsyncSession) -> Tuple[Optional[UserSession], bool]:
            query = select(UserSession).where(UserSession.token == token)
            if with_user:
                query = query.options(selectinload(UserSession.user))
            record = (await db.execute(query)).scalar_one_or_none()
            if record is None:
                return None, False
            if record.is_expired():
                await db.delete(record)
                await db.flush()
                logger.info("Expired session %s for user %s removed", record.id, record.user_id)
                return record, True
            return record, False

        return await run_unit_of_work(db, work, operation="check_session")

    async def check_session(self, db: AsyncSession, token: str) -> UserSession:
        """
        Raises:
            SessionNotFoundError: Unknown token
            SessionExpiredError:  Token past expiry (now deleted)
        """
        record, expired = await self._resolve(db, token, with_user=False)
        if record is None:
            raise SessionNotFoundError()
        if expired:
            raise SessionExpiredError(context={"user_id": record.user_id})
        return record

    async def get_user_for_session(self, db: AsyncSession, token: str) -> User:
        """The user owning a live session; same errors as check_session."""
        record, expired = await self._resolve(db, token, with_user=True)
        if record is None:
            raise SessionNotFoundError()
        if expired:
            raise SessionExpiredError(context={"user_id": record.user_id})
        return record.user

    async def delete_session(self, db: AsyncSession, token: str) -> None:
        """Log out. Unknown tokens are ignored."""

        async def work(db: AsyncSession) -> int:
            result = await db.execute(delete(UserSession).where(UserSession.token == token))
            return result.rowcount or 0

        removed = await run_unit_of_work(db, work, operation="delete_session")
        if removed:
            logger.info("Session logged out")

    async def prune_expired(self, db: AsyncSession) -> int:
        """
        Delete every expired session and commit.

        Runs outside run_unit_of_work so OperationalError reaches the
        pruner's retry policy unwrapped.
        """
        try:
            result = await db.execute(
                delete(UserSession).where(UserSession.expires_at <= utcnow())
            )
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            raise
        return result.rowcount or 0


# ── Singleton Instance ────────────────────────────────────────────────────
session_service = SessionService()


class SessionPruner:
    """
    Background task deleting expired sessions every `interval` seconds.

    Lifecycle:
        start() → asyncio task running _run()
        stop()  → cancels the task and waits for it
    """

    def __init__(
        self,
        session_factory: async_sessionmaker = async_session_factory,
        interval: Optional[float] = None,
    ):
        self.session_factory = session_factory
        self.interval = interval if interval is not None else settings.session_prune_interval
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="session-pruner")
        logger.info("Session pruner started (every %.0fs)", self.interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("Session pruner stopped")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            await self.prune_once()

    async def prune_once(self) -> int:
        """One sweep; failures are logged, never raised."""
        try:
            removed = await self._prune_with_retry()
        except SQLAlchemyError as e:
            logger.error("Session sweep failed: %s", str(e), exc_info=True)
            return 0
        if removed:
            logger.info("Session sweep removed %d expired sessions", removed)
        return removed

    @retry(
        # Locked/unreachable database; anything else is not worth retrying
        retry=retry_if_exception_type(OperationalError),
        stop=stop_after_attempt(settings.retry_max_attempts),
        wait=wait_exponential_jitter(
            multiplier=settings.retry_min_wait,
            max=settings.retry_max_wait,
            jitter=1,
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _prune_with_retry(self) -> int:
        async with self.session_factory() as db:
            return await session_service.prune_expired(db)
