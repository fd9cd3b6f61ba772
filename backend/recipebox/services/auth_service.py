"""
RecipeBox Backend — Authentication Service
===========================================

What:  Account registration and credential checks.
How:   Passwords are hashed with bcrypt. Hashing is CPU-bound, so it runs
       in a worker thread to keep the event loop free.
Who:   Called by the /api/auth routes. Session issuing lives in
       SessionService.

Security:
    - Unknown username and wrong password produce the same message.
    - bcrypt only looks at the first 72 bytes of a password, so longer
      passwords are rejected rather than silently truncated.
"""

import asyncio
import logging

import bcrypt
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from recipebox.config import settings
from recipebox.exceptions import AuthenticationError, ConflictError, ValidationError
from recipebox.models.user import User
from recipebox.services.unit_of_work import run_unit_of_work

logger = logging.getLogger(__name__)

BCRYPT_MAX_PASSWORD_BYTES = 72
USERNAME_MAX_LENGTH = 50
INVALID_CREDENTIALS = "Invalid username or password"


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        logger.warning("Stored password hash could not be parsed")
        return False


def _username_taken(username: str) -> ConflictError:
    return ConflictError(message="Username is already taken", context={"username": username})


class AuthService:

    async def register(
        self,
        db: AsyncSession,
        username: str,
        password: str,
        password_confirm: str,
    ) -> User:
        """
        Create an account.

        Raises:
            ValidationError: Missing username/password, mismatch, too long
            ConflictError:   Username already taken
        """
        username = (username or "").strip()
        if not username:
            raise ValidationError(message="username is required", field="username")
        if len(username) > USERNAME_MAX_LENGTH:
            raise ValidationError(
                message=f"username must be at most {USERNAME_MAX_LENGTH} characters",
                field="username",
            )
        if not password:
            raise ValidationError(message="password is required", field="password")
        if len(password.encode("utf-8")) > BCRYPT_MAX_PASSWORD_BYTES:
            raise ValidationError(
                message=f"password must be at most {BCRYPT_MAX_PASSWORD_BYTES} bytes",
                field="password",
            )
        if password != password_confirm:
            raise ValidationError(message="passwords do not match", field="passwordConfirm")

        password_hash = await asyncio.to_thread(hash_password, password)

        async def work(db: AsyncSession) -> User:
            existing = await db.execute(select(User.id).where(User.username == username))
            if existing.scalar_one_or_none() is not None:
                raise _username_taken(username)
            user = User(username=username, password_hash=password_hash)
            db.add(user)
            try:
                await db.flush()
            except IntegrityError as e:
                # Registered by a concurrent request after the check above
                raise _username_taken(username) from e
            logger.info("User %s registered as '%s'", user.id, username)
            return user

        return await run_unit_of_work(db, work, operation="register")

    async def authenticate(self, db: AsyncSession, username: str, password: str) -> User:
        """
        Return the user for a username/password pair.

        Raises:
            AuthenticationError: Unknown user or wrong password
        """

        async def work(db: AsyncSession):
            result = await db.execute(
                select(User).where(User.username == (username or "").strip())
            )
            return result.scalar_one_or_none()

        user = await run_unit_of_work(db, work, operation="authenticate")
        if user is None or not password:
            logger.warning("Failed login for unknown user '%s'", username)
            raise AuthenticationError(message=INVALID_CREDENTIALS)

        matches = await asyncio.to_thread(verify_password, password, user.password_hash)
        if not matches:
            logger.warning("Failed login for user %s", user.id)
            raise AuthenticationError(message=INVALID_CREDENTIALS)

        logger.info("User %s authenticated", user.id)
        return user


# ── Singleton Instance ────────────────────────────────────────────────────
auth_service = AuthService()
