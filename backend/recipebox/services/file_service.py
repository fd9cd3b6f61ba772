"""
RecipeBox Backend — File Storage Service
=========================================

What:  Stores uploaded files on disk and hands out signed, expiring
       download links for them.
How:   Bytes are written with aiofiles under STORAGE_ROOT using a unique
       object name; a `files` row records the name and the current link.
       Links are HMAC-SHA256 signatures over "name:expires" and are
       re-signed when they are within the refresh margin of expiring.
Who:   Called by the /api/file routes and by UserService when listing files.

Object Names:
    <32 hex uuid>_<original basename with unsafe characters replaced>
    e.g. 3f9c...e1_grandmas_pie.jpg

Security:
    - Object names never contain path separators; open_path() still
      refuses anything that resolves outside STORAGE_ROOT.
    - Signatures are compared in constant time.
"""

import hashlib
import hmac
import logging
import os
import re
import uuid
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional
from urllib.parse import quote, urlencode

import aiofiles
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from recipebox.config import settings
from recipebox.database import utcnow
from recipebox.exceptions import FileStorageError, NotFoundError, ValidationError
from recipebox.models.file import StoredFile
from recipebox.schemas.file import FileResponse
from recipebox.services.unit_of_work import run_unit_of_work

logger = logging.getLogger(__name__)

CONTENT_PATH = "/api/file/content"
_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def sanitize_filename(filename: Optional[str]) -> str:
    base = Path(filename or "").name
    cleaned = _UNSAFE_CHARS.sub("_", base).strip("._")
    return cleaned[:200] or "file"


class FileService:
    """
    Manages stored files and their download links.

    Directory Structure:
        storage/
        ├── 3f9c..._pie.jpg
        └── a1b2..._notes.pdf
    """

    def __init__(self, storage_root: Optional[str] = None, secret: Optional[str] = None):
        """
        Args:
            storage_root: Override the default storage path (used in tests).
            secret:       Override the signing key (used in tests).
        """
        self._storage_root = storage_root
        self._secret = secret

    @property
    def storage_root(self) -> Path:
        return Path(self._storage_root or settings.storage_root).resolve()

    @property
    def secret(self) -> bytes:
        return (self._secret or settings.file_url_secret).encode("utf-8")

    # ── Signed URLs ───────────────────────────────────────────────────────

    def _signature(self, name: str, expires: int) -> str:
        message = f"{name}:{expires}".encode("utf-8")
        return hmac.new(self.secret, message, hashlib.sha256).hexdigest()

    def sign_url(self, name: str, expires_at: datetime) -> str:
        expires = int(expires_at.timestamp())
        query = urlencode({"expires": expires, "signature": self._signature(name, expires)})
        return f"{CONTENT_PATH}/{quote(name)}?{query}"

    def verify_signature(
        self, name: str, expires: int, signature: str, now: Optional[datetime] = None
    ) -> bool:
        """True if the signature matches and the link has not expired."""
        now = now or utcnow()
        if expires <= int(now.timestamp()):
            return False
        return hmac.compare_digest(self._signature(name, expires), signature or "")

    def new_url_expiry(self, now: Optional[datetime] = None) -> datetime:
        return (now or utcnow()) + timedelta(hours=settings.file_url_expiry_hours)

    def refresh_url_if_needed(self, record: StoredFile, now: Optional[datetime] = None) -> bool:
        """
        Re-sign the record's link when it expires within the refresh margin.

        Returns True if the record was changed (caller's unit of work saves it).
        """
        now = now or utcnow()
        margin = timedelta(minutes=settings.file_url_refresh_margin_minutes)
        if record.url_expiry - now > margin:
            return False
        record.url_expiry = self.new_url_expiry(now)
        record.url = self.sign_url(record.name, record.url_expiry)
        logger.info("Download link for file %s re-signed", record.id)
        return True

    # ── Storage ───────────────────────────────────────────────────────────

    def validate_upload(self, content: bytes) -> None:
        if not content:
            raise ValidationError(message="Uploaded file is empty", field="file")
        if len(content) > settings.max_file_size:
            max_mb = settings.max_file_size / (1024 * 1024)
            raise ValidationError(
                message=(
                    f"File size ({len(content) / (1024 * 1024):.1f}MB) exceeds "
                    f"maximum of {max_mb:.0f}MB."
                ),
                field="file",
                context={"max_size_mb": max_mb, "actual_size": len(content)},
            )

    def open_path(self, name: str) -> Path:
        """
        Resolve an object name to a file inside the storage root.

        Raises:
            ValidationError: The name escapes the storage root
            NotFoundError:   No such object
        """
        root = self.storage_root
        path = (root / name).resolve()
        if path == root or not path.is_relative_to(root):
            raise ValidationError(message="Invalid file path", field="name")
        if not path.is_file():
            raise NotFoundError(resource="file", resource_id=name)
        return path

    async def _write(self, name: str, content: bytes) -> Path:
        root = self.storage_root
        path = root / name
        try:
            root.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store file at %s: %s", path, str(e))
            raise FileStorageError(
                message="Failed to save uploaded file. Please try again.",
                context={"name": name, "os_error": str(e)},
            )
        logger.info("File stored: %s (%d bytes)", name, len(content))
        return path

    async def cleanup_file(self, path: Path) -> None:
        """Best-effort removal of an object whose database row was not saved."""
        try:
            if path.exists():
                os.remove(path)
                logger.info("Cleaned up file: %s", path.name)
        except OSError as e:
            logger.warning("Failed to clean up file %s: %s", path, str(e))

    # ── Operations ────────────────────────────────────────────────────────

    async def upload_file(
        self,
        db: AsyncSession,
        user_id: int,
        filename: Optional[str],
        content: bytes,
    ) -> FileResponse:
        """
        Store the bytes, then record them for the user.

        The object is removed again if the database insert fails.
        """
        self.validate_upload(content)
        name = f"{uuid.uuid4().hex}_{sanitize_filename(filename)}"
        path = await self._write(name, content)

        async def work(db: AsyncSession) -> FileResponse:
            expiry = self.new_url_expiry()
            record = StoredFile(
                user_id=user_id,
                name=name,
                url=self.sign_url(name, expiry),
                url_expiry=expiry,
            )
            db.add(record)
            await db.flush()
            logger.info("File %s uploaded by user %s as %s", record.id, user_id, name)
            return FileResponse.model_validate(record)

        try:
            return await run_unit_of_work(db, work, operation="upload_file")
        except Exception:
            await self.cleanup_file(path)
            raise

    async def get_file(self, db: AsyncSession, file_id: int) -> FileResponse:
        async def work(db: AsyncSession) -> FileResponse:
            record = await db.get(StoredFile, file_id)
            if record is None:
                raise NotFoundError(resource="file", resource_id=file_id)
            if self.refresh_url_if_needed(record):
                await db.flush()
            return FileResponse.model_validate(record)

        return await run_unit_of_work(db, work, operation="get_file")

    async def get_file_by_name(self, db: AsyncSession, name: str) -> FileResponse:
        async def work(db: AsyncSession) -> FileResponse:
            result = await db.execute(select(StoredFile).where(StoredFile.name == name))
            record = result.scalar_one_or_none()
            if record is None:
                raise NotFoundError(resource="file", resource_id=name)
            if self.refresh_url_if_needed(record):
                await db.flush()
            return FileResponse.model_validate(record)

        return await run_unit_of_work(db, work, operation="get_file_by_name")


# ── Singleton Instance ────────────────────────────────────────────────────
file_service = FileService()
