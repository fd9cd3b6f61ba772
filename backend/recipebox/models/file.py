"""
RecipeBox Backend — Uploaded File Model
========================================

What:  Metadata for a file a user uploaded; the bytes live under
       STORAGE_ROOT under `name`.
Why url/url_expiry are stored:
    The signed download link is cached on the row and only re-signed when
    it is about to expire.
"""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from recipebox.database import Base, UTCDateTime, utcnow

if TYPE_CHECKING:
    from recipebox.models.user import User


class StoredFile(Base):
    __tablename__ = "files"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # Object name in storage: "<uuid hex>_<sanitized original name>"
    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    url: Mapped[str] = mapped_column(Text, nullable=False)
    url_expiry: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

    user: Mapped["User"] = relationship(back_populates="files")

    def __repr__(self) -> str:
        return f"<StoredFile(id={self.id}, name='{self.name}')>"
