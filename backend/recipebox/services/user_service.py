"""
RecipeBox Backend — User Service (Read Paths)
==============================================

What:  Public user profiles and paginated lists of a user's recipes and files.
How:   Offset pagination, newest first, with a separate COUNT for totals.
       page < 1 is treated as 1; limit is clamped to [1, max_page_size].
Who:   Called by the /api/user routes.
"""

import logging
from typing import Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from recipebox.config import settings
from recipebox.exceptions import NotFoundError
from recipebox.models.file import StoredFile
from recipebox.models.recipe import Recipe
from recipebox.models.user import User
from recipebox.schemas.file import FilePage, FileResponse
from recipebox.schemas.recipe import RecipePage, RecipeResponse
from recipebox.schemas.user import UserProfileResponse
from recipebox.services.file_service import file_service
from recipebox.services.recipe_service import recipe_loader_options
from recipebox.services.unit_of_work import run_unit_of_work

logger = logging.getLogger(__name__)


def normalize_page(page: Optional[int], limit: Optional[int]) -> Tuple[int, int]:
    """Apply defaults and bounds to page/limit query values."""
    page = page if page and page > 0 else 1
    if limit is None:
        limit = settings.default_page_size
    limit = max(1, min(limit, settings.max_page_size))
    return page, limit


async def _get_user_by_username(db: AsyncSession, username: str) -> User:
    result = await db.execute(select(User).where(User.username == username))
    user = result.scalar_one_or_none()
    if user is None:
        raise NotFoundError(resource="user", resource_id=username)
    return user


class UserService:

    async def get_user(self, db: AsyncSession, username: str) -> UserProfileResponse:
        async def work(db: AsyncSession) -> UserProfileResponse:
            user = await _get_user_by_username(db, username)
            count = await db.execute(
                select(func.count(Recipe.id)).where(Recipe.user_id == user.id)
            )
            return UserProfileResponse(
                id=user.id,
                username=user.username,
                created_at=user.created_at,
                recipe_count=count.scalar() or 0,
            )

        return await run_unit_of_work(db, work, operation="get_user")

    async def get_user_by_id(self, db: AsyncSession, user_id: int) -> User:
        async def work(db: AsyncSession) -> User:
            user = await db.get(User, user_id)
            if user is None:
                raise NotFoundError(resource="user", resource_id=user_id)
            return user

        return await run_unit_of_work(db, work, operation="get_user_by_id")

    async def get_user_recipes(
        self,
        db: AsyncSession,
        username: str,
        page: Optional[int] = 1,
        limit: Optional[int] = None,
    ) -> RecipePage:
        """
        One page of a user's recipes with ingredients, instructions and tags.

        Raises:
            NotFoundError: Unknown username (an existing user with no
                           recipes returns an empty page)
        """
        page, limit = normalize_page(page, limit)

        async def work(db: AsyncSession) -> RecipePage:
            user = await _get_user_by_username(db, username)
            total = await db.execute(
                select(func.count(Recipe.id)).where(Recipe.user_id == user.id)
            )
            total_count = total.scalar() or 0

            result = await db.execute(
                select(Recipe)
                .where(Recipe.user_id == user.id)
                .options(*recipe_loader_options())
                .order_by(Recipe.created_at.desc(), Recipe.id.desc())
                .offset((page - 1) * limit)
                .limit(limit)
                .execution_options(populate_existing=True)
            )
            items = [RecipeResponse.model_validate(r) for r in result.scalars().all()]
            return RecipePage(
                items=items,
                total_count=total_count,
                page=page,
                limit=limit,
                has_more=page * limit < total_count,
            )

        return await run_unit_of_work(db, work, operation="get_user_recipes")

    async def get_user_files(
        self,
        db: AsyncSession,
        username: str,
        page: Optional[int] = 1,
        limit: Optional[int] = None,
    ) -> FilePage:
        page, limit = normalize_page(page, limit)

        async def work(db: AsyncSession) -> FilePage:
            user = await _get_user_by_username(db, username)
            total = await db.execute(
                select(func.count(StoredFile.id)).where(StoredFile.user_id == user.id)
            )
            total_count = total.scalar() or 0

            result = await db.execute(
                select(StoredFile)
                .where(StoredFile.user_id == user.id)
                .order_by(StoredFile.created_at.desc(), StoredFile.id.desc())
                .offset((page - 1) * limit)
                .limit(limit)
            )
            records = list(result.scalars().all())
            refreshed = [file_service.refresh_url_if_needed(f) for f in records]
            if any(refreshed):
                await db.flush()
            items = [FileResponse.model_validate(f) for f in records]
            return FilePage(
                items=items,
                total_count=total_count,
                page=page,
                limit=limit,
                has_more=page * limit < total_count,
            )

        return await run_unit_of_work(db, work, operation="get_user_files")


# ── Singleton Instance ────────────────────────────────────────────────────
user_service = UserService()
