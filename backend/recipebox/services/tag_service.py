"""
RecipeBox Backend — Tag Service
================================

What:  Create, list and delete tags.
How:   Each call is one unit of work. Tags are unique by label; linking a
       tag to a recipe is RecipeService's job.
"""

import logging
from typing import List

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from recipebox.exceptions import ConflictError, NotFoundError, ValidationError
from recipebox.models.recipe import Recipe, Tag
from recipebox.schemas.tag import TagResponse
from recipebox.services.unit_of_work import run_unit_of_work

logger = logging.getLogger(__name__)


def _duplicate_label(label: str) -> ConflictError:
    return ConflictError(message=f"Tag '{label}' already exists", context={"tag": label})


def _tag_loader_options():
    recipes = selectinload(Tag.recipes)
    return (
        recipes.selectinload(Recipe.ingredients),
        recipes.selectinload(Recipe.instructions),
        recipes.selectinload(Recipe.tags),
    )


class TagService:

    async def list_tags(self, db: AsyncSession) -> List[TagResponse]:
        """Every tag, alphabetically, with the recipes carrying it."""

        async def work(db: AsyncSession) -> List[TagResponse]:
            result = await db.execute(
                select(Tag)
                .options(*_tag_loader_options())
                .order_by(Tag.tag)
            )
            return [TagResponse.model_validate(tag) for tag in result.scalars().all()]

        return await run_unit_of_work(db, work, operation="list_tags")

    async def create_tag(self, db: AsyncSession, name: str) -> TagResponse:
        label = (name or "").strip()
        if not label:
            raise ValidationError(message="tag is required", field="tag")

        async def work(db: AsyncSession) -> TagResponse:
            existing = await db.execute(select(Tag.id).where(Tag.tag == label))
            if existing.scalar_one_or_none() is not None:
                raise _duplicate_label(label)
            tag = Tag(tag=label, recipes=[])
            db.add(tag)
            try:
                await db.flush()
            except IntegrityError as e:
                # Inserted by a concurrent request after the check above
                raise _duplicate_label(label) from e
            logger.info("Tag %s created: '%s'", tag.id, label)
            return TagResponse.model_validate(tag)

        return await run_unit_of_work(db, work, operation="create_tag")

    async def delete_tag(self, db: AsyncSession, tag_id: int) -> None:
        """Unlink the tag from every recipe, then delete it."""

        async def work(db: AsyncSession) -> None:
            result = await db.execute(
                select(Tag).where(Tag.id == tag_id).options(selectinload(Tag.recipes))
            )
            tag = result.scalar_one_or_none()
            if tag is None:
                raise NotFoundError(resource="tag", resource_id=tag_id)
            linked = len(tag.recipes)
            tag.recipes.clear()
            await db.flush()
            await db.delete(tag)
            await db.flush()
            logger.info("Tag %s deleted (unlinked from %d recipes)", tag_id, linked)

        await run_unit_of_work(db, work, operation="delete_tag")


# ── Singleton Instance ────────────────────────────────────────────────────
tag_service = TagService()
