"""
RecipeBox Backend — Recipe Service (Mutation Core)
===================================================

What:  Creates, reads, updates and deletes recipes together with their
       ingredients, ordered instructions and tag links.
How:   Each public method is one unit of work (see unit_of_work.py): a
       single transaction with a bounded deadline that is rolled back on
       any failure. Every response is rebuilt from a fresh, fully loaded
       read of the recipe inside that same transaction.
Who:   Called by the recipe route handlers.

Ownership Rule:
    Every mutation loads the recipe first (404 if missing), then checks
    recipe.user_id against the caller (403 otherwise), and only then looks
    at the child being changed:

        child missing                 → NotFoundError  (404)
        child on a different recipe   → ConflictError  (409)

Instruction Ordering:
    Instructions are returned sorted by (step, id). New instructions
    without an explicit step go after the current highest step. A swap
    exchanges the two step values. Deleting leaves the other steps as
    they are, so gaps are allowed.
"""

import logging
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from recipebox.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from recipebox.models.recipe import Ingredient, Instruction, Recipe, Tag
from recipebox.schemas.recipe import IngredientCreate, InstructionCreate, RecipeResponse
from recipebox.services.unit_of_work import run_unit_of_work

logger = logging.getLogger(__name__)


def recipe_loader_options():
    """Eager loads needed to serialize a Recipe without lazy IO."""
    return (
        selectinload(Recipe.ingredients),
        selectinload(Recipe.instructions),
        selectinload(Recipe.tags),
    )


async def load_recipe(db: AsyncSession, recipe_id: int) -> Recipe:
    """
    Fetch a recipe with all children, overwriting any stale copies in the
    session's identity map.

    Raises:
        NotFoundError: No recipe with this id
    """
    result = await db.execute(
        select(Recipe)
        .where(Recipe.id == recipe_id)
        .options(*recipe_loader_options())
        .execution_options(populate_existing=True)
    )
    recipe = result.scalar_one_or_none()
    if recipe is None:
        raise NotFoundError(resource="recipe", resource_id=recipe_id)
    return recipe


def _require_text(value: Optional[str], field: str) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise ValidationError(message=f"{field} is required", field=field)
    return cleaned


def _require_step(step: Optional[int]) -> None:
    if step is not None and step < 1:
        raise ValidationError(message="step must be 1 or greater", field="step")


class RecipeService:
    """
    Business logic for the recipe object graph.

    Stateless: every method receives the session it works on, so the
    caller decides the session scope (one per request in the API).
    """

    # ── Helpers ───────────────────────────────────────────────────────────

    async def _owned_recipe(self, db: AsyncSession, user_id: int, recipe_id: int) -> Recipe:
        recipe = await load_recipe(db, recipe_id)
        if recipe.user_id != user_id:
            logger.warning(
                "User %s attempted to modify recipe %s owned by user %s",
                user_id,
                recipe_id,
                recipe.user_id,
            )
            raise PermissionDeniedError(
                message="You do not have permission to modify this recipe",
                context={"recipe_id": recipe_id},
            )
        return recipe

    async def _recipe_ingredient(
        self, db: AsyncSession, recipe: Recipe, ingredient_id: int
    ) -> Ingredient:
        ingredient = await db.get(Ingredient, ingredient_id)
        if ingredient is None:
            raise NotFoundError(resource="ingredient", resource_id=ingredient_id)
        if ingredient.recipe_id != recipe.id:
            logger.warning(
                "Ingredient %s belongs to recipe %s, not %s",
                ingredient_id,
                ingredient.recipe_id,
                recipe.id,
            )
            raise ConflictError(
                message="Ingredient does not belong to this recipe",
                context={"recipe_id": recipe.id, "ingredient_id": ingredient_id},
            )
        return ingredient

    async def _recipe_instruction(
        self, db: AsyncSession, recipe: Recipe, instruction_id: int
    ) -> Instruction:
        instruction = await db.get(Instruction, instruction_id)
        if instruction is None:
            raise NotFoundError(resource="instruction", resource_id=instruction_id)
        if instruction.recipe_id != recipe.id:
            logger.warning(
                "Instruction %s belongs to recipe %s, not %s",
                instruction_id,
                instruction.recipe_id,
                recipe.id,
            )
            raise ConflictError(
                message="Instruction does not belong to this recipe",
                context={"recipe_id": recipe.id, "instruction_id": instruction_id},
            )
        return instruction

    async def _reloaded_response(self, db: AsyncSession, recipe_id: int) -> RecipeResponse:
        # Flush first so the reload sees this unit of work's own changes
        await db.flush()
        recipe = await load_recipe(db, recipe_id)
        return RecipeResponse.model_validate(recipe)

    # ── Recipe ────────────────────────────────────────────────────────────

    async def create_recipe(
        self,
        db: AsyncSession,
        user_id: int,
        name: str,
        description: Optional[str] = "",
        ingredients: Sequence[IngredientCreate] = (),
        instructions: Sequence[InstructionCreate] = (),
    ) -> RecipeResponse:
        """
        Insert a recipe with its initial ingredients and instructions.

        Instructions without a step are numbered after the highest step
        seen so far in the list, starting from 1.
        """
        name = _require_text(name, "name")
        for item in instructions:
            _require_step(item.step)

        async def work(db: AsyncSession) -> RecipeResponse:
            recipe = Recipe(user_id=user_id, name=name, description=description or "")

            for item in ingredients:
                recipe.ingredients.append(
                    Ingredient(
                        name=_require_text(item.name, "ingredient name"),
                        quantity=item.quantity or "",
                        unit=item.unit or "",
                    )
                )

            next_step = 1
            for item in instructions:
                step = item.step if item.step is not None else next_step
                recipe.instructions.append(
                    Instruction(step=step, contents=_require_text(item.contents, "contents"))
                )
                next_step = max(next_step, step + 1)

            db.add(recipe)
            await db.flush()
            logger.info(
                "Recipe %s created by user %s (%d ingredients, %d instructions)",
                recipe.id,
                user_id,
                len(ingredients),
                len(instructions),
            )
            return await self._reloaded_response(db, recipe.id)

        return await run_unit_of_work(db, work, operation="create_recipe")

    async def get_recipe(self, db: AsyncSession, recipe_id: int) -> RecipeResponse:
        async def work(db: AsyncSession) -> RecipeResponse:
            recipe = await load_recipe(db, recipe_id)
            return RecipeResponse.model_validate(recipe)

        return await run_unit_of_work(db, work, operation="get_recipe")

    async def update_recipe(
        self,
        db: AsyncSession,
        user_id: int,
        recipe_id: int,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> RecipeResponse:
        """Change name and/or description. None or "" leaves a field as is."""
        if not name and not description:
            raise ValidationError(message="Provide a name or description to update")

        async def work(db: AsyncSession) -> RecipeResponse:
            recipe = await self._owned_recipe(db, user_id, recipe_id)
            if name:
                recipe.name = _require_text(name, "name")
            if description:
                recipe.description = description
            logger.info("Recipe %s updated by user %s", recipe_id, user_id)
            return await self._reloaded_response(db, recipe_id)

        return await run_unit_of_work(db, work, operation="update_recipe")

    async def delete_recipe(self, db: AsyncSession, user_id: int, recipe_id: int) -> None:
        """Remove the recipe, its ingredients and instructions, and its tag links."""

        async def work(db: AsyncSession) -> None:
            recipe = await self._owned_recipe(db, user_id, recipe_id)
            await db.delete(recipe)
            await db.flush()
            logger.info("Recipe %s deleted by user %s", recipe_id, user_id)

        await run_unit_of_work(db, work, operation="delete_recipe")

    # ── Ingredients ───────────────────────────────────────────────────────

    async def add_ingredient(
        self,
        db: AsyncSession,
        user_id: int,
        recipe_id: int,
        name: str,
        quantity: Optional[str] = "",
        unit: Optional[str] = "",
    ) -> RecipeResponse:
        name = _require_text(name, "name")

        async def work(db: AsyncSession) -> RecipeResponse:
            recipe = await self._owned_recipe(db, user_id, recipe_id)
            recipe.ingredients.append(
                Ingredient(name=name, quantity=quantity or "", unit=unit or "")
            )
            logger.info("Ingredient '%s' added to recipe %s", name, recipe_id)
            return await self._reloaded_response(db, recipe_id)

        return await run_unit_of_work(db, work, operation="add_ingredient")

    async def update_ingredient(
        self,
        db: AsyncSession,
        user_id: int,
        recipe_id: int,
        ingredient_id: int,
        name: Optional[str] = None,
        quantity: Optional[str] = None,
        unit: Optional[str] = None,
    ) -> RecipeResponse:
        """Change any of name/quantity/unit. None or "" leaves a field as is."""
        if not name and not quantity and not unit:
            raise ValidationError(message="Provide a name, quantity or unit to update")

        async def work(db: AsyncSession) -> RecipeResponse:
            recipe = await self._owned_recipe(db, user_id, recipe_id)
            ingredient = await self._recipe_ingredient(db, recipe, ingredient_id)
            if name:
                ingredient.name = _require_text(name, "name")
            if quantity:
                ingredient.quantity = quantity
            if unit:
                ingredient.unit = unit
            logger.info("Ingredient %s on recipe %s updated", ingredient_id, recipe_id)
            return await self._reloaded_response(db, recipe_id)

        return await run_unit_of_work(db, work, operation="update_ingredient")

    async def delete_ingredient(
        self, db: AsyncSession, user_id: int, recipe_id: int, ingredient_id: int
    ) -> None:
        async def work(db: AsyncSession) -> None:
            recipe = await self._owned_recipe(db, user_id, recipe_id)
            ingredient = await self._recipe_ingredient(db, recipe, ingredient_id)
            recipe.ingredients.remove(ingredient)
            await db.flush()
            logger.info("Ingredient %s removed from recipe %s", ingredient_id, recipe_id)

        await run_unit_of_work(db, work, operation="delete_ingredient")

    # ── Instructions ──────────────────────────────────────────────────────

    async def add_instruction(
        self,
        db: AsyncSession,
        user_id: int,
        recipe_id: int,
        contents: str,
        step: Optional[int] = None,
    ) -> RecipeResponse:
        """Add a step; without an explicit step it goes after the last one."""
        contents = _require_text(contents, "contents")
        _require_step(step)

        async def work(db: AsyncSession) -> RecipeResponse:
            recipe = await self._owned_recipe(db, user_id, recipe_id)
            position = step
            if position is None:
                position = max((i.step for i in recipe.instructions), default=0) + 1
            recipe.instructions.append(Instruction(step=position, contents=contents))
            logger.info("Instruction added to recipe %s at step %d", recipe_id, position)
            return await self._reloaded_response(db, recipe_id)

        return await run_unit_of_work(db, work, operation="add_instruction")

    async def update_instruction(
        self,
        db: AsyncSession,
        user_id: int,
        recipe_id: int,
        instruction_id: int,
        contents: str,
    ) -> RecipeResponse:
        contents = _require_text(contents, "contents")

        async def work(db: AsyncSession) -> RecipeResponse:
            recipe = await self._owned_recipe(db, user_id, recipe_id)
            instruction = await self._recipe_instruction(db, recipe, instruction_id)
            instruction.contents = contents
            logger.info("Instruction %s on recipe %s updated", instruction_id, recipe_id)
            return await self._reloaded_response(db, recipe_id)

        return await run_unit_of_work(db, work, operation="update_instruction")

    async def swap_instructions(
        self,
        db: AsyncSession,
        user_id: int,
        recipe_id: int,
        first_id: int,
        second_id: int,
    ) -> RecipeResponse:
        """Exchange the step values of two instructions on the same recipe."""
        if first_id == second_id:
            raise ValidationError(
                message="Cannot swap an instruction with itself",
                context={"instruction_id": first_id},
            )

        async def work(db: AsyncSession) -> RecipeResponse:
            recipe = await self._owned_recipe(db, user_id, recipe_id)
            first = await self._recipe_instruction(db, recipe, first_id)
            second = await self._recipe_instruction(db, recipe, second_id)
            first.step, second.step = second.step, first.step
            logger.info(
                "Swapped instructions %s and %s on recipe %s", first_id, second_id, recipe_id
            )
            return await self._reloaded_response(db, recipe_id)

        return await run_unit_of_work(db, work, operation="swap_instructions")

    async def delete_instruction(
        self, db: AsyncSession, user_id: int, recipe_id: int, instruction_id: int
    ) -> None:
        async def work(db: AsyncSession) -> None:
            recipe = await self._owned_recipe(db, user_id, recipe_id)
            instruction = await self._recipe_instruction(db, recipe, instruction_id)
            recipe.instructions.remove(instruction)
            await db.flush()
            logger.info("Instruction %s removed from recipe %s", instruction_id, recipe_id)

        await run_unit_of_work(db, work, operation="delete_instruction")

    # ── Tags ──────────────────────────────────────────────────────────────

    async def add_tag(
        self, db: AsyncSession, user_id: int, recipe_id: int, tag_id: int
    ) -> RecipeResponse:
        """
        Link an existing tag to the recipe.

        Both sides of the relationship are updated in memory, so the tag
        lists the recipe and the recipe lists the tag as soon as this returns.
        """

        async def work(db: AsyncSession) -> RecipeResponse:
            recipe = await self._owned_recipe(db, user_id, recipe_id)
            result = await db.execute(
                select(Tag).where(Tag.id == tag_id).options(selectinload(Tag.recipes))
            )
            tag = result.scalar_one_or_none()
            if tag is None:
                raise NotFoundError(resource="tag", resource_id=tag_id)
            if any(existing.id == tag_id for existing in recipe.tags):
                raise ConflictError(
                    message=f"Tag '{tag.tag}' is already on this recipe",
                    context={"recipe_id": recipe_id, "tag_id": tag_id},
                )
            recipe.tags.append(tag)
            logger.info("Tag %s added to recipe %s", tag_id, recipe_id)
            return await self._reloaded_response(db, recipe_id)

        return await run_unit_of_work(db, work, operation="add_tag")

    async def remove_tag(
        self, db: AsyncSession, user_id: int, recipe_id: int, tag_id: int
    ) -> None:
        async def work(db: AsyncSession) -> None:
            recipe = await self._owned_recipe(db, user_id, recipe_id)
            tag = next((t for t in recipe.tags if t.id == tag_id), None)
            if tag is None:
                raise NotFoundError(
                    resource="tag",
                    resource_id=tag_id,
                    context={"recipe_id": recipe_id},
                )
            recipe.tags.remove(tag)
            await db.flush()
            logger.info("Tag %s removed from recipe %s", tag_id, recipe_id)

        await run_unit_of_work(db, work, operation="remove_tag")


# ── Singleton Instance ────────────────────────────────────────────────────
recipe_service = RecipeService()
