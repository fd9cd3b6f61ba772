"""
RecipeBox Backend — Recipe Route Handlers
==========================================

What:  HTTP surface of the recipe mutation core.
How:   Thin handlers: parse path/body, resolve the caller, delegate to
       RecipeService, return the updated recipe. Ownership, 404/409 checks
       and transactions all live in the service.

Route Inventory (prefix /api/recipe):
    POST   /                                   create recipe          201
    GET    /{id}                               read recipe (public)   200
    PATCH  /{id}                               update name/desc       200
    DELETE /{id}                               delete recipe          204
    POST   /{id}/ingredient                    add ingredient         201
    PATCH  /{id}/ingredient/{ingredient_id}    update ingredient      200
    DELETE /{id}/ingredient/{ingredient_id}    delete ingredient      204
    POST   /{id}/instruction                   add instruction        201
    PATCH  /{id}/instruction/{instruction_id}  update instruction     200
    PATCH  /{id}/instruction/{first}/{second}  swap two steps         200
    DELETE /{id}/instruction/{instruction_id}  delete instruction     204
    PATCH  /{id}/tag/{tag_id}                  attach tag             200
    DELETE /{id}/tag/{tag_id}                  detach tag             204
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from recipebox.database import get_db_session
from recipebox.models.user import User
from recipebox.routes.dependencies import get_current_user
from recipebox.schemas.common import ErrorResponse
from recipebox.schemas.recipe import (
    IngredientCreate,
    IngredientUpdate,
    InstructionCreate,
    InstructionUpdate,
    RecipeCreate,
    RecipeResponse,
    RecipeUpdate,
)
from recipebox.services.recipe_service import recipe_service

router = APIRouter(prefix="/api/recipe", tags=["Recipes"])

# Shared OpenAPI error docs for owner-only endpoints
OWNER_ERRORS = {
    401: {"description": "Not logged in", "model": ErrorResponse},
    403: {"description": "Recipe belongs to another user", "model": ErrorResponse},
    404: {"description": "Recipe or child not found", "model": ErrorResponse},
    409: {"description": "Child belongs to a different recipe", "model": ErrorResponse},
    503: {"description": "Operation timed out and was rolled back", "model": ErrorResponse},
}


# ── Recipe ────────────────────────────────────────────────────────────────

@router.post(
    "",
    response_model=RecipeResponse,
    status_code=status.HTTP_201_CREATED,
    responses={401: OWNER_ERRORS[401], 422: {"description": "Invalid recipe", "model": ErrorResponse}},
    summary="Create a recipe with its ingredients and instructions",
)
async def create_recipe(
    body: RecipeCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> RecipeResponse:
    return await recipe_service.create_recipe(
        db,
        user_id=user.id,
        name=body.name,
        description=body.description,
        ingredients=body.ingredients,
        instructions=body.instructions,
    )


@router.get(
    "/{recipe_id}",
    response_model=RecipeResponse,
    responses={404: {"description": "Recipe not found", "model": ErrorResponse}},
    summary="Get a recipe",
)
async def get_recipe(
    recipe_id: int,
    db: AsyncSession = Depends(get_db_session),
) -> RecipeResponse:
    return await recipe_service.get_recipe(db, recipe_id)


@router.patch("/{recipe_id}", response_model=RecipeResponse, responses=OWNER_ERRORS)
async def update_recipe(
    recipe_id: int,
    body: RecipeUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> RecipeResponse:
    return await recipe_service.update_recipe(
        db, user.id, recipe_id, name=body.name, description=body.description
    )


@router.delete(
    "/{recipe_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=OWNER_ERRORS,
)
async def delete_recipe(
    recipe_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> None:
    await recipe_service.delete_recipe(db, user.id, recipe_id)


# ── Ingredients ───────────────────────────────────────────────────────────

@router.post(
    "/{recipe_id}/ingredient",
    response_model=RecipeResponse,
    status_code=status.HTTP_201_CREATED,
    responses=OWNER_ERRORS,
)
async def add_ingredient(
    recipe_id: int,
    body: IngredientCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> RecipeResponse:
    return await recipe_service.add_ingredient(
        db, user.id, recipe_id, name=body.name, quantity=body.quantity, unit=body.unit
    )


@router.patch(
    "/{recipe_id}/ingredient/{ingredient_id}",
    response_model=RecipeResponse,
    responses=OWNER_ERRORS,
)
async def update_ingredient(
    recipe_id: int,
    ingredient_id: int,
    body: IngredientUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> RecipeResponse:
    return await recipe_service.update_ingredient(
        db,
        user.id,
        recipe_id,
        ingredient_id,
        name=body.name,
        quantity=body.quantity,
        unit=body.unit,
    )


@router.delete(
    "/{recipe_id}/ingredient/{ingredient_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=OWNER_ERRORS,
)
async def delete_ingredient(
    recipe_id: int,
    ingredient_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> None:
    await recipe_service.delete_ingredient(db, user.id, recipe_id, ingredient_id)


# ── Instructions ──────────────────────────────────────────────────────────

@router.post(
    "/{recipe_id}/instruction",
    response_model=RecipeResponse,
    status_code=status.HTTP_201_CREATED,
    responses=OWNER_ERRORS,
)
async def add_instruction(
    recipe_id: int,
    body: InstructionCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> RecipeResponse:
    return await recipe_service.add_instruction(
        db, user.id, recipe_id, contents=body.contents, step=body.step
    )


@router.patch(
    "/{recipe_id}/instruction/{instruction_id}",
    response_model=RecipeResponse,
    responses=OWNER_ERRORS,
)
async def update_instruction(
    recipe_id: int,
    instruction_id: int,
    body: InstructionUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> RecipeResponse:
    return await recipe_service.update_instruction(
        db, user.id, recipe_id, instruction_id, contents=body.contents
    )


@router.patch(
    "/{recipe_id}/instruction/{first_id}/{second_id}",
    response_model=RecipeResponse,
    responses=OWNER_ERRORS,
    summary="Swap the positions of two instructions",
)
async def swap_instructions(
    recipe_id: int,
    first_id: int,
    second_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> RecipeResponse:
    return await recipe_service.swap_instructions(db, user.id, recipe_id, first_id, second_id)


@router.delete(
    "/{recipe_id}/instruction/{instruction_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=OWNER_ERRORS,
)
async def delete_instruction(
    recipe_id: int,
    instruction_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> None:
    await recipe_service.delete_instruction(db, user.id, recipe_id, instruction_id)


# ── Tags ──────────────────────────────────────────────────────────────────

@router.patch(
    "/{recipe_id}/tag/{tag_id}",
    response_model=RecipeResponse,
    responses=OWNER_ERRORS,
    summary="Attach an existing tag to a recipe",
)
async def add_tag(
    recipe_id: int,
    tag_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> RecipeResponse:
    return await recipe_service.add_tag(db, user.id, recipe_id, tag_id)


@router.delete(
    "/{recipe_id}/tag/{tag_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=OWNER_ERRORS,
)
async def remove_tag(
    recipe_id: int,
    tag_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> None:
    await recipe_service.remove_tag(db, user.id, recipe_id, tag_id)
