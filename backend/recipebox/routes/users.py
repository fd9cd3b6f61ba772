"""
RecipeBox Backend — User Route Handlers
========================================

What:  Public user profiles and paginated recipe/file lists.
How:   page/limit come from the query string; the total is also returned
       in X-Total-Count for pagination UIs.

    GET /api/user/{username}
    GET /api/user/{username}/recipes?page=1&limit=10
    GET /api/user/{username}/files?page=1&limit=10
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from recipebox.database import get_db_session
from recipebox.schemas.common import ErrorResponse
from recipebox.schemas.file import FilePage
from recipebox.schemas.recipe import RecipePage
from recipebox.schemas.user import UserProfileResponse
from recipebox.services.user_service import user_service

router = APIRouter(prefix="/api/user", tags=["Users"])

NOT_FOUND = {404: {"description": "User not found", "model": ErrorResponse}}


@router.get("/{username}", response_model=UserProfileResponse, responses=NOT_FOUND)
async def get_user(
    username: str,
    db: AsyncSession = Depends(get_db_session),
) -> UserProfileResponse:
    return await user_service.get_user(db, username)


@router.get("/{username}/recipes", response_model=RecipePage, responses=NOT_FOUND)
async def get_user_recipes(
    username: str,
    response: Response,
    page: int = Query(default=1, description="1-based page number; values below 1 mean 1"),
    limit: Optional[int] = Query(default=None, description="Items per page, capped server-side"),
    db: AsyncSession = Depends(get_db_session),
) -> RecipePage:
    result = await user_service.get_user_recipes(db, username, page=page, limit=limit)
    response.headers["X-Total-Count"] = str(result.total_count)
    return result


@router.get("/{username}/files", response_model=FilePage, responses=NOT_FOUND)
async def get_user_files(
    username: str,
    response: Response,
    page: int = Query(default=1),
    limit: Optional[int] = Query(default=None),
    db: AsyncSession = Depends(get_db_session),
) -> FilePage:
    result = await user_service.get_user_files(db, username, page=page, limit=limit)
    response.headers["X-Total-Count"] = str(result.total_count)
    return result
