"""
RecipeBox Backend — Tag Route Handlers
=======================================

    GET    /api/tag        list tags with their recipes (public)
    POST   /api/tag        create a tag (logged in)
    DELETE /api/tag/{id}   delete a tag and unlink it (logged in)
"""

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from recipebox.database import get_db_session
from recipebox.models.user import User
from recipebox.routes.dependencies import get_current_user
from recipebox.schemas.common import ErrorResponse
from recipebox.schemas.tag import TagCreate, TagResponse
from recipebox.services.tag_service import tag_service

router = APIRouter(prefix="/api/tag", tags=["Tags"])


@router.get("", response_model=List[TagResponse], summary="List all tags")
async def list_tags(db: AsyncSession = Depends(get_db_session)) -> List[TagResponse]:
    return await tag_service.list_tags(db)


@router.post(
    "",
    response_model=TagResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        401: {"description": "Not logged in", "model": ErrorResponse},
        409: {"description": "Tag already exists", "model": ErrorResponse},
    },
    summary="Create a tag",
)
async def create_tag(
    body: TagCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> TagResponse:
    return await tag_service.create_tag(db, body.tag)


@router.delete(
    "/{tag_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={
        401: {"description": "Not logged in", "model": ErrorResponse},
        404: {"description": "Tag not found", "model": ErrorResponse},
    },
    summary="Delete a tag",
)
async def delete_tag(
    tag_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> None:
    await tag_service.delete_tag(db, tag_id)
