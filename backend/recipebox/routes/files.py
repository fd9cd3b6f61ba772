"""
RecipeBox Backend — File Route Handlers
========================================

What:  Upload files and fetch their signed download links and contents.

    POST /api/file                                    multipart upload (logged in)
    GET  /api/file/{id}                               metadata + fresh link
    GET  /api/file/content/{name}?expires&signature   the bytes

Security:
    The content route is only reachable with a valid, unexpired signature;
    a bad or stale link is a 403.
"""

from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from fastapi.responses import FileResponse as FileDownload
from sqlalchemy.ext.asyncio import AsyncSession

from recipebox.database import get_db_session
from recipebox.exceptions import PermissionDeniedError
from recipebox.models.user import User
from recipebox.routes.dependencies import get_current_user
from recipebox.schemas.common import ErrorResponse
from recipebox.schemas.file import FileResponse
from recipebox.services.file_service import file_service

router = APIRouter(prefix="/api/file", tags=["Files"])


@router.post(
    "",
    response_model=FileResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        401: {"description": "Not logged in", "model": ErrorResponse},
        422: {"description": "Empty or oversized file", "model": ErrorResponse},
    },
    summary="Upload a file",
)
async def upload_file(
    file: UploadFile = File(..., description="File to store"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> FileResponse:
    content = await file.read()
    return await file_service.upload_file(db, user.id, file.filename, content)


@router.get(
    "/content/{name}",
    response_class=FileDownload,
    responses={
        403: {"description": "Invalid or expired link", "model": ErrorResponse},
        404: {"description": "File not found", "model": ErrorResponse},
    },
    summary="Download a file through a signed link",
)
async def download_file(
    name: str,
    expires: int = Query(...),
    signature: str = Query(...),
) -> FileDownload:
    if not file_service.verify_signature(name, expires, signature):
        raise PermissionDeniedError(message="This download link is invalid or has expired")
    path = file_service.open_path(name)
    return FileDownload(path=str(path), headers={"Cache-Control": "private, max-age=3600"})


@router.get(
    "/{file_id}",
    response_model=FileResponse,
    responses={404: {"description": "File not found", "model": ErrorResponse}},
    summary="Get a file's metadata and download link",
)
async def get_file(
    file_id: int,
    db: AsyncSession = Depends(get_db_session),
) -> FileResponse:
    return await file_service.get_file(db, file_id)
