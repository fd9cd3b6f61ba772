"""
RecipeBox Backend — Auth Route Handlers
========================================

What:  Register, log in, check the current session, log out.
How:   Login issues a session and sets it as an httponly cookie; the
       browser sends it back on every later request.

    POST /api/auth/register   → 201 UserResponse
    POST /api/auth/login      → 200 UserResponse + Set-Cookie
    GET  /api/auth/session    → 200 {"status": "ok"} | 401
    POST /api/auth/logout     → 204, cookie cleared
"""

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from recipebox.config import settings
from recipebox.database import get_db_session
from recipebox.routes.dependencies import session_token
from recipebox.schemas.common import ErrorResponse
from recipebox.schemas.user import (
    LoginRequest,
    RegisterRequest,
    SessionStatusResponse,
    UserResponse,
)
from recipebox.services.auth_service import auth_service
from recipebox.services.session_service import session_service

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        409: {"description": "Username taken", "model": ErrorResponse},
        422: {"description": "Missing fields or passwords do not match", "model": ErrorResponse},
    },
    summary="Create an account",
)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    user = await auth_service.register(
        db,
        username=body.username,
        password=body.password,
        password_confirm=body.password_confirm,
    )
    return UserResponse.model_validate(user)


@router.post(
    "/login",
    response_model=UserResponse,
    responses={401: {"description": "Invalid credentials", "model": ErrorResponse}},
    summary="Log in and receive a session cookie",
)
async def login(
    body: LoginRequest,
    response: Response,
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    user = await auth_service.authenticate(db, body.username, body.password)
    session = await session_service.create_session(db, user.id)

    response.set_cookie(
        key=settings.session_cookie_name,
        value=session.token,
        max_age=settings.session_ttl_hours * 3600,
        httponly=True,
        samesite="lax",
        secure=settings.session_cookie_secure,
        path="/",
    )
    return UserResponse.model_validate(user)


@router.get(
    "/session",
    response_model=SessionStatusResponse,
    responses={401: {"description": "Missing, unknown or expired session", "model": ErrorResponse}},
    summary="Check whether the session cookie is still valid",
)
async def check_session(
    token: str = Depends(session_token),
    db: AsyncSession = Depends(get_db_session),
) -> SessionStatusResponse:
    await session_service.check_session(db, token)
    return SessionStatusResponse()


@router.post(
    "/logout",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="End the current session",
)
async def logout(
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db_session),
) -> None:
    token = request.cookies.get(settings.session_cookie_name)
    if token:
        await session_service.delete_session(db, token)
    response.delete_cookie(key=settings.session_cookie_name, path="/")
