"""
RecipeBox Backend — Route Dependencies
=======================================

What:  FastAPI dependencies shared across routers.
How:   get_current_user reads the session cookie and resolves it to a User
       via SessionService; any failure becomes a 401 through the global
       AuthenticationError handler.
"""

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from recipebox.config import settings
from recipebox.database import get_db_session
from recipebox.exceptions import AuthenticationError
from recipebox.models.user import User
from recipebox.services.session_service import session_service


def session_token(request: Request) -> str:
    token = request.cookies.get(settings.session_cookie_name)
    if not token:
        raise AuthenticationError(message="Authentication required")
    return token


async def get_current_user(
    token: str = Depends(session_token),
    db: AsyncSession = Depends(get_db_session),
) -> User:
    """
    Usage:
        @router.post("/recipe")
        async def create(user: User = Depends(get_current_user)): ...
    """
    return await session_service.get_user_for_session(db, token)
