"""
RecipeBox Backend — User and Auth Schemas
==========================================

What:  Request bodies for register/login and the public views of a user.
Security:
    Responses never include the password hash. Login and register bodies
    are never logged.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class RegisterRequest(BaseModel):
    username: str
    password: str
    # The web client posts camelCase for this one field
    password_confirm: str = Field(alias="passwordConfirm")

    model_config = {"populate_by_name": True}


class LoginRequest(BaseModel):
    username: str
    password: str


class UserResponse(BaseModel):
    id: int
    username: str

    model_config = {"from_attributes": True}


class UserProfileResponse(BaseModel):
    """Public profile shown on a user's page."""
    id: int
    username: str
    created_at: datetime
    recipe_count: int


class SessionStatusResponse(BaseModel):
    status: str = "ok"
