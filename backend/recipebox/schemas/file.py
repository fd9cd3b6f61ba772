"""
RecipeBox Backend — File Schemas
=================================
"""

from typing import List

from pydantic import BaseModel, Field


class FileResponse(BaseModel):
    """
    What:  An uploaded file and its current signed download link.
    Note:  `url` is relative to the API host and carries its own expiry.
    """
    id: int
    name: str
    url: str = Field(description="Signed download URL")

    model_config = {"from_attributes": True}


class FilePage(BaseModel):
    """One page of a user's files, newest first."""
    items: List[FileResponse]
    total_count: int
    page: int
    limit: int
    has_more: bool
