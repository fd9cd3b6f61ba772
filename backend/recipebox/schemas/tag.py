"""
RecipeBox Backend — Tag Schemas
================================
"""

from typing import List

from pydantic import BaseModel, Field

from recipebox.schemas.recipe import RecipeResponse


class TagResponse(BaseModel):
    """A tag with every recipe currently carrying it."""
    id: int
    tag: str
    recipes: List[RecipeResponse] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class TagCreate(BaseModel):
    tag: str = Field(description="Tag label; surrounding whitespace is stripped")
