"""
RecipeBox Backend — Recipe Request/Response Schemas
====================================================

What:  Pydantic models defining the API contract for recipes and their
       ingredients, instructions and tag links.
How:   Response models use from_attributes so services can validate ORM
       objects directly; request models only check shape. Business rules
       (blank names, "at least one field") live in RecipeService so they
       raise the application's ValidationError.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class IngredientResponse(BaseModel):
    id: int
    name: str
    quantity: str
    unit: str

    model_config = {"from_attributes": True}


class InstructionResponse(BaseModel):
    id: int
    step: int = Field(description="Display position; lower steps come first")
    contents: str

    model_config = {"from_attributes": True}


class RecipeTagResponse(BaseModel):
    """Tag as embedded in a recipe (no back-reference to recipes)."""
    id: int
    tag: str

    model_config = {"from_attributes": True}


class RecipeResponse(BaseModel):
    """
    What:  Full representation of a recipe with all of its children.
    Who:   Returned by every recipe endpoint except deletes.

    Instructions are always in step order.
    """
    id: int
    created_at: datetime
    name: str
    description: str
    user_id: int
    ingredients: List[IngredientResponse] = Field(default_factory=list)
    instructions: List[InstructionResponse] = Field(default_factory=list)
    tags: List[RecipeTagResponse] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class RecipePage(BaseModel):
    """One page of a user's recipes, newest first."""
    items: List[RecipeResponse]
    total_count: int
    page: int
    limit: int
    has_more: bool


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class IngredientCreate(BaseModel):
    name: str
    quantity: str = ""
    unit: str = ""


class IngredientUpdate(BaseModel):
    """Omitted or empty fields are left unchanged."""
    name: Optional[str] = None
    quantity: Optional[str] = None
    unit: Optional[str] = None


class InstructionCreate(BaseModel):
    contents: str
    step: Optional[int] = Field(
        default=None,
        ge=1,
        description="Explicit position. Omit to append after the last step.",
    )


class InstructionUpdate(BaseModel):
    contents: str


class RecipeCreate(BaseModel):
    name: str
    description: str = ""
    ingredients: List[IngredientCreate] = Field(default_factory=list)
    instructions: List[InstructionCreate] = Field(default_factory=list)


class RecipeUpdate(BaseModel):
    """Omitted or empty fields are left unchanged."""
    name: Optional[str] = None
    description: Optional[str] = None
