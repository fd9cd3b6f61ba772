"""
RecipeBox Backend — Recipe Graph Models
========================================

What:  ORM models for recipes and everything hanging off them: ingredients,
       ordered instructions, and the many-to-many link to tags.
Who:   Used by RecipeService and TagService; read by Alembic.

Table Design:
    recipes ──< ingredients
            ──< instructions        (ordered by step, then id)
            >─< tags via recipe_tags

    One recipe_tags row is the only record of a recipe/tag link, so
    Recipe.tags and Tag.recipes can never disagree once flushed.
    Deleting a recipe cascades to its ingredients and instructions and
    drops its recipe_tags rows; deleting a tag only drops recipe_tags rows.
"""

from datetime import datetime
from typing import TYPE_CHECKING, List

from sqlalchemy import Column, ForeignKey, Index, Integer, String, Table, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from recipebox.database import Base, UTCDateTime, utcnow

if TYPE_CHECKING:
    from recipebox.models.user import User


recipe_tags = Table(
    "recipe_tags",
    Base.metadata,
    Column("recipe_id", ForeignKey("recipes.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True),
)


class Ingredient(Base):
    """A named quantity of something used by one recipe."""

    __tablename__ = "ingredients"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    recipe_id: Mapped[int] = mapped_column(
        ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    # Free text: "1 1/2", "a pinch"
    quantity: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    unit: Mapped[str] = mapped_column(String(64), nullable=False, default="")

    recipe: Mapped["Recipe"] = relationship(back_populates="ingredients")

    def __repr__(self) -> str:
        return f"<Ingredient(id={self.id}, recipe_id={self.recipe_id}, name='{self.name}')>"


class Instruction(Base):
    """
    One step of a recipe's method.

    `step` carries the display order. Steps are not renumbered on delete
    and are exchanged, not shifted, by a swap.
    """

    __tablename__ = "instructions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    recipe_id: Mapped[int] = mapped_column(
        ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    step: Mapped[int] = mapped_column(Integer, nullable=False)
    contents: Mapped[str] = mapped_column(Text, nullable=False)

    recipe: Mapped["Recipe"] = relationship(back_populates="instructions")

    def __repr__(self) -> str:
        return f"<Instruction(id={self.id}, recipe_id={self.recipe_id}, step={self.step})>"


class Tag(Base):
    """A unique label that can be attached to any number of recipes."""

    __tablename__ = "tags"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tag: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)

    recipes: Mapped[List["Recipe"]] = relationship(
        secondary=recipe_tags,
        back_populates="tags",
        order_by="Recipe.id",
    )

    def __repr__(self) -> str:
        return f"<Tag(id={self.id}, tag='{self.tag}')>"


class Recipe(Base):
    """
    A user's recipe.

    Query Patterns:
        - Single recipe with children: selectinload on all three collections
        - A user's recipes, newest first: idx_recipes_user_created
    """

    __tablename__ = "recipes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    user: Mapped["User"] = relationship(back_populates="recipes")
    ingredients: Mapped[List[Ingredient]] = relationship(
        back_populates="recipe",
        cascade="all, delete-orphan",
        order_by=Ingredient.id,
    )
    instructions: Mapped[List[Instruction]] = relationship(
        back_populates="recipe",
        cascade="all, delete-orphan",
        order_by=[Instruction.step, Instruction.id],
    )
    tags: Mapped[List[Tag]] = relationship(
        secondary=recipe_tags,
        back_populates="recipes",
        order_by=Tag.tag,
    )

    __table_args__ = (
        Index("idx_recipes_user_created", "user_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Recipe(id={self.id}, user_id={self.user_id}, name='{self.name}')>"
