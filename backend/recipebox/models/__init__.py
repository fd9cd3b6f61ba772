# Models package init
"""
Importing this package registers every table with Base.metadata, which
Alembic autogenerate and the test suite's create_all rely on.
"""

from recipebox.models.file import StoredFile
from recipebox.models.recipe import Ingredient, Instruction, Recipe, Tag, recipe_tags
from recipebox.models.user import User, UserSession

__all__ = [
    "Ingredient",
    "Instruction",
    "Recipe",
    "StoredFile",
    "Tag",
    "User",
    "UserSession",
    "recipe_tags",
]
