# Schemas package init
"""
RecipeBox Backend — API Schemas
================================

Pydantic models for request bodies and responses, grouped by resource.
They are kept separate from the SQLAlchemy models so the API never exposes
internal columns such as password hashes.
"""
