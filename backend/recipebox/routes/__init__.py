# Routes package init
"""
RecipeBox Backend — API Routes Package
=======================================

Route Inventory:
    - auth.py:     /api/auth/register, /login, /session, /logout
    - recipes.py:  /api/recipe and its ingredient/instruction/tag sub-routes
    - tags.py:     /api/tag
    - users.py:    /api/user/{username}, /recipes, /files
    - files.py:    /api/file upload, metadata and signed download
    - health.py:   /health

Design Principle:
    Routes are thin: extract request data, resolve the caller with
    get_current_user, call one service method, shape the response.
"""
