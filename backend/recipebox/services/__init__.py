# Services package init
"""
RecipeBox Backend — Services Layer
===================================

What:  Business logic between routes (HTTP) and the database.
How:   Services are stateless singletons. Each public operation takes the
       caller's AsyncSession and runs as one unit of work
       (services/unit_of_work.py): one transaction, one deadline, rollback
       on any failure.

Service Inventory:
    - RecipeService:  recipe, ingredient, instruction and tag-link mutations
    - TagService:     tag create/list/delete
    - AuthService:    registration and credential checks (bcrypt)
    - SessionService: session tokens, expiry, logout; SessionPruner sweeps
    - UserService:    profiles and paginated recipe/file lists
    - FileService:    upload storage and signed download links
"""
