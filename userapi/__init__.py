"""
Users API — Application Package Initializer
============================================

What: Marks the `userapi` directory as a Python package.
Why:  Enables module imports like `from userapi.config import settings`.
Who:  Used implicitly by Python's import system and explicitly by pytest and uvicorn.

Architecture Note:
    The service is a thin layered CRUD API over a MongoDB collection:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │     Validation (pure functions)     │  ← Missing / malformed fields
    ├─────────────────────────────────────┤
    │      Repository (data access)       │  ← One MongoDB call per operation
    ├─────────────────────────────────────┤
    │   Schemas + exception handlers      │  ← JSON bodies and status codes
    └─────────────────────────────────────┘

    The MongoDB client is created by the application lifespan and handed to
    the repository through FastAPI dependencies, so each layer can be tested
    with a fake collection.
"""

__version__ = "1.0.0"
