"""
DevCamper Backend — Application Package Initializer
===================================================

What: Marks the `devcamper` directory as a Python package.
Who:  Used implicitly by Python's import system and explicitly by Alembic, pytest, and uvicorn.

Architecture Note:
    The backend follows a layered architecture:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← Query building, geocoding, auth
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    Routes handle status codes, cookies and headers, then delegate to services.
    Services own the rules (filter translation, geocoding on save, cascading
    deletes) and can be exercised without HTTP.
"""

__version__ = "1.0.0"
