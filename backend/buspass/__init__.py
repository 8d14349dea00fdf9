"""
Bus Pass Backend — Application Package Initializer
==================================================

What: Marks the `buspass` directory as a Python package.
Who:  Used implicitly by Python's import system and explicitly by Alembic, pytest, and uvicorn.

Architecture Note:
    The backend is layered the same way for every role (passenger, admin, conductor):

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns, identity, envelope
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← Workflow rules, transactions
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    Services never see a Request object; they receive an AsyncSession and plain
    arguments, so the whole workflow can be exercised without HTTP.
"""

__version__ = "1.0.0"
