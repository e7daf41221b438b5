"""
Trame Backend — Application Package Initializer
================================================

What:  Marks the `trame` directory as a Python package.
Who:   Imported by uvicorn (`trame.main:app`), Alembic and pytest.

Architecture Note:
    The backend is layered:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← auth, note updates, reconciliation
    ├─────────────────────────────────────┤
    │   Block Scanner / Content Hasher    │  ← pure functions, no I/O
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    Every note update flows: text → scanner → hasher → reconciler → block store,
    inside a single database transaction.
"""

__version__ = "1.0.0"
