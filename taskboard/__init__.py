"""
TaskBoard — Application Package
================================

What: Task management API with user accounts, signed session tokens and
      owner-scoped task lifecycle.

Layering:
    ┌─────────────────────────────────────┐
    │    Routes (HTTP) + Validation       │  ← raw input → typed structs
    ├─────────────────────────────────────┤
    │    Services (ownership, sessions)   │  ← business rules
    ├─────────────────────────────────────┤
    │    Models & Schemas (Data)          │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │    Database (Persistence)           │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
