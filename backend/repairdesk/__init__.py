"""
RepairDesk Backend — Application Package Initializer
=====================================================

What: Repair-request intake service for a mobile-device repair shop.
Who:  Imported by uvicorn (`repairdesk.main:app`), Alembic and pytest.

Architecture Note:
    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │   Services (capture, validation,    │  ← Submission workflow
    │   upload, store, notify)            │
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │   Database / Object storage / Email │  ← External collaborators
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
