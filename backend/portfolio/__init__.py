"""
Photography Portfolio Backend — Application Package Initializer
================================================================

What: The `portfolio` package: REST backend for a photography portfolio site.
Who:  Imported by uvicorn (portfolio.main:app), Alembic and pytest.

Architecture Note:
    ┌─────────────────────────────────────┐
    │   Routes + Auth Gate (API Layer)    │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │      Services (Business Logic)      │  ← tokens, checkout, webhooks
    ├─────────────────────────────────────┤
    │      Models & Schemas (Data)        │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │       Database (Persistence)        │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
