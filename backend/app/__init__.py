"""
Posts API Backend: Application Package Initializer
===================================================

What: Marks the `app` directory as a Python package.
Who:  Used by uvicorn (app.main:app), the posts-api script and pytest.

Architecture Note:
    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns, auth pipeline order
    ├─────────────────────────────────────┤
    │   Services (Resources, Auth, OAuth) │  ← Validation, ownership, paging
    ├─────────────────────────────────────┤
    │      Models & Schemas (Data)        │  ← Datastore records + API contract
    ├─────────────────────────────────────┤
    │     EntityStore (Persistence)       │  ← Cloud Datastore keys/entities
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
