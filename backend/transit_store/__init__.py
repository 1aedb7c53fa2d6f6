"""
Transit Store Backend - Application Package
=============================================

What:  HTTP service that stores values encrypted by a remote transit
       encryption service, plus a folder/project hierarchy with
       database-enforced integrity rules.
Who:   Imported by uvicorn (transit_store.main:app), pytest and the
       `transit-store` console script.

Architecture Note:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │  Services (RecordService,           │  ← encrypt-then-store,
    │            FolderService)           │    integrity translation
    ├──────────────────┬──────────────────┤
    │  StorageAdapter  │  TransitClient   │  ← async SQLAlchemy / Vault HTTP
    └──────────────────┴──────────────────┘

    The storage handle and the transit client are created once in the
    application lifespan and injected into the services per request.
"""

__version__ = "1.0.0"
