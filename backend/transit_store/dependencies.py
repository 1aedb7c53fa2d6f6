"""
Transit Store Backend - Shared Dependencies
=============================================

What:  FastAPI dependency providers for the storage handle, the transit client,
       the two services and the authentication gate.
How:   The lifespan stores one StorageAdapter and one TransitClient on
       `app.state`. Handlers receive them (or services built on them) through
       Depends(); nothing reads a module-level connection.
"""

import secrets
from typing import Annotated, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from transit_store.config import Settings, settings
from transit_store.database import StorageAdapter
from transit_store.exceptions import AuthenticationRequiredError, ConnectionNotReadyError
from transit_store.schemas.folder import Folder
from transit_store.services.folder_service import FolderService
from transit_store.services.record_service import RecordService
from transit_store.services.transit_base import TransitClient


def get_settings() -> Settings:
    """Application settings. Overridden in tests through app.dependency_overrides."""
    return settings


def get_storage(request: Request) -> StorageAdapter:
    """The process-wide storage handle created in the lifespan."""
    storage: Optional[StorageAdapter] = getattr(request.app.state, "storage", None)
    if storage is None or not storage.is_ready:
        raise ConnectionNotReadyError()
    return storage


def get_transit_client(request: Request) -> TransitClient:
    return request.app.state.transit


StorageDep = Annotated[StorageAdapter, Depends(get_storage)]
TransitDep = Annotated[TransitClient, Depends(get_transit_client)]


def get_record_service(storage: StorageDep, transit: TransitDep) -> RecordService:
    return RecordService(storage=storage, transit=transit)


def get_folder_service(storage: StorageDep) -> FolderService:
    return FolderService(storage=storage)


RecordServiceDep = Annotated[RecordService, Depends(get_record_service)]
FolderServiceDep = Annotated[FolderService, Depends(get_folder_service)]


_bearer = HTTPBearer(auto_error=False)


async def require_authentication(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(_bearer)],
    app_settings: Annotated[Settings, Depends(get_settings)],
) -> None:
    """
    Gate for the folder routes.

    Open when API_TOKEN is unset; otherwise requires
    `Authorization: Bearer <API_TOKEN>`.
    """
    if app_settings.api_token is None:
        return
    expected = app_settings.api_token.get_secret_value()
    if credentials is None or not secrets.compare_digest(
        credentials.credentials.encode("utf-8"), expected.encode("utf-8")
    ):
        raise AuthenticationRequiredError()


async def require_folder(folder_name: str, folders: FolderServiceDep) -> Folder:
    """Resolves the `{folder_name}` path segment; NotFoundError if it does not exist."""
    return await folders.get_folder_by_name(folder_name)


FolderDep = Annotated[Folder, Depends(require_folder)]
