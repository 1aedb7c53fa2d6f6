"""
Transit Store Backend - Folder Route Handlers
===============================================

What:  Folder API (list, create, get, delete) plus the nested
       project routes under /folders/{folder_name}/projects.
How:   Every route here, nested ones included, sits behind
       require_authentication.

Status codes:
    GET    /folders          200
    POST   /folders          201, 409 duplicate name
    GET    /folders/{name}   200, 404
    DELETE /folders/{name}   204, 400 projects still reference the folder
"""

from fastapi import APIRouter, Depends, Response

from transit_store.dependencies import FolderServiceDep, require_authentication
from transit_store.routes import projects
from transit_store.schemas.common import ErrorResponse
from transit_store.schemas.folder import (
    FolderCreateRequest,
    FolderListResponse,
    FolderResponse,
)

router = APIRouter(
    prefix="/folders",
    tags=["Folders"],
    dependencies=[Depends(require_authentication)],
    responses={401: {"description": "Authentication required", "model": ErrorResponse}},
)


@router.get("", response_model=FolderListResponse, summary="List all folders")
async def list_folders(folders: FolderServiceDep) -> FolderListResponse:
    return FolderListResponse(folders=await folders.list_folders())


@router.post(
    "",
    status_code=201,
    response_model=FolderResponse,
    responses={409: {"description": "Folder name already taken", "model": ErrorResponse}},
    summary="Create a folder",
)
async def create_folder(body: FolderCreateRequest, folders: FolderServiceDep) -> FolderResponse:
    folder = await folders.create_folder(body.folder_name, body.description)
    return FolderResponse(folder=folder)


@router.get(
    "/{folder_name}",
    response_model=FolderResponse,
    responses={404: {"description": "Folder not found", "model": ErrorResponse}},
    summary="Get a folder by name",
)
async def get_folder(folder_name: str, folders: FolderServiceDep) -> FolderResponse:
    return FolderResponse(folder=await folders.get_folder_by_name(folder_name))


@router.delete(
    "/{folder_name}",
    status_code=204,
    response_class=Response,
    responses={
        400: {"description": "Projects still reference this folder", "model": ErrorResponse},
    },
    summary="Delete a folder that has no projects",
)
async def delete_folder(folder_name: str, folders: FolderServiceDep) -> Response:
    await folders.delete_folder_by_name(folder_name)
    return Response(status_code=204)


router.include_router(projects.router)
