"""
Transit Store Backend - Project Route Handlers
================================================

What:  Project sub-resource under /folders/{folder_name}/projects.
How:   The router-level require_folder dependency resolves the folder path
       segment first, so none of these handlers runs for a missing folder
       (404 instead). FastAPI caches the dependency per request, and the
       handlers pass that same Folder to FolderService, so the folder row is
       read once.
"""

from fastapi import APIRouter, Depends, Response

from transit_store.dependencies import FolderDep, FolderServiceDep, require_folder
from transit_store.schemas.common import ErrorResponse
from transit_store.schemas.folder import (
    ProjectCreateRequest,
    ProjectListResponse,
    ProjectResponse,
)

router = APIRouter(
    prefix="/{folder_name}/projects",
    tags=["Projects"],
    dependencies=[Depends(require_folder)],
    responses={404: {"description": "Folder or project not found", "model": ErrorResponse}},
)


@router.get("", response_model=ProjectListResponse, summary="List a folder's projects")
async def list_projects(folder: FolderDep, folders: FolderServiceDep) -> ProjectListResponse:
    return ProjectListResponse(projects=await folders.list_projects(folder))


@router.post(
    "",
    status_code=201,
    response_model=ProjectResponse,
    responses={409: {"description": "Project name already taken in this folder", "model": ErrorResponse}},
    summary="Create a project in a folder",
)
async def create_project(
    body: ProjectCreateRequest,
    folder: FolderDep,
    folders: FolderServiceDep,
) -> ProjectResponse:
    project = await folders.create_project(folder, body.project_name, body.description)
    return ProjectResponse(project=project)


@router.get("/{project_name}", response_model=ProjectResponse, summary="Get a project")
async def get_project(project_name: str, folder: FolderDep, folders: FolderServiceDep) -> ProjectResponse:
    return ProjectResponse(project=await folders.get_project(folder, project_name))


@router.delete(
    "/{project_name}",
    status_code=204,
    response_class=Response,
    summary="Delete a project",
)
async def delete_project(project_name: str, folder: FolderDep, folders: FolderServiceDep) -> Response:
    await folders.delete_project(folder, project_name)
    return Response(status_code=204)
