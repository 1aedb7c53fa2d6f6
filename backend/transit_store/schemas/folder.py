"""
Transit Store Backend - Folder and Project Schemas
====================================================

What:  Request/response models for /folders and /folders/{name}/projects.
How:   Row columns are renamed for the API: `uuid` is exposed as `id`,
       a project's `folder_uuid` as `folder_id`.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

# Names are used as path segments.
NAME_PATTERN = r"^[^/]+$"


class Folder(BaseModel):
    id: str = Field(description="Folder UUID, generated at creation")
    folder_name: str = Field(description="Unique folder name")
    description: str = Field(default="", description="Free-form description")
    created_at: str
    updated_at: str


class FolderCreateRequest(BaseModel):
    folder_name: str = Field(min_length=1, max_length=255, pattern=NAME_PATTERN)
    description: Optional[str] = Field(
        default=None,
        description="Optional description; stored as an empty string when omitted",
    )


class FolderResponse(BaseModel):
    folder: Folder


class FolderListResponse(BaseModel):
    folders: List[Folder]


class Project(BaseModel):
    id: str = Field(description="Project UUID, generated at creation")
    folder_id: str = Field(description="UUID of the owning folder")
    project_name: str = Field(description="Project name, unique within its folder")
    description: str = ""
    created_at: str
    updated_at: str


class ProjectCreateRequest(BaseModel):
    project_name: str = Field(min_length=1, max_length=255, pattern=NAME_PATTERN)
    description: Optional[str] = None


class ProjectResponse(BaseModel):
    project: Project


class ProjectListResponse(BaseModel):
    projects: List[Project]
