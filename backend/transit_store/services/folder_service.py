"""
Transit Store Backend - Folder Service (Hierarchical Resources)
=================================================================

What:  Folder lifecycle plus the project sub-resource scoped to a folder.
How:   Plain SQLAlchemy Core statements through the StorageAdapter. Integrity
       rules are left to the database and read back from the typed
       constraint violations the adapter raises:

           UniqueViolation      on insert  → DuplicateNameError        (409)
           ForeignKeyViolation  on delete  → ReferentialIntegrityError (400)

       No existence pre-checks before inserts or deletes, so there is no
       window between a check and the statement it guards.
Who:   Called by the /folders and /folders/{name}/projects route handlers.

Folder state machine:
    nonexistent ──create──▶ created ──delete (no projects)──▶ deleted
                               │  ▲
                     project   │  │ last project deleted
                     created   ▼  │
                        referenced by projects ──delete──▶ ReferentialIntegrityError
                                                           (folder unchanged)
"""

import logging
import uuid
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.engine import Row
from sqlalchemy.exc import SQLAlchemyError

from transit_store.database import (
    ConstraintViolation,
    ForeignKeyViolation,
    StorageAdapter,
    UniqueViolation,
    utc_now_iso,
)
from transit_store.exceptions import (
    DuplicateNameError,
    NotFoundError,
    PersistenceError,
    ReferentialIntegrityError,
)
from transit_store.models.folder import folders_table, projects_table
from transit_store.schemas.folder import Folder, Project

logger = logging.getLogger(__name__)

_STORAGE_ERRORS = (SQLAlchemyError, ConstraintViolation)


def _folder_from_row(row: Row) -> Folder:
    return Folder(
        id=row.uuid,
        folder_name=row.folder_name,
        description=row.description,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _project_from_row(row: Row) -> Project:
    return Project(
        id=row.uuid,
        folder_id=row.folder_uuid,
        project_name=row.project_name,
        description=row.description,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _persistence_error(action: str, exc: Exception, **context) -> PersistenceError:
    logger.error("Database error while trying to %s: %s", action, str(exc))
    context["error_type"] = type(exc).__name__
    return PersistenceError(
        message=f"Could not {action}. Please try again.",
        context=context,
    )


class FolderService:
    """
    Owns every row in `folders` and `projects`.

    Ordering of list results is created_at, then name, so repeated calls
    against unchanged data return the same order.
    """

    def __init__(self, storage: StorageAdapter):
        self.storage = storage

    # ── Folders ───────────────────────────────────────────────────────────

    async def list_folders(self) -> List[Folder]:
        try:
            rows = await self.storage.query_all(
                select(folders_table).order_by(
                    folders_table.c.created_at, folders_table.c.folder_name
                )
            )
        except _STORAGE_ERRORS as e:
            raise _persistence_error("list folders", e) from e
        return [_folder_from_row(row) for row in rows]

    async def create_folder(self, name: str, description: Optional[str] = None) -> Folder:
        """
        Insert a new folder with a fresh UUID and `created_at == updated_at`.

        Raises:
            DuplicateNameError: a folder with this name already exists.
            PersistenceError: any other storage failure.
        """
        now = utc_now_iso()
        try:
            row = await self.storage.insert_returning(
                folders_table,
                {
                    "uuid": str(uuid.uuid4()),
                    "folder_name": name,
                    "description": description if description is not None else "",
                    "created_at": now,
                    "updated_at": now,
                },
            )
        except UniqueViolation as e:
            logger.info("Rejected duplicate folder name '%s'", name)
            raise DuplicateNameError(resource="folder", name=name) from e
        except _STORAGE_ERRORS as e:
            raise _persistence_error("create the folder", e, folder_name=name) from e

        logger.info("Created folder '%s' (%s)", row.folder_name, row.uuid)
        return _folder_from_row(row)

    async def get_folder_by_name(self, name: str) -> Folder:
        try:
            row = await self.storage.query_one(
                select(folders_table).where(folders_table.c.folder_name == name)
            )
        except _STORAGE_ERRORS as e:
            raise _persistence_error("retrieve the folder", e, folder_name=name) from e

        if row is None:
            raise NotFoundError(resource="folder", resource_id=name)
        return _folder_from_row(row)

    async def delete_folder_by_name(self, name: str) -> None:
        """
        Delete a folder. Restrict, never cascade.

        Deleting a name that does not exist is a no-op.

        Raises:
            ReferentialIntegrityError: projects still reference the folder;
                the folder is left as it was.
            PersistenceError: any other storage failure.
        """
        try:
            deleted = await self.storage.execute(
                delete(folders_table).where(folders_table.c.folder_name == name)
            )
        except ForeignKeyViolation as e:
            logger.info("Refused to delete folder '%s': projects still reference it", name)
            raise ReferentialIntegrityError(context={"folder_name": name}) from e
        except _STORAGE_ERRORS as e:
            raise _persistence_error("delete the folder", e, folder_name=name) from e

        logger.info("Deleted folder '%s' (%d row(s))", name, deleted)

    # ── Projects (scoped to a resolved folder) ────────────────────────────
    #
    # Callers pass the Folder they already looked up (the routes get it from
    # require_folder), so no method here re-reads the parent row.

    async def list_projects(self, folder: Folder) -> List[Project]:
        try:
            rows = await self.storage.query_all(
                select(projects_table)
                .where(projects_table.c.folder_uuid == folder.id)
                .order_by(projects_table.c.created_at, projects_table.c.project_name)
            )
        except _STORAGE_ERRORS as e:
            raise _persistence_error("list projects", e, folder_name=folder.folder_name) from e
        return [_project_from_row(row) for row in rows]

    async def create_project(
        self,
        folder: Folder,
        name: str,
        description: Optional[str] = None,
    ) -> Project:
        """
        Insert a project under `folder`.

        Raises:
            NotFoundError: the folder was deleted after it was resolved.
            DuplicateNameError: the folder already has a project with this name.
            PersistenceError: any other storage failure.
        """
        now = utc_now_iso()
        try:
            row = await self.storage.insert_returning(
                projects_table,
                {
                    "uuid": str(uuid.uuid4()),
                    "folder_uuid": folder.id,
                    "project_name": name,
                    "description": description if description is not None else "",
                    "created_at": now,
                    "updated_at": now,
                },
            )
        except UniqueViolation as e:
            raise DuplicateNameError(resource="project", name=name) from e
        except ForeignKeyViolation as e:
            raise NotFoundError(resource="folder", resource_id=folder.folder_name) from e
        except _STORAGE_ERRORS as e:
            raise _persistence_error(
                "create the project", e, folder_name=folder.folder_name, project_name=name
            ) from e

        logger.info("Created project '%s' in folder '%s'", name, folder.folder_name)
        return _project_from_row(row)

    async def get_project(self, folder: Folder, project_name: str) -> Project:
        try:
            row = await self.storage.query_one(
                select(projects_table).where(
                    projects_table.c.folder_uuid == folder.id,
                    projects_table.c.project_name == project_name,
                )
            )
        except _STORAGE_ERRORS as e:
            raise _persistence_error(
                "retrieve the project", e, folder_name=folder.folder_name, project_name=project_name
            ) from e

        if row is None:
            raise NotFoundError(resource="project", resource_id=project_name)
        return _project_from_row(row)

    async def delete_project(self, folder: Folder, project_name: str) -> None:
        """Delete one project. A missing project is a no-op."""
        try:
            deleted = await self.storage.execute(
                delete(projects_table).where(
                    projects_table.c.folder_uuid == folder.id,
                    projects_table.c.project_name == project_name,
                )
            )
        except _STORAGE_ERRORS as e:
            raise _persistence_error(
                "delete the project", e, folder_name=folder.folder_name, project_name=project_name
            ) from e

        logger.info(
            "Deleted project '%s' from folder '%s' (%d row(s))",
            project_name,
            folder.folder_name,
            deleted,
        )
