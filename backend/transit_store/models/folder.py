"""
Transit Store Backend - Folder and Project Models
===================================================

What:  ORM mappings for the `folders` and `projects` tables.
Who:   Owned exclusively by FolderService.

Relationship:
    folders.uuid  1 ──── * projects.folder_uuid   (ON DELETE RESTRICT)

Integrity rules enforced by the database, not by application pre-checks:
    - folder_name is unique across all folders
    - project_name is unique within one folder
    - a folder cannot be deleted while any project references it
"""

from sqlalchemy import ForeignKey, String, Text, UniqueConstraint, text
from sqlalchemy.orm import Mapped, mapped_column

from transit_store.database import Base


class FolderRow(Base):
    """Top-level container; owns zero or more projects."""

    __tablename__ = "folders"

    uuid: Mapped[str] = mapped_column(String(36), primary_key=True)

    folder_name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)

    description: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
        server_default=text("''"),
    )

    created_at: Mapped[str] = mapped_column(String(25), nullable=False)
    updated_at: Mapped[str] = mapped_column(String(25), nullable=False)

    def __repr__(self) -> str:
        return f"<FolderRow(uuid={self.uuid}, folder_name='{self.folder_name}')>"


class ProjectRow(Base):
    """Child of exactly one folder; named within that folder's namespace."""

    __tablename__ = "projects"
    __table_args__ = (
        UniqueConstraint("folder_uuid", "project_name", name="uq_projects_folder_name"),
    )

    uuid: Mapped[str] = mapped_column(String(36), primary_key=True)

    folder_uuid: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("folders.uuid", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    project_name: Mapped[str] = mapped_column(String(255), nullable=False)

    description: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
        server_default=text("''"),
    )

    created_at: Mapped[str] = mapped_column(String(25), nullable=False)
    updated_at: Mapped[str] = mapped_column(String(25), nullable=False)

    def __repr__(self) -> str:
        return f"<ProjectRow(uuid={self.uuid}, project_name='{self.project_name}')>"


folders_table = FolderRow.__table__
projects_table = ProjectRow.__table__
