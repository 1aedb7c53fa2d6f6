"""
Transit Store Backend - Encrypted Record Model
================================================

What:  ORM mapping for the `data` table holding transit-encrypted values.
Who:   Written and read only by RecordService.

Column notes:
    data:      ciphertext exactly as returned by the transit oracle
               (e.g. "vault:v1:..."). Plaintext never reaches this table.
    keyname:   the oracle key that produced the ciphertext, stored verbatim;
               the same name is used to decrypt.
    timestamps: ISO-8601 strings in the `toISOString()` shape.

Lifecycle:
    Inserted once by an encrypt-then-insert call. Never updated or deleted
    by the application.
"""

from typing import Optional

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from transit_store.database import Base


class EncryptedRecordRow(Base):
    """A single encrypted value and the key name needed to decrypt it."""

    __tablename__ = "data"
    # AUTOINCREMENT keeps ids monotonic on SQLite (no reuse after deletes).
    __table_args__ = {"sqlite_autoincrement": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    data: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)

    keyname: Mapped[str] = mapped_column(String(10), nullable=False)

    created_at: Mapped[str] = mapped_column(String(25), nullable=False)
    updated_at: Mapped[Optional[str]] = mapped_column(String(25), nullable=True)

    def __repr__(self) -> str:
        return f"<EncryptedRecordRow(id={self.id}, keyname='{self.keyname}')>"


records_table = EncryptedRecordRow.__table__
