"""
Transit Store Backend - Encrypted Record Service
==================================================

What:  Envelope-encryption data path: encrypt-then-insert on write,
       select-then-decrypt on read.
How:   Composes the StorageAdapter and a TransitClient, both passed in.
Who:   Called by the /data route handlers.

Write path (create):
    ┌────────────┐   ┌──────────────────┐   ┌──────────────────────┐
    │  plaintext │──▶│ transit.encrypt  │──▶│ INSERT ... RETURNING │──▶ EncryptedRecord
    └────────────┘   └──────────────────┘   └──────────────────────┘
                       fails → no row         fails → PersistenceError,
                                              ciphertext discarded

Read path (get):
    SELECT by id ──▶ NotFoundError if absent ──▶ transit.decrypt(stored data, stored keyname)

The stored key name is always the one used to decrypt; it is never supplied
by the reader.
"""

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from transit_store.database import ConstraintViolation, StorageAdapter, utc_now_iso
from transit_store.exceptions import NotFoundError, PersistenceError
from transit_store.models.record import records_table
from transit_store.schemas.record import DecryptedRecord, EncryptedRecord
from transit_store.services.transit_base import TransitClient

logger = logging.getLogger(__name__)


class RecordService:
    """
    Business logic for encrypted records.

    Errors from the transit client (EncryptionUnavailableError,
    DecryptionUnavailableError and their key-not-found subclasses) propagate
    unchanged. Storage errors are wrapped in PersistenceError.
    """

    def __init__(self, storage: StorageAdapter, transit: TransitClient):
        self.storage = storage
        self.transit = transit

    async def create(self, plaintext: Any, key_name: str) -> EncryptedRecord:
        """
        Encrypt `plaintext` under `key_name` and persist the ciphertext.

        Raises:
            EncryptionUnavailableError: the oracle did not encrypt; nothing stored.
            PersistenceError: the insert failed after a successful encrypt.
            ConnectionNotReadyError: storage not initialized.
        """
        encrypted = await self.transit.encrypt(plaintext, key_name)

        try:
            row = await self.storage.insert_returning(
                records_table,
                {
                    "data": encrypted.ciphertext,
                    "keyname": key_name,
                    "created_at": utc_now_iso(),
                },
            )
        except (SQLAlchemyError, ConstraintViolation) as e:
            # The ciphertext is dropped here; the caller may simply retry.
            logger.error(
                "Insert failed after successful encryption with key=%s: %s",
                key_name,
                type(e).__name__,
            )
            raise PersistenceError(
                message="Could not store the encrypted record. Please try again.",
                context={"error_type": type(e).__name__, "key_name": key_name},
            ) from e

        logger.info("Stored encrypted record %s (key=%s, v%d)", row.id, key_name, encrypted.key_version)
        return EncryptedRecord(
            id=row.id,
            data=row.data,
            key=row.keyname,
            key_version=encrypted.key_version,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    async def get(self, record_id: int) -> DecryptedRecord:
        """
        Load a record and return its decrypted view.

        Raises:
            NotFoundError: no row with this id.
            DecryptionUnavailableError: the oracle did not decrypt.
            PersistenceError: the lookup failed.
        """
        try:
            row = await self.storage.query_one(
                select(records_table).where(records_table.c.id == record_id)
            )
        except SQLAlchemyError as e:
            logger.error("Database error fetching record %s: %s", record_id, str(e))
            raise PersistenceError(
                message="Could not retrieve the record. Please try again.",
                context={"record_id": record_id, "error_type": type(e).__name__},
            ) from e

        if row is None:
            raise NotFoundError(resource="record", resource_id=str(record_id))

        plaintext = await self.transit.decrypt(row.data, row.keyname)

        return DecryptedRecord(
            id=row.id,
            data=plaintext,
            key=row.keyname,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )
