"""
Transit Store Backend - Encrypted Data Route Handlers
=======================================================

What:  POST /data (encrypt and store) and GET /data/{id} (load and decrypt).
How:   Thin handlers: validate the body, delegate to RecordService, wrap the
       result in the `{"data": ...}` envelope. Failures are raised as
       application exceptions and formatted by the global handlers.

Status codes:
    POST /data       201 created, 500 encryption or persistence failure
    GET  /data/{id}  200 decrypted, 404 unknown id, 500 decryption failure
"""

from fastapi import APIRouter, Path

from transit_store.dependencies import RecordServiceDep
from transit_store.schemas.common import ErrorResponse
from transit_store.schemas.record import (
    DecryptedRecordResponse,
    EncryptedRecordResponse,
    RecordCreateRequest,
)

router = APIRouter(prefix="/data", tags=["Data"])


@router.post(
    "",
    status_code=201,
    response_model=EncryptedRecordResponse,
    responses={
        500: {"description": "Encryption or storage failed", "model": ErrorResponse},
        503: {"description": "Storage not initialized", "model": ErrorResponse},
    },
    summary="Encrypt a value and store the ciphertext",
)
async def create_record(
    body: RecordCreateRequest,
    records: RecordServiceDep,
) -> EncryptedRecordResponse:
    """
    Encrypt `data` with the transit key `key` and persist the ciphertext.

    The response echoes the stored row: `data` holds the ciphertext, never
    the submitted value.
    """
    record = await records.create(body.data, body.key)
    return EncryptedRecordResponse(data=record)


@router.get(
    "/{record_id}",
    response_model=DecryptedRecordResponse,
    responses={
        404: {"description": "No record with this id", "model": ErrorResponse},
        500: {"description": "Decryption failed", "model": ErrorResponse},
    },
    summary="Load a record and return its decrypted value",
)
async def get_record(
    records: RecordServiceDep,
    record_id: int = Path(description="Record identifier"),
) -> DecryptedRecordResponse:
    record = await records.get(record_id)
    return DecryptedRecordResponse(data=record)
