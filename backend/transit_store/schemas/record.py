"""
Transit Store Backend - Encrypted Record Schemas
==================================================

What:  Pydantic models for the /data API and for RecordService results.
How:   Responses keep the `{"data": {...}}` envelope existing clients expect.

Two views of the same row:
    EncryptedRecord   what was persisted (ciphertext), returned by POST /data
    DecryptedRecord   transient plaintext view, returned by GET /data/{id}
"""

from typing import Any, Optional

from pydantic import BaseModel, Field

# Vault key names end up as a URL path segment. At least one character must
# not be a dot: "." and ".." would be collapsed away as dot segments.
KEY_NAME_PATTERN = r"^[A-Za-z0-9_.-]*[A-Za-z0-9_-][A-Za-z0-9_.-]*$"


class RecordCreateRequest(BaseModel):
    """
    Body of POST /data.

    `data` may be any JSON value; it is serialized, base64-encoded and
    encrypted by the oracle before anything is stored.
    """
    data: Any = Field(description="Value to encrypt (any JSON value)")
    key: str = Field(
        min_length=1,
        max_length=10,
        pattern=KEY_NAME_PATTERN,
        description="Name of the transit key to encrypt with",
    )


class EncryptedRecord(BaseModel):
    """A persisted row. `data` is ciphertext."""
    id: int = Field(description="Storage-assigned identifier")
    data: str = Field(description="Ciphertext produced by the transit oracle")
    key: str = Field(description="Transit key name used for encryption")
    key_version: Optional[int] = Field(
        default=None,
        description="Key version reported by the oracle at encryption time (not stored)",
    )
    created_at: str = Field(description="ISO-8601 creation timestamp")
    updated_at: Optional[str] = Field(default=None, description="ISO-8601 update timestamp")


class DecryptedRecord(BaseModel):
    """Plaintext view of a stored row. Never persisted."""
    id: int
    data: Any = Field(description="Decrypted value in its original JSON form")
    key: str
    created_at: str
    updated_at: Optional[str] = None


class EncryptedRecordResponse(BaseModel):
    data: EncryptedRecord


class DecryptedRecordResponse(BaseModel):
    data: DecryptedRecord
