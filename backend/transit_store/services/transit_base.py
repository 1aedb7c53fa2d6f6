"""
Transit Store Backend - Abstract Transit Client Interface
===========================================================

What:  Contract for the remote encryption oracle, plus the plaintext codec.
How:   Concrete clients inherit from TransitClient. VaultTransitClient talks to
       Vault's transit engine over HTTP; tests substitute an in-memory fake.
Who:   Called by RecordService on every write (encrypt) and read (decrypt).

Plaintext codec:
    encrypt:  value → json.dumps → UTF-8 → base64  → oracle
    decrypt:  oracle → base64 → UTF-8 → json.loads → value

    Any JSON value survives the trip: strings, numbers, objects, lists, null.
"""

import base64
import binascii
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from transit_store.exceptions import DecryptionUnavailableError


@dataclass(frozen=True)
class EncryptionResult:
    """Ciphertext as issued by the oracle and the key version that produced it."""
    ciphertext: str
    key_version: int


def encode_plaintext(value: Any) -> str:
    """Serialize a JSON value and base64-encode it for the oracle."""
    serialized = json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    return base64.b64encode(serialized.encode("utf-8")).decode("ascii")


def decode_plaintext(payload: str, key_name: str) -> Any:
    """
    Reverse encode_plaintext.

    Raises:
        DecryptionUnavailableError: payload is not base64, not UTF-8, or not JSON.
            The offending payload is never included in the error.
    """
    try:
        raw = base64.b64decode(payload, validate=True)
        return json.loads(raw.decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, ValueError, TypeError) as exc:
        raise DecryptionUnavailableError(
            message="Decryption service returned an unreadable payload",
            key_name=key_name,
            context={"error_type": type(exc).__name__},
        ) from exc


class TransitClient(ABC):
    """
    Abstract interface for a transit encryption oracle.

    Contract:
        - encrypt() and decrypt() make exactly one remote call each, no retries
        - every failure is raised as EncryptionUnavailableError or
          DecryptionUnavailableError (or their *KeyNotFoundError subclasses)
        - plaintext, decrypted values and credentials are never logged
    """

    @abstractmethod
    async def encrypt(self, plaintext: Any, key_name: str) -> EncryptionResult:
        """
        Encrypt a JSON value under the named key.

        Raises:
            EncryptionKeyNotFoundError: the oracle does not know `key_name`.
            EncryptionUnavailableError: any other failure.
        """
        ...

    @abstractmethod
    async def decrypt(self, ciphertext: str, key_name: str) -> Any:
        """
        Decrypt ciphertext under the named key and return the original value.

        Raises:
            DecryptionKeyNotFoundError: the oracle does not know `key_name`.
            DecryptionUnavailableError: any other failure, including a payload
                that does not decode back to JSON.
        """
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """Lightweight reachability probe. Never raises."""
        ...

    async def aclose(self) -> None:
        """Release network resources. No-op by default."""
        return None
