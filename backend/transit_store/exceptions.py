"""
Transit Store Backend - Custom Exception Hierarchy
====================================================

What:  Application-specific exceptions raised by the stores and the transit client.
How:   Each exception carries a client-safe message and an optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with the matching HTTP status.
Who:   Raised by services and the storage adapter; caught by global handlers.

Exception Hierarchy:
    TransitStoreError (base)
    ├── ConnectionNotReadyError           → 503 storage used before initialization
    ├── EncryptionUnavailableError        → 500 oracle refused or unreachable on encrypt
    │   └── EncryptionKeyNotFoundError    → 500 oracle has no key with that name
    ├── DecryptionUnavailableError        → 500 oracle refused or unreachable on decrypt
    │   └── DecryptionKeyNotFoundError    → 500 oracle has no key with that name
    ├── NotFoundError                     → 404
    ├── DuplicateNameError                → 409 unique constraint on a name
    ├── ReferentialIntegrityError         → 400 parent still referenced by children
    ├── PersistenceError                  → 500 any other storage failure
    └── AuthenticationRequiredError       → 401 gate rejected the request

Messages are returned to clients. Context (driver errors, key names, status
codes from the oracle) is logged server-side only.
"""

from typing import Any, Dict, Optional


class TransitStoreError(Exception):
    """
    Base exception for all Transit Store application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ConnectionNotReadyError(TransitStoreError):
    """Raised when the storage adapter is used before connect() completed."""

    def __init__(
        self,
        message: str = "The database connection has not been initialized",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class EncryptionUnavailableError(TransitStoreError):
    """
    Raised when the transit oracle could not encrypt a value.

    Covers non-success responses, transport failures, timeouts, malformed
    response bodies and missing oracle configuration. Never retried. When
    this is raised from RecordService.create, no row has been written.
    """

    def __init__(
        self,
        message: str = "Encryption service is unavailable",
        key_name: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if key_name:
            ctx["key_name"] = key_name
        super().__init__(message=message, context=ctx)
        self.key_name = key_name


class EncryptionKeyNotFoundError(EncryptionUnavailableError):
    """The oracle has no key registered under the requested name."""

    def __init__(self, key_name: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=f"Encryption key '{key_name}' does not exist",
            key_name=key_name,
            context=context,
        )


class DecryptionUnavailableError(TransitStoreError):
    """
    Raised when the transit oracle could not decrypt a value.

    Callers must not fall back to returning the stored ciphertext.
    """

    def __init__(
        self,
        message: str = "Decryption service is unavailable",
        key_name: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if key_name:
            ctx["key_name"] = key_name
        super().__init__(message=message, context=ctx)
        self.key_name = key_name


class DecryptionKeyNotFoundError(DecryptionUnavailableError):
    """The oracle has no key registered under the stored key name."""

    def __init__(self, key_name: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=f"Decryption key '{key_name}' does not exist",
            key_name=key_name,
            context=context,
        )


class NotFoundError(TransitStoreError):
    """
    Raised when a requested resource does not exist.

    The stores convert an empty lookup result into this exception so the
    route layer never has to check for None.
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)
        self.resource = resource
        self.resource_id = resource_id


class DuplicateNameError(TransitStoreError):
    """Raised when an insert hits a uniqueness constraint on a name column."""

    def __init__(
        self,
        resource: str,
        name: str,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx.update({"resource": resource, "name": name})
        super().__init__(message=f"{resource} name must be unique", context=ctx)
        self.resource = resource
        self.name = name


class ReferentialIntegrityError(TransitStoreError):
    """
    Raised when deleting a parent row that child rows still reference.

    Deletion is restrict, never cascade: the parent is left untouched.
    """

    def __init__(
        self,
        message: str = "cannot delete folder while child projects still exist",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class PersistenceError(TransitStoreError):
    """
    Raised when a storage operation fails for any reason not covered above.

    The message returned to the client is always generic; the driver error
    is kept in context for the server log.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class AuthenticationRequiredError(TransitStoreError):
    """Raised by the authentication gate when the bearer token is missing or wrong."""

    def __init__(
        self,
        message: str = "Authentication required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
