"""
Transit Store Backend - Vault Transit Client
==============================================

What:  TransitClient implementation for HashiCorp Vault's transit secrets engine.
How:   One shared httpx.AsyncClient, created in the application lifespan and
       closed at shutdown. Each encrypt/decrypt is a single POST, no retries.
Who:   Created by the lifespan from settings; used through RecordService.

Wire format:
    POST {VAULT_ADDR}/v1/transit/encrypt/{key}   {"plaintext": <base64>}
        → {"data": {"ciphertext": "vault:v1:...", "key_version": 1}}
    POST {VAULT_ADDR}/v1/transit/decrypt/{key}   {"ciphertext": "vault:v1:..."}
        → {"data": {"plaintext": <base64>}}
    GET  {VAULT_ADDR}/v1/sys/health              (health_check only)

    All transit requests carry the `X-Vault-Token` header.

Failure translation:
    transport error / timeout         → *UnavailableError
    404, or an error naming a missing key → *KeyNotFoundError
    any other non-2xx                 → *UnavailableError
    2xx with an unexpected body       → *UnavailableError

Logged per call: operation, key name, status code, duration. Never logged:
the token, the plaintext, the decrypted payload, the ciphertext.
"""

import logging
import time
from typing import Any, Dict, Optional, Type
from urllib.parse import quote

import httpx

from transit_store.config import Settings
from transit_store.exceptions import (
    DecryptionKeyNotFoundError,
    DecryptionUnavailableError,
    EncryptionKeyNotFoundError,
    EncryptionUnavailableError,
)
from transit_store.services.transit_base import (
    EncryptionResult,
    TransitClient,
    decode_plaintext,
    encode_plaintext,
)

logger = logging.getLogger(__name__)

# Substrings Vault uses when the named transit key does not exist.
_KEY_NOT_FOUND_MARKERS = ("key not found", "no existing key")

# /v1/sys/health: active, standby, DR secondary, performance standby.
_HEALTHY_STATUS_CODES = {200, 429, 472, 473}


class VaultTransitClient(TransitClient):
    """
    Vault transit engine client.

    Args:
        base_url:     VAULT_ADDR. None leaves the client unconfigured; every
                      call then fails with the matching *UnavailableError.
        token:        VAULT_TOKEN.
        timeout:      Per-request timeout in seconds.
        http_client:  Injected httpx.AsyncClient (tests pass one backed by
                      httpx.MockTransport). Not closed by aclose().
    """

    def __init__(
        self,
        base_url: Optional[str],
        token: Optional[str],
        timeout: float = 10.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/") if base_url else None
        self._token = token
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

        logger.info(
            "VaultTransitClient initialized (addr=%s, timeout=%.1fs)",
            self.base_url or "<unset>",
            timeout,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "VaultTransitClient":
        token = settings.vault_token.get_secret_value() if settings.vault_token else None
        return cls(
            base_url=settings.vault_addr,
            token=token,
            timeout=settings.transit_timeout_seconds,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.base_url and self._token)

    async def encrypt(self, plaintext: Any, key_name: str) -> EncryptionResult:
        data = await self._transit_call(
            operation="encrypt",
            key_name=key_name,
            payload={"plaintext": encode_plaintext(plaintext)},
            unavailable=EncryptionUnavailableError,
            key_not_found=EncryptionKeyNotFoundError,
        )
        ciphertext = data.get("ciphertext")
        key_version = data.get("key_version")
        if not isinstance(ciphertext, str) or not isinstance(key_version, int):
            raise EncryptionUnavailableError(
                message="Encryption service returned a malformed response",
                key_name=key_name,
            )
        return EncryptionResult(ciphertext=ciphertext, key_version=key_version)

    async def decrypt(self, ciphertext: str, key_name: str) -> Any:
        data = await self._transit_call(
            operation="decrypt",
            key_name=key_name,
            payload={"ciphertext": ciphertext},
            unavailable=DecryptionUnavailableError,
            key_not_found=DecryptionKeyNotFoundError,
        )
        payload = data.get("plaintext")
        if not isinstance(payload, str):
            raise DecryptionUnavailableError(
                message="Decryption service returned a malformed response",
                key_name=key_name,
            )
        return decode_plaintext(payload, key_name)

    async def _transit_call(
        self,
        operation: str,
        key_name: str,
        payload: Dict[str, Any],
        unavailable: Type[Exception],
        key_not_found: Type[Exception],
    ) -> Dict[str, Any]:
        """
        POST one transit request and return its `data` object.

        Raises `unavailable` or `key_not_found` (always subclasses of the
        matching *UnavailableError).
        """
        if not self.is_configured:
            raise unavailable(
                message="Transit encryption service is not configured",
                key_name=key_name,
            )

        if not key_name.strip("."):
            # No such key can exist, and the name would vanish from the URL.
            raise key_not_found(key_name, context={"reason": "dot-only key name"})

        url = f"{self.base_url}/v1/transit/{operation}/{quote(key_name, safe='')}"
        start_time = time.perf_counter()

        try:
            response = await self._client.post(
                url,
                json=payload,
                headers={"X-Vault-Token": self._token},
            )
        except httpx.TimeoutException as exc:
            logger.warning(
                "Transit %s timed out for key=%s after %.0fms",
                operation,
                key_name,
                (time.perf_counter() - start_time) * 1000,
            )
            raise unavailable(
                message=f"Transit {operation} timed out",
                key_name=key_name,
                context={"error_type": type(exc).__name__},
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning(
                "Transit %s transport failure for key=%s: %s",
                operation,
                key_name,
                type(exc).__name__,
            )
            raise unavailable(
                message=f"Transit {operation} could not reach the encryption service",
                key_name=key_name,
                context={"error_type": type(exc).__name__},
            ) from exc

        duration_ms = (time.perf_counter() - start_time) * 1000

        if not response.is_success:
            errors = self._error_messages(response)
            logger.warning(
                "Transit %s rejected for key=%s: status=%d errors=%s (%.0fms)",
                operation,
                key_name,
                response.status_code,
                errors,
                duration_ms,
            )
            context = {"status_code": response.status_code, "errors": errors}
            if response.status_code == 404 or self._mentions_missing_key(errors):
                raise key_not_found(key_name, context=context)
            raise unavailable(
                message=f"Transit {operation} failed",
                key_name=key_name,
                context=context,
            )

        try:
            body = response.json()
            data = body["data"]
        except (ValueError, KeyError, TypeError) as exc:
            raise unavailable(
                message=f"Transit {operation} returned a malformed response",
                key_name=key_name,
                context={"error_type": type(exc).__name__},
            ) from exc
        if not isinstance(data, dict):
            raise unavailable(
                message=f"Transit {operation} returned a malformed response",
                key_name=key_name,
            )

        logger.info(
            "Transit %s completed for key=%s in %.0fms",
            operation,
            key_name,
            duration_ms,
        )
        return data

    @staticmethod
    def _error_messages(response: httpx.Response) -> list:
        try:
            errors = response.json().get("errors", [])
        except (ValueError, AttributeError):
            return []
        if not isinstance(errors, list):
            return []
        return [str(error) for error in errors]

    @staticmethod
    def _mentions_missing_key(errors: list) -> bool:
        lowered = " ".join(errors).lower()
        return any(marker in lowered for marker in _KEY_NOT_FOUND_MARKERS)

    async def health_check(self) -> bool:
        """
        Probe /v1/sys/health. Unauthenticated and free of side effects.

        Returns True for active or standby nodes. An unconfigured client (no
        address or no token) is reported unhealthy without a request.
        """
        if not self.is_configured:
            return False
        try:
            response = await self._client.get(f"{self.base_url}/v1/sys/health")
        except httpx.HTTPError as exc:
            logger.warning("Transit health check failed: %s", type(exc).__name__)
            return False
        return response.status_code in _HEALTHY_STATUS_CODES

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
