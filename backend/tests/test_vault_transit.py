"""
Transit Store Backend - Vault Transit Client Tests (Mocked)
=============================================================

What:  Tests for VaultTransitClient with httpx.MockTransport standing in for Vault.
How:   Each test installs a handler that inspects the request and returns a
       canned Vault response. No network.

What we test:
    ✅ Encrypt/decrypt wire format and the X-Vault-Token header
    ✅ Non-2xx responses become *UnavailableError
    ✅ Missing keys become *KeyNotFoundError (distinguishable)
    ✅ Timeouts and transport errors become *UnavailableError, one attempt only
    ✅ Malformed bodies become *UnavailableError
    ✅ Unconfigured client fails without any request
"""

import base64
import json

import httpx
import pytest

from transit_store.exceptions import (
    DecryptionKeyNotFoundError,
    DecryptionUnavailableError,
    EncryptionKeyNotFoundError,
    EncryptionUnavailableError,
)
from transit_store.services.transit_base import decode_plaintext, encode_plaintext
from transit_store.services.vault_transit import VaultTransitClient

VAULT = "http://vault.test:8200"


def _client(handler) -> VaultTransitClient:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return VaultTransitClient(base_url=VAULT, token="s.test", http_client=http_client)


class TestPlaintextCodec:
    """JSON to base64 codec shared by every transit client."""

    def test_encode_is_base64_of_json(self):
        """Encoded plaintext is base64 of the JSON serialization."""
        encoded = encode_plaintext({"a": 1})
        assert json.loads(base64.b64decode(encoded)) == {"a": 1}

    @pytest.mark.parametrize("value", ["hello", 42, [1, "two"], {"nested": {"x": None}}, None])
    def test_decode_reverses_encode(self, value):
        """Every JSON value survives encode then decode."""
        assert decode_plaintext(encode_plaintext(value), "mykey") == value

    def test_decode_rejects_non_json(self):
        """Base64 that is not JSON is a decryption failure."""
        payload = base64.b64encode(b"not json").decode()
        with pytest.raises(DecryptionUnavailableError):
            decode_plaintext(payload, "mykey")

    def test_decode_rejects_non_base64(self):
        """A payload that is not base64 is a decryption failure."""
        with pytest.raises(DecryptionUnavailableError):
            decode_plaintext("***", "mykey")


class TestEncrypt:
    """POST /v1/transit/encrypt/{key} and its failure translation."""

    @pytest.mark.asyncio
    async def test_encrypt_success(self):
        """Encrypt POSTs base64 JSON with the token header and returns the ciphertext."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["token"] = request.headers.get("X-Vault-Token")
            seen["body"] = json.loads(request.content)
            return httpx.Response(
                200, json={"data": {"ciphertext": "vault:v1:abc", "key_version": 1}}
            )

        client = _client(handler)
        result = await client.encrypt({"a": 1}, "mykey")

        assert result.ciphertext == "vault:v1:abc"
        assert result.key_version == 1
        assert seen["url"] == f"{VAULT}/v1/transit/encrypt/mykey"
        assert seen["token"] == "s.test"
        assert decode_plaintext(seen["body"]["plaintext"], "mykey") == {"a": 1}

    @pytest.mark.asyncio
    async def test_server_error_is_unavailable(self):
        """A 5xx from Vault is unavailable, not key-not-found."""
        client = _client(lambda request: httpx.Response(500, json={"errors": ["internal"]}))

        with pytest.raises(EncryptionUnavailableError) as exc_info:
            await client.encrypt("x", "mykey")
        assert not isinstance(exc_info.value, EncryptionKeyNotFoundError)

    @pytest.mark.asyncio
    async def test_forbidden_is_unavailable(self):
        """A 403 keeps the status code in the server-side context."""
        client = _client(lambda request: httpx.Response(403, json={"errors": ["permission denied"]}))

        with pytest.raises(EncryptionUnavailableError) as exc_info:
            await client.encrypt("x", "mykey")
        assert exc_info.value.context["status_code"] == 403

    @pytest.mark.asyncio
    async def test_missing_key_is_key_not_found(self):
        """Vault's "key not found" error maps to EncryptionKeyNotFoundError."""
        client = _client(
            lambda request: httpx.Response(400, json={"errors": ["encryption key not found"]})
        )

        with pytest.raises(EncryptionKeyNotFoundError) as exc_info:
            await client.encrypt("x", "nokey")
        assert exc_info.value.key_name == "nokey"

    @pytest.mark.asyncio
    async def test_timeout_is_unavailable_and_not_retried(self):
        """A timeout fails after exactly one request."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            raise httpx.ReadTimeout("timed out", request=request)

        client = _client(handler)
        with pytest.raises(EncryptionUnavailableError):
            await client.encrypt("x", "mykey")
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_connection_error_is_unavailable(self):
        """A refused connection is unavailable."""
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        client = _client(handler)
        with pytest.raises(EncryptionUnavailableError):
            await client.encrypt("x", "mykey")

    @pytest.mark.asyncio
    async def test_malformed_body_is_unavailable(self):
        """A 2xx with a non-string ciphertext is unavailable."""
        client = _client(lambda request: httpx.Response(200, json={"data": {"ciphertext": 7}}))

        with pytest.raises(EncryptionUnavailableError):
            await client.encrypt("x", "mykey")

    @pytest.mark.asyncio
    async def test_non_json_body_is_unavailable(self):
        """A 2xx with a non-JSON body is unavailable."""
        client = _client(lambda request: httpx.Response(200, text="<html>"))

        with pytest.raises(EncryptionUnavailableError):
            await client.encrypt("x", "mykey")

    @pytest.mark.asyncio
    async def test_unconfigured_client_makes_no_request(self):
        """Without address and token, encrypt fails before any request."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200)

        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        client = VaultTransitClient(base_url=None, token=None, http_client=http_client)

        assert client.is_configured is False
        with pytest.raises(EncryptionUnavailableError):
            await client.encrypt("x", "mykey")
        assert calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("key_name", [".", ".."])
    async def test_dot_only_key_name_makes_no_request(self, key_name):
        """Dot-only key names fail as missing keys without reaching Vault."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.url.path)
            return httpx.Response(200, json={"data": {"ciphertext": "vault:v1:x", "key_version": 1}})

        client = _client(handler)
        with pytest.raises(EncryptionKeyNotFoundError):
            await client.encrypt("x", key_name)
        with pytest.raises(DecryptionKeyNotFoundError):
            await client.decrypt("vault:v1:x", key_name)
        assert calls == []


class TestDecrypt:
    """POST /v1/transit/decrypt/{key} and its failure translation."""

    @pytest.mark.asyncio
    async def test_decrypt_success(self):
        """Decrypt POSTs the ciphertext and decodes the returned plaintext."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(
                200, json={"data": {"plaintext": encode_plaintext({"a": 1})}}
            )

        client = _client(handler)
        value = await client.decrypt("vault:v1:abc", "mykey")

        assert value == {"a": 1}
        assert seen["url"] == f"{VAULT}/v1/transit/decrypt/mykey"
        assert seen["body"] == {"ciphertext": "vault:v1:abc"}

    @pytest.mark.asyncio
    async def test_not_found_status_is_key_not_found(self):
        """A 404 on decrypt maps to DecryptionKeyNotFoundError."""
        client = _client(lambda request: httpx.Response(404, json={"errors": []}))

        with pytest.raises(DecryptionKeyNotFoundError):
            await client.decrypt("vault:v1:abc", "gone")

    @pytest.mark.asyncio
    async def test_rejected_ciphertext_is_unavailable(self):
        """Vault rejecting the ciphertext is unavailable, not key-not-found."""
        client = _client(
            lambda request: httpx.Response(400, json={"errors": ["invalid ciphertext"]})
        )

        with pytest.raises(DecryptionUnavailableError) as exc_info:
            await client.decrypt("garbage", "mykey")
        assert not isinstance(exc_info.value, DecryptionKeyNotFoundError)

    @pytest.mark.asyncio
    async def test_undecodable_plaintext_is_unavailable(self):
        """Plaintext that is not base64 JSON is unavailable."""
        client = _client(lambda request: httpx.Response(200, json={"data": {"plaintext": "%%%"}}))

        with pytest.raises(DecryptionUnavailableError):
            await client.decrypt("vault:v1:abc", "mykey")


class TestHealthCheck:
    """/v1/sys/health probe."""

    @pytest.mark.asyncio
    async def test_active_node_is_healthy(self):
        """An active Vault node reports healthy."""
        client = _client(lambda request: httpx.Response(200, json={"initialized": True}))
        assert await client.health_check() is True

    @pytest.mark.asyncio
    async def test_sealed_node_is_unhealthy(self):
        """A sealed node (503) reports unhealthy."""
        client = _client(lambda request: httpx.Response(503))
        assert await client.health_check() is False

    @pytest.mark.asyncio
    async def test_unreachable_is_unhealthy(self):
        """A connection error reports unhealthy."""
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        client = _client(handler)
        assert await client.health_check() is False

    @pytest.mark.asyncio
    async def test_missing_token_is_unhealthy(self):
        """An address without a token reports unhealthy and sends nothing."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200)

        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        client = VaultTransitClient(base_url=VAULT, token=None, http_client=http_client)

        assert await client.health_check() is False
        assert calls == []
