"""Unit tests for AES-GCM credential encryption

Tests cover:
- Encrypt/decrypt with and without context
- Fresh nonce per encryption
- Wrong key, wrong context, tampering and version checks
- Payload JSON parsing
"""

import pytest

from docspace.infrastructure.encryption import (
    CredentialEncryption,
    EncryptedPayload,
    decrypt_credentials,
    encrypt_credentials,
)

CREDENTIALS = {"api_key": "sk-test-123", "header": "X-API-Key"}


@pytest.fixture
def encryptor():
    return CredentialEncryption("unit-test-key-material")


class TestCredentialEncryption:
    def test_roundtrip_with_context(self, encryptor):
        payload = encryptor.encrypt(CREDENTIALS, context="mcp_server:abc")
        assert encryptor.decrypt(payload) == CREDENTIALS

    def test_ciphertext_hides_plaintext(self, encryptor):
        stored = encryptor.encrypt(CREDENTIALS).to_json()
        assert "sk-test-123" not in stored

    def test_nonce_is_fresh(self, encryptor):
        first = encryptor.encrypt(CREDENTIALS)
        second = encryptor.encrypt(CREDENTIALS)
        assert first.nonce != second.nonce
        assert first.ciphertext != second.ciphertext

    def test_wrong_key_fails(self, encryptor):
        payload = encryptor.encrypt(CREDENTIALS)
        with pytest.raises(ValueError, match="Decryption failed"):
            CredentialEncryption("another-key").decrypt(payload)

    def test_context_is_bound(self, encryptor):
        payload = encryptor.encrypt(CREDENTIALS, context="mcp_server:abc")
        payload.context = "mcp_server:other"
        with pytest.raises(ValueError):
            encryptor.decrypt(payload)

    def test_unknown_version(self, encryptor):
        payload = encryptor.encrypt(CREDENTIALS)
        payload.version = 99
        with pytest.raises(ValueError, match="Unsupported encryption version"):
            encryptor.decrypt(payload)

    def test_decrypt_json(self, encryptor):
        stored = encryptor.encrypt(CREDENTIALS, context="ctx").to_json()
        assert encryptor.decrypt_json(stored) == CREDENTIALS


class TestEncryptedPayload:
    def test_json_roundtrip(self):
        payload = EncryptedPayload(version=1, nonce="bm9uY2U=", ciphertext="Y2lwaGVy", context="c")
        assert EncryptedPayload.from_json(payload.to_json()) == payload

    @pytest.mark.parametrize("data", ["not json", '{"v": 1}', "[]"])
    def test_malformed(self, data):
        with pytest.raises(ValueError, match="Malformed"):
            EncryptedPayload.from_json(data)


def test_module_helpers_use_configured_key():
    stored = encrypt_credentials({"bearer_token": "t"}, context="mcp_server:1")
    assert decrypt_credentials(stored) == {"bearer_token": "t"}
