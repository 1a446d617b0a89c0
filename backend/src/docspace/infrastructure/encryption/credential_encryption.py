"""Credential encryption using AES-256-GCM.

MCP server credentials (API keys, bearer tokens, basic auth) are stored
encrypted in mcp_servers.auth_config and only decrypted in-process.

- The key is derived with HKDF-SHA256 from CONFIG_ENCRYPTION_KEY, or
  from PASSWORD_PEPPER when no dedicated key is configured
- Every encryption uses a fresh 96-bit nonce
- An optional context string is bound as associated data, so a payload
  copied onto another row fails to decrypt
"""

import base64
import json
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from ...config import settings

PAYLOAD_VERSION = 1


@dataclass
class EncryptedPayload:
    """Serialized form stored in the database.

    Attributes:
        version: Format version
        nonce: Base64 nonce
        ciphertext: Base64 ciphertext including the GCM tag
        context: Associated data used at encryption time
    """
    version: int
    nonce: str
    ciphertext: str
    context: Optional[str] = None

    def to_json(self) -> str:
        return json.dumps({"v": self.version, "n": self.nonce, "c": self.ciphertext, "ctx": self.context})

    @classmethod
    def from_json(cls, data: str) -> "EncryptedPayload":
        try:
            parsed = json.loads(data)
            return cls(version=parsed["v"], nonce=parsed["n"], ciphertext=parsed["c"], context=parsed.get("ctx"))
        except (json.JSONDecodeError, KeyError, TypeError) as e:
            raise ValueError(f"Malformed encrypted payload: {e}")


class CredentialEncryption:
    """AES-256-GCM encryption of JSON credential dictionaries.

    Example:
        encryptor = CredentialEncryption()
        stored = encryptor.encrypt({"api_key": "k"}, context="mcp_server:<tool_id>").to_json()
        encryptor.decrypt_json(stored)  # {"api_key": "k"}
    """

    HKDF_INFO = b"docspace-credential-encryption-v1"

    def __init__(self, key_material: Optional[str] = None):
        material = key_material or settings.CONFIG_ENCRYPTION_KEY or settings.PASSWORD_PEPPER
        if not material:
            raise ValueError("No key material configured for credential encryption")
        self._key = HKDF(
            algorithm=hashes.SHA256(),
            length=32,
            salt=None,
            info=self.HKDF_INFO,
        ).derive(material.encode())

    def encrypt(self, data: Dict[str, Any], context: Optional[str] = None) -> EncryptedPayload:
        nonce = os.urandom(12)
        associated_data = context.encode() if context else None
        ciphertext = AESGCM(self._key).encrypt(nonce, json.dumps(data).encode(), associated_data)

        return EncryptedPayload(
            version=PAYLOAD_VERSION,
            nonce=base64.b64encode(nonce).decode(),
            ciphertext=base64.b64encode(ciphertext).decode(),
            context=context,
        )

    def decrypt(self, payload: EncryptedPayload) -> Dict[str, Any]:
        """Decrypt a payload.

        Raises:
            ValueError: Wrong key, tampered data, wrong context or unknown version
        """
        if payload.version != PAYLOAD_VERSION:
            raise ValueError(f"Unsupported encryption version: {payload.version}")

        associated_data = payload.context.encode() if payload.context else None
        try:
            plaintext = AESGCM(self._key).decrypt(
                base64.b64decode(payload.nonce),
                base64.b64decode(payload.ciphertext),
                associated_data,
            )
        except InvalidTag:
            raise ValueError("Decryption failed - invalid key or tampered data")

        return json.loads(plaintext.decode())

    def decrypt_json(self, data: str) -> Dict[str, Any]:
        return self.decrypt(EncryptedPayload.from_json(data))


_encryptor: Optional[CredentialEncryption] = None


def get_encryptor() -> CredentialEncryption:
    global _encryptor
    if _encryptor is None:
        _encryptor = CredentialEncryption()
    return _encryptor


def encrypt_credentials(data: Dict[str, Any], context: Optional[str] = None) -> str:
    """Encrypt a credentials dict and return the JSON string to store."""
    return get_encryptor().encrypt(data, context).to_json()


def decrypt_credentials(stored: str) -> Dict[str, Any]:
    return get_encryptor().decrypt_json(stored)
