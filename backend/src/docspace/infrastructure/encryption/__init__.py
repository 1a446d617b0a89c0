"""AES-256-GCM encryption for stored credentials."""

from .credential_encryption import CredentialEncryption, EncryptedPayload, encrypt_credentials, decrypt_credentials

__all__ = ["CredentialEncryption", "EncryptedPayload", "encrypt_credentials", "decrypt_credentials"]
