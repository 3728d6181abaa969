"""AES-256-GCM encryption for provider credentials.

Storage credentials (OAuth tokens, connection strings, S3 keys) and email
account tokens are stored as JSON envelopes {"v", "n", "c", "ctx"}. The key is
derived from PASSWORD_PEPPER with HKDF; each envelope has a random 96-bit
nonce and an optional context string bound as associated data.
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

from ..config import get_settings


@dataclass
class EncryptedConfig:
    """Serialized envelope stored in the database."""
    version: int
    nonce: str
    ciphertext: str
    context: Optional[str] = None

    def to_json(self) -> str:
        return json.dumps({
            "v": self.version,
            "n": self.nonce,
            "c": self.ciphertext,
            "ctx": self.context,
        })

    @classmethod
    def from_json(cls, data: str) -> "EncryptedConfig":
        try:
            parsed = json.loads(data)
            return cls(
                version=parsed["v"],
                nonce=parsed["n"],
                ciphertext=parsed["c"],
                context=parsed.get("ctx"),
            )
        except (ValueError, KeyError, TypeError) as e:
            raise ValueError(f"Malformed encrypted payload: {e}")


class ConfigEncryption:
    """Encrypt and decrypt credential dictionaries.

    Example:
        encryptor = ConfigEncryption()
        envelope = encryptor.encrypt({"access_token": "..."}, context="storage_config")
        stored = envelope.to_json()
        credentials = encryptor.decrypt_from_json(stored)
    """

    HKDF_INFO = b"docuflow-credential-encryption-v1"

    def __init__(self, pepper: Optional[str] = None):
        self._key = HKDF(
            algorithm=hashes.SHA256(),
            length=32,
            salt=None,
            info=self.HKDF_INFO,
        ).derive((pepper or get_settings().PASSWORD_PEPPER).encode())

    def encrypt(self, payload: Dict[str, Any], context: Optional[str] = None) -> EncryptedConfig:
        nonce = os.urandom(12)
        associated_data = context.encode() if context else None
        ciphertext = AESGCM(self._key).encrypt(nonce, json.dumps(payload).encode(), associated_data)

        return EncryptedConfig(
            version=1,
            nonce=base64.b64encode(nonce).decode(),
            ciphertext=base64.b64encode(ciphertext).decode(),
            context=context,
        )

    def decrypt(self, encrypted: EncryptedConfig) -> Dict[str, Any]:
        """Raises ValueError on wrong key, wrong context or tampered data."""
        if encrypted.version != 1:
            raise ValueError(f"Unsupported encryption version: {encrypted.version}")

        associated_data = encrypted.context.encode() if encrypted.context else None
        try:
            plaintext = AESGCM(self._key).decrypt(
                base64.b64decode(encrypted.nonce),
                base64.b64decode(encrypted.ciphertext),
                associated_data,
            )
        except (InvalidTag, ValueError) as e:
            raise ValueError(f"Decryption failed - invalid key or tampered data: {e!r}")

        return json.loads(plaintext.decode())

    def decrypt_from_json(self, json_data: str) -> Dict[str, Any]:
        return self.decrypt(EncryptedConfig.from_json(json_data))


_encryptor: Optional[ConfigEncryption] = None


def get_encryptor() -> ConfigEncryption:
    global _encryptor
    if _encryptor is None:
        _encryptor = ConfigEncryption()
    return _encryptor


def encrypt_credentials(credentials: Dict[str, Any], context: Optional[str] = None) -> str:
    """Encrypt a credentials dict and return the envelope JSON for storage."""
    return get_encryptor().encrypt(credentials, context).to_json()


def decrypt_credentials(json_data: str) -> Dict[str, Any]:
    return get_encryptor().decrypt_from_json(json_data)


def encrypt_token(token: str) -> str:
    """Encrypt a single OAuth token string."""
    return encrypt_credentials({"token": token}, context="oauth_token")


def decrypt_token(json_data: str) -> str:
    return decrypt_credentials(json_data)["token"]
