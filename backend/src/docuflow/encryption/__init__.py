from .config_encryption import (
    ConfigEncryption,
    EncryptedConfig,
    decrypt_credentials,
    decrypt_token,
    encrypt_credentials,
    encrypt_token,
)

__all__ = [
    "ConfigEncryption",
    "EncryptedConfig",
    "decrypt_credentials",
    "decrypt_token",
    "encrypt_credentials",
    "encrypt_token",
]
