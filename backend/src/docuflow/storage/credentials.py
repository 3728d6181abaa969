"""Encrypted credential access for storage configs"""

from datetime import datetime
from typing import Any, Dict, Optional

from ..encryption import decrypt_credentials, encrypt_credentials
from ..models.storage_config import StorageConfig

CREDENTIALS_CONTEXT = "storage_credentials"


def get_credentials(config: StorageConfig) -> Dict[str, Any]:
    """Decrypted credentials of a storage config ({} when none are stored)."""
    if not config.encrypted_credentials:
        return {}
    return decrypt_credentials(config.encrypted_credentials)


def set_credentials(config: StorageConfig, credentials: Optional[Dict[str, Any]]) -> None:
    """Encrypt and store credentials; empty or None clears them."""
    if not credentials:
        config.encrypted_credentials = None
        return
    config.encrypted_credentials = encrypt_credentials(credentials, context=CREDENTIALS_CONTEXT)
    expires_at = credentials.get("expires_at")
    if isinstance(expires_at, str):
        config.expires_at = datetime.fromisoformat(expires_at)


def store_token_set(config: StorageConfig, token_set) -> None:
    """Merge a refreshed OAuth token set into the config's credentials."""
    credentials = get_credentials(config)
    credentials["access_token"] = token_set.access_token
    if token_set.refresh_token:
        credentials["refresh_token"] = token_set.refresh_token
    credentials["expires_at"] = token_set.expires_at.isoformat() if token_set.expires_at else None
    config.encrypted_credentials = encrypt_credentials(credentials, context=CREDENTIALS_CONTEXT)
    config.expires_at = token_set.expires_at
