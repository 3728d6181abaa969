"""Build the storage adapter for a StorageConfig"""

import logging
from typing import Optional

import httpx
from sqlalchemy.orm import Session

from ..config import get_settings
from ..integrations.token_refresh import refresh_provider_token
from ..models.storage_config import StorageConfig, StorageProvider
from .azure_blob import AzureBlobAdapter
from .credentials import get_credentials, store_token_set
from .google_drive import GoogleDriveAdapter
from .object_store import ObjectStoreAdapter
from .onedrive import OneDriveAdapter, SharePointAdapter
from .port import ReconnectRequiredError, StorageAdapter, StorageError

logger = logging.getLogger(__name__)


def _oauth_kwargs(config: StorageConfig, db: Optional[Session], http_client: Optional[httpx.Client]) -> dict:
    credentials = get_credentials(config)
    access_token = credentials.get("access_token")
    if not access_token:
        raise ReconnectRequiredError(f"Storage '{config.name}' has no access token. Please reconnect the account.")

    def on_token_refresh(token_set) -> None:
        store_token_set(config, token_set)
        if db is not None:
            db.flush()

    return {
        "access_token": access_token,
        "refresh_token": credentials.get("refresh_token"),
        "token_refresher": lambda refresh_token: refresh_provider_token(config.provider, refresh_token, http_client),
        "on_token_refresh": on_token_refresh,
        "client": http_client,
    }


def create_adapter(
    config: StorageConfig,
    db: Optional[Session] = None,
    http_client: Optional[httpx.Client] = None,
) -> StorageAdapter:
    """Instantiate the adapter for config.provider with decrypted credentials.

    Refreshed OAuth tokens are written back to the config (and flushed when
    a session is given); the caller commits.

    Raises:
        StorageError: Unknown provider or incomplete configuration
        ReconnectRequiredError: OAuth provider without an access token
    """
    settings = get_settings()
    options = config.config or {}

    if config.provider == StorageProvider.OBJECT_STORE:
        credentials = get_credentials(config)
        return ObjectStoreAdapter(
            bucket_name=options.get("bucket") or settings.S3_BUCKET_NAME,
            access_key=credentials.get("access_key_id") or settings.S3_ACCESS_KEY_ID,
            secret_key=credentials.get("secret_access_key") or settings.S3_SECRET_ACCESS_KEY,
            endpoint_url=options.get("endpoint_url") or settings.S3_ENDPOINT_URL,
            region=options.get("region") or settings.S3_REGION,
            prefix=options.get("prefix") or str(config.org_id),
        )

    if config.provider == StorageProvider.AZURE_BLOB:
        credentials = get_credentials(config)
        container = options.get("container")
        if not container:
            raise StorageError("Azure Blob storage requires a container name")
        return AzureBlobAdapter(
            container_name=container,
            connection_string=credentials.get("connection_string"),
            account_url=options.get("account_url"),
            credential=credentials.get("account_key") or credentials.get("sas_token"),
            prefix=options.get("prefix", ""),
        )

    if config.provider == StorageProvider.GOOGLE_DRIVE:
        return GoogleDriveAdapter(
            root_folder_id=options.get("root_folder_id") or "root",
            **_oauth_kwargs(config, db, http_client),
        )

    if config.provider == StorageProvider.ONEDRIVE:
        return OneDriveAdapter(
            root_folder=options.get("root_folder", ""),
            **_oauth_kwargs(config, db, http_client),
        )

    if config.provider == StorageProvider.SHAREPOINT:
        return SharePointAdapter(
            site_id=options.get("site_id"),
            drive_id=options.get("drive_id"),
            root_folder=options.get("root_folder", ""),
            **_oauth_kwargs(config, db, http_client),
        )

    raise StorageError(f"Unsupported storage provider: {config.provider}")
