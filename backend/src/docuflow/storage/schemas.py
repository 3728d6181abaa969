"""Pydantic schemas for storage configurations"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ..models.storage_config import OAUTH_PROVIDERS, StorageProvider


def check_provider_settings(provider: StorageProvider, config: Dict[str, Any], credentials: Optional[Dict[str, Any]]) -> None:
    """Raise ValueError when a provider is missing settings it cannot work without."""
    credentials = credentials or {}

    if provider in OAUTH_PROVIDERS and not credentials.get("access_token"):
        raise ValueError(f"{provider.value} requires credentials.access_token")

    if provider == StorageProvider.SHAREPOINT and not config.get("site_id"):
        raise ValueError("sharepoint requires config.site_id")

    if provider == StorageProvider.AZURE_BLOB:
        if not config.get("container"):
            raise ValueError("azure_blob requires config.container")
        has_connection_string = bool(credentials.get("connection_string"))
        has_account = bool(config.get("account_url")) and bool(
            credentials.get("account_key") or credentials.get("sas_token")
        )
        if not (has_connection_string or has_account):
            raise ValueError(
                "azure_blob requires credentials.connection_string, "
                "or config.account_url with credentials.account_key or credentials.sas_token"
            )


class StorageConfigCreate(BaseModel):
    """Schema for connecting a storage destination.

    `config` holds non-secret settings; `credentials` is encrypted at rest
    and never returned.
    """
    provider: StorageProvider
    name: str = Field(..., min_length=1, max_length=200)
    config: Dict[str, Any] = Field(default_factory=dict)
    credentials: Optional[Dict[str, Any]] = None
    is_default: bool = False
    is_active: bool = True

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Storage name cannot be empty")
        return v.strip()

    @model_validator(mode="after")
    def validate_provider_settings(self):
        check_provider_settings(self.provider, self.config, self.credentials)
        return self


class StorageConfigUpdate(BaseModel):
    """Schema for updating a storage config (all fields optional).

    Credentials, when given, replace the stored ones entirely.
    """
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    config: Optional[Dict[str, Any]] = None
    credentials: Optional[Dict[str, Any]] = None
    is_default: Optional[bool] = None
    is_active: Optional[bool] = None
