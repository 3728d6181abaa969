"""OAuth token refresh for Google and Microsoft.

Used two ways: proactively by the integrations.refresh_tokens task for every
token expiring within REFRESH_WINDOW, and reactively by the OAuth storage
adapters when a provider answers 401.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import httpx
from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..config import get_settings
from ..encryption import decrypt_token, encrypt_token
from ..models.email_account import EmailAccount
from ..models.storage_config import StorageConfig, StorageProvider
from ..storage.credentials import get_credentials, store_token_set

logger = logging.getLogger(__name__)

GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
MICROSOFT_TOKEN_URL = "https://login.microsoftonline.com/{tenant}/oauth2/v2.0/token"
MICROSOFT_SCOPE = "https://graph.microsoft.com/.default offline_access"

REFRESH_WINDOW = timedelta(hours=1)

GOOGLE_PROVIDERS = {"gmail", StorageProvider.GOOGLE_DRIVE.value}
MICROSOFT_PROVIDERS = {"outlook", StorageProvider.ONEDRIVE.value, StorageProvider.SHAREPOINT.value}


class TokenRefreshError(Exception):
    """Provider refused to issue a new access token.

    reconnect_required is True when the refresh token itself is no longer
    valid and the user has to grant access again.
    """

    def __init__(self, message: str, reconnect_required: bool = False):
        super().__init__(message)
        self.reconnect_required = reconnect_required


@dataclass
class TokenSet:
    access_token: str
    refresh_token: Optional[str] = None
    expires_at: Optional[datetime] = None


def _http_client() -> httpx.Client:
    return httpx.Client(timeout=get_settings().PROVIDER_HTTP_TIMEOUT)


def _post_token_request(url: str, data: Dict[str, str], refresh_token: str, client: Optional[httpx.Client]) -> TokenSet:
    owns_client = client is None
    client = client or _http_client()
    try:
        response = client.post(url, data=data, headers={"Accept": "application/json"})
    except httpx.HTTPError as e:
        raise TokenRefreshError(f"Token endpoint unreachable: {e}")
    finally:
        if owns_client:
            client.close()

    try:
        body = response.json()
    except ValueError:
        body = {}

    if response.status_code != 200 or "access_token" not in body:
        error = body.get("error", f"HTTP {response.status_code}")
        description = body.get("error_description", "")
        raise TokenRefreshError(
            f"Token refresh failed: {error} {description}".strip(),
            reconnect_required=error in ("invalid_grant", "unauthorized_client"),
        )

    expires_in = body.get("expires_in")
    expires_at = datetime.now(timezone.utc) + timedelta(seconds=int(expires_in)) if expires_in else None
    return TokenSet(
        access_token=body["access_token"],
        refresh_token=body.get("refresh_token") or refresh_token,
        expires_at=expires_at,
    )


def refresh_google_token(refresh_token: str, client: Optional[httpx.Client] = None) -> TokenSet:
    """Exchange a Google refresh token for a new access token.

    Raises:
        TokenRefreshError: If the OAuth client is not configured or Google refuses
    """
    settings = get_settings()
    if not settings.GOOGLE_CLIENT_ID or not settings.GOOGLE_CLIENT_SECRET:
        raise TokenRefreshError("Google OAuth client is not configured")

    return _post_token_request(
        GOOGLE_TOKEN_URL,
        {
            "client_id": settings.GOOGLE_CLIENT_ID,
            "client_secret": settings.GOOGLE_CLIENT_SECRET,
            "refresh_token": refresh_token,
            "grant_type": "refresh_token",
        },
        refresh_token,
        client,
    )


def refresh_microsoft_token(refresh_token: str, client: Optional[httpx.Client] = None) -> TokenSet:
    """Exchange a Microsoft identity platform refresh token for a new access token.

    Raises:
        TokenRefreshError: If the OAuth client is not configured or Microsoft refuses
    """
    settings = get_settings()
    if not settings.MICROSOFT_CLIENT_ID or not settings.MICROSOFT_CLIENT_SECRET:
        raise TokenRefreshError("Microsoft OAuth client is not configured")

    return _post_token_request(
        MICROSOFT_TOKEN_URL.format(tenant=settings.MICROSOFT_TENANT_ID),
        {
            "client_id": settings.MICROSOFT_CLIENT_ID,
            "client_secret": settings.MICROSOFT_CLIENT_SECRET,
            "refresh_token": refresh_token,
            "grant_type": "refresh_token",
            "scope": MICROSOFT_SCOPE,
        },
        refresh_token,
        client,
    )


def refresh_provider_token(provider: str, refresh_token: str, client: Optional[httpx.Client] = None) -> TokenSet:
    """Dispatch to the Google or Microsoft refresh by provider name."""
    if provider in GOOGLE_PROVIDERS:
        return refresh_google_token(refresh_token, client)
    if provider in MICROSOFT_PROVIDERS:
        return refresh_microsoft_token(refresh_token, client)
    raise TokenRefreshError(f"Provider '{provider}' does not use OAuth tokens")


def _result(account_id, account_email: str, provider: str, error: Optional[str] = None) -> Dict[str, Any]:
    return {
        "account_id": str(account_id),
        "account_email": account_email,
        "provider": provider,
        "success": error is None,
        "error": error,
    }


def refresh_email_account(db: Session, account: EmailAccount, client: Optional[httpx.Client] = None) -> Dict[str, Any]:
    try:
        token_set = refresh_provider_token(account.provider, decrypt_token(account.encrypted_refresh_token), client)
    except TokenRefreshError as e:
        logger.warning(
            f"Token refresh failed for email account {account.email}: {e}",
            extra={"org_id": str(account.org_id), "provider": account.provider},
        )
        return _result(account.id, account.email, account.provider, str(e))

    account.encrypted_access_token = encrypt_token(token_set.access_token)
    if token_set.refresh_token:
        account.encrypted_refresh_token = encrypt_token(token_set.refresh_token)
    account.expires_at = token_set.expires_at
    db.commit()
    return _result(account.id, account.email, account.provider)


def refresh_storage_config(db: Session, config: StorageConfig, client: Optional[httpx.Client] = None) -> Dict[str, Any]:
    refresh_token = get_credentials(config).get("refresh_token")
    if not refresh_token:
        return _result(config.id, config.name, config.provider, "No refresh token stored")

    try:
        token_set = refresh_provider_token(config.provider, refresh_token, client)
    except TokenRefreshError as e:
        logger.warning(
            f"Token refresh failed for storage config {config.name}: {e}",
            extra={"org_id": str(config.org_id), "provider": config.provider, "storage_config_id": str(config.id)},
        )
        return _result(config.id, config.name, config.provider, str(e))

    store_token_set(config, token_set)
    db.commit()
    return _result(config.id, config.name, config.provider)


def refresh_expiring_tokens(
    db: Session,
    client: Optional[httpx.Client] = None,
    now: Optional[datetime] = None,
) -> List[Dict[str, Any]]:
    """Refresh every active OAuth token that expires within REFRESH_WINDOW.

    Tokens without a recorded expiry are refreshed too. Each account is
    committed on its own so one failure does not undo the others.

    Returns:
        One {account_id, account_email, provider, success, error} per token
    """
    threshold = (now or datetime.now(timezone.utc)) + REFRESH_WINDOW
    results: List[Dict[str, Any]] = []

    accounts = (
        db.query(EmailAccount)
        .filter(
            EmailAccount.is_active.is_(True),
            EmailAccount.encrypted_refresh_token.isnot(None),
            or_(EmailAccount.expires_at.is_(None), EmailAccount.expires_at < threshold),
        )
        .all()
    )
    for account in accounts:
        results.append(refresh_email_account(db, account, client))

    configs = (
        db.query(StorageConfig)
        .filter(
            StorageConfig.is_active.is_(True),
            StorageConfig.provider.in_([p.value for p in (
                StorageProvider.GOOGLE_DRIVE, StorageProvider.ONEDRIVE, StorageProvider.SHAREPOINT,
            )]),
            StorageConfig.encrypted_credentials.isnot(None),
            or_(StorageConfig.expires_at.is_(None), StorageConfig.expires_at < threshold),
        )
        .all()
    )
    for config in configs:
        results.append(refresh_storage_config(db, config, client))

    succeeded = sum(1 for r in results if r["success"])
    logger.info(f"Token refresh finished: {succeeded}/{len(results)} succeeded")
    return results
