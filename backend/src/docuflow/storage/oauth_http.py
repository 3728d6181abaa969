"""Shared HTTP plumbing for OAuth-backed storage providers.

Requests carry the current access token. A 401 answer triggers exactly one
token refresh and a replay of the request; a second 401, or a refresh that
fails, raises ReconnectRequiredError.
"""

import logging
from typing import Callable, Optional

import httpx

from ..config import get_settings
from ..integrations.token_refresh import TokenRefreshError
from .port import ReconnectRequiredError, StorageAdapter, StorageError

logger = logging.getLogger(__name__)

# refresh_token -> TokenSet(access_token, refresh_token, expires_at)
TokenRefresher = Callable[[str], object]
TokenListener = Callable[[object], None]


class OAuthHttpAdapter(StorageAdapter):
    """Base class for adapters speaking a bearer-token REST API through httpx."""

    def __init__(
        self,
        access_token: str,
        refresh_token: Optional[str] = None,
        token_refresher: Optional[TokenRefresher] = None,
        on_token_refresh: Optional[TokenListener] = None,
        client: Optional[httpx.Client] = None,
    ):
        self.access_token = access_token
        self.refresh_token = refresh_token
        self.token_refresher = token_refresher
        self.on_token_refresh = on_token_refresh
        self._owns_client = client is None
        self.client = client or httpx.Client(timeout=get_settings().PROVIDER_HTTP_TIMEOUT)

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    def _refresh_access_token(self) -> None:
        if not self.refresh_token or self.token_refresher is None:
            raise ReconnectRequiredError(f"{self.provider} access token expired and no refresh token is available")

        try:
            token_set = self.token_refresher(self.refresh_token)
        except TokenRefreshError as e:
            raise ReconnectRequiredError(f"{self.provider} token refresh failed: {e}")

        self.access_token = token_set.access_token
        if token_set.refresh_token:
            self.refresh_token = token_set.refresh_token
        logger.info(f"Refreshed {self.provider} access token", extra={"provider": self.provider})

        if self.on_token_refresh is not None:
            self.on_token_refresh(token_set)

    def _send(self, method: str, url: str, authenticated: bool = True, **kwargs) -> httpx.Response:
        headers = dict(kwargs.pop("headers", None) or {})
        if authenticated:
            headers["Authorization"] = f"Bearer {self.access_token}"
        try:
            return self.client.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            raise StorageError(f"{self.provider} request failed: {e}")

    def request(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Send an authenticated request, refreshing the token once on 401.

        Raises:
            ReconnectRequiredError: If the provider still answers 401 after a refresh
            StorageError: On transport errors
        """
        response = self._send(method, url, **kwargs)
        if response.status_code != 401:
            return response

        self._refresh_access_token()
        response = self._send(method, url, **kwargs)
        if response.status_code == 401:
            raise ReconnectRequiredError(f"{self.provider} rejected the refreshed access token")
        return response

    def _raise_for_status(self, response: httpx.Response, action: str) -> None:
        if response.is_success:
            return
        detail = response.text[:200] if response.text else ""
        logger.error(
            f"{self.provider} {action} failed: status={response.status_code} {detail}",
            extra={"provider": self.provider, "status_code": response.status_code},
        )
        raise StorageError(f"Failed to {action}: HTTP {response.status_code}")
