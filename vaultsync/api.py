"""API client for the vault snapshot server."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from .config import config
from .exceptions import (
    AuthenticationError,
    ConfigError,
    InvalidResponseError,
    NotFoundError,
    RateLimitError,
    TransportError,
)
from .utils import (
    ARCHIVE_CONTENT_TYPE,
    DEFAULT_TIMEOUT,
    archive_name,
    validate_vault_name,
)

logger = logging.getLogger(__name__)


class VaultSyncClient:
    """Client for uploading and fetching vault snapshots.

    The server keeps exactly one snapshot per vault name. Uploading
    overwrites it; downloading goes through a short-lived signed URL that
    the server hands out.
    """

    def __init__(
        self,
        auth_token: str | None = None,
        api_url: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize the client.

        Args:
            auth_token: Optional bearer token (uses config if not provided)
            api_url: Optional server URL (uses config if not provided)
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.auth_token = auth_token or config.auth_token
        self.api_url = (api_url or config.api_url).rstrip("/")
        self.timeout = timeout
        self._transport = transport

        if not self.auth_token:
            raise ConfigError(
                "Auth token not configured. Please run 'vaultsync init' or set "
                "VAULTSYNC_AUTH_TOKEN environment variable."
            )

        self._client: httpx.Client | None = None

    def _get_client(self) -> httpx.Client:
        """Get or create the httpx client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(
                headers={"Authorization": f"Bearer {self.auth_token}"},
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    def close(self) -> None:
        """Close the client and release connections."""
        if self._client is not None and not self._client.is_closed:
            self._client.close()
            self._client = None

    def __enter__(self) -> VaultSyncClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _raise_for_status(self, response: httpx.Response) -> None:
        """Map HTTP error statuses to transport exceptions."""
        status_code = response.status_code
        if status_code < 400:
            return

        if status_code == 401:
            raise AuthenticationError("Invalid auth token or unauthorized access")
        elif status_code == 404:
            raise NotFoundError("Snapshot not found or inaccessible")
        elif status_code == 429:
            raise RateLimitError("Rate limit exceeded - please try again later")

        error_msg = f"Request failed with status {status_code}"
        # Try to extract more details from response body
        try:
            if response.content:
                error_data = response.json()
                if isinstance(error_data, dict):
                    msg = error_data.get("error") or error_data.get("message")
                    if msg:
                        error_msg = f"{error_msg}: {msg}"
        except ValueError:
            pass
        raise TransportError(error_msg)

    def _json(self, response: httpx.Response) -> dict[str, Any]:
        content_type = response.headers.get("Content-Type", "")
        if "application/json" not in content_type:
            raise InvalidResponseError(f"Unexpected response type: {content_type}")
        try:
            data = response.json()
        except ValueError as e:
            raise InvalidResponseError("Invalid JSON response from server") from e
        if not isinstance(data, dict):
            raise InvalidResponseError("Expected a JSON object from server")
        return data

    def _request(self, method: str, endpoint: str, **kwargs: Any) -> dict[str, Any]:
        """Make an API request and return the decoded JSON body.

        Raises:
            TransportError: If the request fails
        """
        url = f"{self.api_url}/{endpoint.lstrip('/')}"
        client = self._get_client()
        logger.debug("%s %s", method, url)

        try:
            response = client.request(method, url, **kwargs)
        except httpx.RequestError as e:
            raise TransportError(f"Network error: {e}") from e

        self._raise_for_status(response)
        return self._json(response)

    # =========================
    # Snapshot Operations
    # =========================

    def upload_snapshot(self, vault_name: str, data: bytes) -> dict[str, Any]:
        """Upload a snapshot archive, replacing any existing one.

        Args:
            vault_name: Vault identity
            data: ZIP archive bytes

        Returns:
            Server response with ``status``, ``message`` and ``downloadUrl``

        Raises:
            TransportError: If the upload fails
        """
        vault_name = validate_vault_name(vault_name)
        files = {
            "vault": (archive_name(vault_name), data, ARCHIVE_CONTENT_TYPE),
        }
        result = self._request(
            "POST", "/upload", params={"vaultName": vault_name}, files=files
        )
        logger.debug(
            "Uploaded snapshot for '%s' (%d bytes): %s",
            vault_name,
            len(data),
            result.get("message"),
        )
        return result

    def get_download_url(self, vault_name: str) -> str:
        """Ask the server for a signed download URL.

        Raises:
            NotFoundError: If no snapshot exists for the vault
            TransportError: If the request fails
        """
        vault_name = validate_vault_name(vault_name)
        result = self._request("GET", f"/download/{vault_name}")
        url = result.get("downloadUrl")
        if not url:
            raise InvalidResponseError(f"No download URL in response: {result}")
        return url

    def fetch_snapshot(self, vault_name: str) -> bytes:
        """Download the current snapshot archive of a vault.

        The signed URL is fetched without the bearer header.

        Args:
            vault_name: Vault identity

        Returns:
            ZIP archive bytes

        Raises:
            NotFoundError: If no snapshot exists for the vault
            TransportError: If the download fails
        """
        url = self.get_download_url(vault_name)
        client = self._get_client()

        try:
            request = client.build_request("GET", url)
            request.headers.pop("Authorization", None)
            response = client.send(request)
        except httpx.RequestError as e:
            raise TransportError(f"Network error during download: {e}") from e

        self._raise_for_status(response)
        logger.debug(
            "Fetched snapshot for '%s' (%d bytes)", vault_name, len(response.content)
        )
        return response.content
