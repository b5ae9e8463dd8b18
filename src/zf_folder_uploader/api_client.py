"""Zenfolio API client with retry logic using httpx for async HTTP calls."""

import itertools
import logging
from typing import Any, Protocol

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from zf_folder_uploader import __version__
from zf_folder_uploader.models import GallerySnapshot, PhotoRecord

logger = logging.getLogger(__name__)

# Zenfolio JSON-RPC endpoint
DEFAULT_API_URL = "https://api.zenfolio.com/api/1.8/zfapi.asmx"

TOKEN_HEADER = "X-Zenfolio-Token"
USER_AGENT = f"zf-folder-uploader/{__version__}"

# API error codes meaning the session token is missing, expired or rejected
AUTH_ERROR_CODES = {"E_NOTAUTHENTICATED", "E_INVALIDCREDENTIALS", "E_ACCOUNTLOCKED"}


class ZenfolioAPIError(Exception):
    """Base exception for Zenfolio API errors."""

    pass


class AuthenticationError(ZenfolioAPIError):
    """Exception raised when credentials or the session token are rejected."""

    pass


class ServerError(ZenfolioAPIError):
    """Exception raised for 5xx server errors and network failures."""

    pass


class RemoteGalleryClient(Protocol):
    """Capability interface the orchestrator and uploader depend on."""

    @property
    def token(self) -> str | None: ...

    @property
    def http(self) -> httpx.AsyncClient: ...

    async def login(self, username: str, password: str) -> bool: ...

    async def load_photo_set(
        self, photo_set_id: int, level: str = "Level1", include_photos: bool = True
    ) -> GallerySnapshot: ...

    async def collection_add_photo(self, collection_id: int, photo_id: str) -> None: ...


class ZenfolioAPIClient:
    """Client for the Zenfolio JSON-RPC API using httpx."""

    def __init__(self, api_url: str = DEFAULT_API_URL, timeout: float = 30.0) -> None:
        """Initialize Zenfolio API client.

        Args:
            api_url: JSON-RPC endpoint URL
            timeout: Transport timeout in seconds for every request
        """
        self.api_url = api_url
        self.timeout = timeout
        self._token: str | None = None
        self._client: httpx.AsyncClient | None = None
        self._ids = itertools.count(1)

    async def __aenter__(self) -> "ZenfolioAPIClient":
        """Async context manager entry."""
        self._client = httpx.AsyncClient(
            timeout=self.timeout, headers={"User-Agent": USER_AGENT}
        )
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Async context manager exit."""
        if self._client:
            await self._client.aclose()
        self._client = None

    @property
    def http(self) -> httpx.AsyncClient:
        """Get the httpx AsyncClient instance.

        Returns:
            The httpx.AsyncClient instance

        Raises:
            RuntimeError: If client is used outside of async context manager
        """
        if self._client is None:
            raise RuntimeError("Client must be used within async context manager")
        return self._client

    @property
    def token(self) -> str | None:
        """Session token acquired at login, None before login."""
        return self._token

    async def login(self, username: str, password: str) -> bool:
        """Authenticate and store the session token.

        Args:
            username: Account login name
            password: Account password

        Returns:
            True if login succeeded, False if the credentials were rejected

        Raises:
            ServerError: If the server or network fails
        """
        try:
            token = await self._call("AuthenticatePlain", username, password)
        except AuthenticationError as e:
            logger.warning(f"Login rejected for '{username}': {e}")
            return False

        if not token:
            logger.warning(f"Login for '{username}' returned no token")
            return False

        self._token = str(token)
        logger.info(f"Logged in as '{username}'")
        return True

    @retry(
        retry=retry_if_exception_type(ServerError),
        wait=wait_exponential(multiplier=1, min=1, max=60),
        stop=stop_after_attempt(5),
        reraise=True,
    )
    async def load_photo_set(
        self, photo_set_id: int, level: str = "Level1", include_photos: bool = True
    ) -> GallerySnapshot:
        """Load a gallery and its photo listing.

        Args:
            photo_set_id: Gallery ID
            level: Information level of the returned projection
            include_photos: Whether to include the photo listing

        Returns:
            Gallery snapshot

        Raises:
            ZenfolioAPIError: If loading fails
            AuthenticationError: If the session token is rejected
            ServerError: If server error persists after retries
        """
        result = await self._call("LoadPhotoSet", photo_set_id, level, include_photos)
        if not isinstance(result, dict):
            raise ZenfolioAPIError(f"Gallery {photo_set_id} not found")

        photos: list[PhotoRecord] = []
        seen: set[str] = set()
        for photo in result.get("Photos") or []:
            file_name = photo.get("FileName")
            if not file_name or file_name in seen:
                logger.debug(f"Ignoring duplicate or unnamed remote photo: {photo!r}")
                continue
            seen.add(file_name)
            photo_id = photo.get("Id")
            photos.append(
                PhotoRecord(
                    file_name=file_name,
                    photo_id=str(photo_id) if photo_id is not None else None,
                )
            )

        snapshot = GallerySnapshot(
            gallery_id=int(result.get("Id", photo_set_id)),
            title=result.get("Title") or "",
            upload_url=result.get("UploadUrl") or "",
            photos=photos,
        )
        logger.info(
            f"Loaded gallery '{snapshot.title}' with {len(snapshot.photos)} photo(s)"
        )
        return snapshot

    async def collection_add_photo(self, collection_id: int, photo_id: str) -> None:
        """Add an uploaded photo to a collection.

        Args:
            collection_id: Collection ID
            photo_id: Photo ID returned by the upload

        Raises:
            ZenfolioAPIError: If the call fails
        """
        await self._call("CollectionAddPhoto", collection_id, int(photo_id))
        logger.debug(f"Added photo {photo_id} to collection {collection_id}")

    async def _call(self, method: str, *params: Any) -> Any:
        """Perform a JSON-RPC call.

        Args:
            method: API method name
            *params: Positional method parameters

        Returns:
            The call's result value

        Raises:
            AuthenticationError: If authentication is required or rejected
            ServerError: If server or network error occurs
            ZenfolioAPIError: For other API errors
        """
        payload = {"method": method, "params": list(params), "id": next(self._ids)}
        headers = {TOKEN_HEADER: self._token} if self._token else {}

        try:
            response = await self.http.post(self.api_url, json=payload, headers=headers)
        except httpx.RequestError as e:
            logger.warning(f"Network error while calling {method}: {e}")
            raise ServerError(f"Network error: {e}") from e

        body = self._parse_json_response(response, method)
        if body.get("error") or response.status_code >= 400:
            self._handle_error_response(response.status_code, body, method)

        return body.get("result")

    def _parse_json_response(
        self, response: httpx.Response, context: str
    ) -> dict[str, Any]:
        """Parse JSON response, handling non-JSON responses gracefully.

        Args:
            response: The httpx Response object
            context: Name of the API method that was called

        Returns:
            Parsed JSON as a dictionary

        Raises:
            ServerError: If response is 5xx with non-JSON body
            ZenfolioAPIError: If response has invalid JSON for non-5xx status
        """
        try:
            body = response.json()
        except ValueError:
            if response.status_code >= 500:
                logger.warning(f"Server returned non-JSON response to {context}")
                raise ServerError(
                    f"Server error {response.status_code}: {response.text[:200]}"
                )
            raise ZenfolioAPIError(
                f"Invalid API response to {context}: {response.text[:200]}"
            )
        if not isinstance(body, dict):
            raise ZenfolioAPIError(f"Invalid API response to {context}: {body!r}")
        return body

    def _handle_error_response(
        self, status_code: int, body: dict[str, Any], context: str
    ) -> None:
        """Handle error responses from the API.

        Args:
            status_code: HTTP status code
            body: Response JSON body
            context: Name of the API method that failed

        Raises:
            AuthenticationError: If authentication failed
            ServerError: If server error occurs
            ZenfolioAPIError: For other API errors
        """
        error = body.get("error") or {}
        error_code = error.get("code")
        error_message = error.get("message", str(body))

        if error_code in AUTH_ERROR_CODES or status_code in (401, 403):
            raise AuthenticationError(f"{context} not authorized: {error_message}")

        if error_code is None and status_code >= 500:
            logger.warning(f"Server error {status_code} while calling {context}")
            raise ServerError(f"Zenfolio API server error: {error_message}")

        error_msg = f"Zenfolio API error in {context}: {error_message}"
        logger.error(error_msg)
        raise ZenfolioAPIError(error_msg)
