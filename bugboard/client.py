"""HTTP client wrapper for the bug-tracking backend."""

import logging
from typing import Any, Optional

import httpx

from bugboard.config import BASE_URL_KEY, TOKEN_KEY, fallback_api_url
from bugboard.errors import ApiError
from bugboard.storage import LocalStorage

logger = logging.getLogger(__name__)

# Requests are built against this origin and re-targeted in the request hook
_PLACEHOLDER_ORIGIN = "http://bugboard.invalid"

# Credential endpoints never carry a bearer token
_UNAUTHENTICATED_PREFIXES = ("/auth/",)


class ApiClient:
    """Thin wrapper around httpx.Client.

    Every outgoing request is rewritten just before it is sent: it is pointed
    at the base URL currently saved in storage and, when a token is stored,
    given an ``Authorization: Bearer`` header. Nothing is cached between
    requests.
    """

    def __init__(
        self,
        storage: LocalStorage,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        """Initialize the client.

        Args:
            storage: Persisted storage holding the token and base URL.
            transport: Optional httpx transport (tests pass a MockTransport).
        """
        self.storage = storage
        self._http = httpx.Client(
            base_url=_PLACEHOLDER_ORIGIN,
            transport=transport,
            event_hooks={"request": [self._prepare_request]},
        )

    @property
    def base_url(self) -> str:
        """Currently configured API base URL."""
        return self.storage.get_item(BASE_URL_KEY) or fallback_api_url()

    def set_base_url(self, url: str) -> None:
        """Persist a new API base URL."""
        url = url.strip()
        if not url.startswith(("http://", "https://")):
            raise ValueError(f"Invalid base URL: {url}. Must start with http:// or https://")
        self.storage.set_item(BASE_URL_KEY, url.rstrip("/"))

    def _prepare_request(self, request: httpx.Request) -> None:
        """Request hook: apply the current base URL and bearer token."""
        path = request.url.raw_path.decode("ascii")

        target = httpx.URL(self.base_url.rstrip("/") + path)
        request.url = target
        request.headers["Host"] = target.netloc.decode("ascii")

        token = self.storage.get_item(TOKEN_KEY)
        if token and not path.startswith(_UNAUTHENTICATED_PREFIXES):
            request.headers["Authorization"] = f"Bearer {token}"

        logger.debug("%s %s", request.method, target)

    def request(self, method: str, path: str, **kwargs: Any) -> Any:
        """Send a request and return the decoded response body.

        Args:
            method: HTTP method.
            path: Path relative to the API base URL (e.g. "/bugs").
            **kwargs: Passed through to httpx (params, json, data, files).

        Returns:
            Decoded JSON body, the raw text for non-JSON bodies, or None when empty.

        Raises:
            ApiError: On transport failure or a non-2xx response.
        """
        try:
            response = self._http.request(method, path, **kwargs)
        except (httpx.RequestError, httpx.InvalidURL) as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise ApiError.from_transport(e) from e

        if response.is_error:
            error = ApiError.from_response(response)
            logger.warning("%s", error)
            raise error

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    def get(self, path: str, **kwargs: Any) -> Any:
        return self.request("GET", path, **kwargs)

    def post(self, path: str, **kwargs: Any) -> Any:
        return self.request("POST", path, **kwargs)

    def put(self, path: str, **kwargs: Any) -> Any:
        return self.request("PUT", path, **kwargs)

    def delete(self, path: str, **kwargs: Any) -> Any:
        return self.request("DELETE", path, **kwargs)

    def close(self) -> None:
        self._http.close()
