"""Exception types for Bugboard."""

from typing import Any, Optional

import httpx


class BugboardError(Exception):
    """Base class for errors raised by bugboard."""


class NotAuthenticatedError(BugboardError):
    """Raised when a guarded operation runs without an active session."""


class ApiError(BugboardError):
    """A failed backend call.

    ``status`` is None for network/transport failures and the HTTP status code
    for backend-reported failures. ``payload`` holds the decoded response
    body when there was one.
    """

    def __init__(
        self,
        description: str,
        status: Optional[int] = None,
        payload: Optional[Any] = None,
    ) -> None:
        super().__init__(description)
        self.status = status
        self.payload = payload

    @property
    def is_network_error(self) -> bool:
        return self.status is None

    @property
    def message(self) -> Optional[str]:
        """Human-readable message reported by the backend, if any."""
        if not isinstance(self.payload, dict):
            return None
        for key in ("message", "detail", "error"):
            value = self.payload.get(key)
            if isinstance(value, dict):
                value = value.get("message")
            if isinstance(value, str) and value:
                return value
        return None

    def user_message(self, fallback: str) -> str:
        """Backend message when present, otherwise fallback."""
        return self.message or fallback

    @classmethod
    def from_response(cls, response: httpx.Response) -> "ApiError":
        """Build an error from a non-2xx response."""
        try:
            payload: Any = response.json()
        except ValueError:
            payload = response.text or None

        error = cls(
            f"{response.request.method} {response.request.url.path} "
            f"failed with status {response.status_code}",
            status=response.status_code,
            payload=payload,
        )
        if error.message:
            error.args = (f"{error.args[0]}: {error.message}",)
        return error

    @classmethod
    def from_transport(cls, exc: Exception) -> "ApiError":
        """Build an error from a network/transport failure."""
        return cls(f"Cannot reach backend: {exc}")
