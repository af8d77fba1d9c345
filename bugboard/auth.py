"""Session state for the signed-in user."""

import logging
from typing import Any, Optional

from bugboard.config import TOKEN_KEY, USER_KEY
from bugboard.errors import ApiError, NotAuthenticatedError
from bugboard.models import User
from bugboard.storage import LocalStorage

logger = logging.getLogger(__name__)


class AuthContext:
    """Owns the current session (user + bearer token).

    State is restored from storage on construction and only changes through
    login() and logout(). A user is never held without a persisted token.
    """

    def __init__(self, storage: LocalStorage) -> None:
        self.storage = storage
        self._user: Optional[User] = None
        self._token: Optional[str] = None
        self.restore()

    @property
    def user(self) -> Optional[User]:
        return self._user

    @property
    def token(self) -> Optional[str]:
        return self._token

    @property
    def is_authenticated(self) -> bool:
        return self._user is not None and bool(self._token)

    def restore(self) -> None:
        """Load the session persisted by a previous run."""
        token = self.storage.get_item(TOKEN_KEY)
        user_data = self.storage.get_item(USER_KEY)

        if token and isinstance(user_data, dict):
            self._token = token
            self._user = User.from_dict(user_data)
            return

        if user_data is not None and not token:
            # Orphaned profile from an interrupted logout
            self.storage.remove_item(USER_KEY)

        self._token = token or None
        self._user = None

    def login(self, token: str, user: User) -> None:
        """Persist credentials and make them the active session."""
        if not token:
            raise ValueError("Cannot log in without a token")

        # Token first: a stored user must always have a stored token
        self.storage.set_item(TOKEN_KEY, token)
        self.storage.set_item(USER_KEY, user.to_dict())
        self._token = token
        self._user = user
        logger.info("Logged in as %s", user.email or user.name)

    def logout(self) -> None:
        """Forget the session."""
        self.storage.remove_item(USER_KEY)
        self.storage.remove_item(TOKEN_KEY)
        self._user = None
        self._token = None
        logger.info("Logged out")

    def require_user(self) -> User:
        """Return the current user or raise NotAuthenticatedError."""
        if not self.is_authenticated or self._user is None:
            raise NotAuthenticatedError("Not logged in. Run 'bugboard-cli login' first.")
        return self._user

    def login_from_payload(self, payload: Any) -> User:
        """Start a session from an auth endpoint payload.

        Accepts ``{"token": ..., "user": {...}}`` (``access_token`` is also
        recognized).

        Raises:
            ApiError: If the payload carries no token.
        """
        token = None
        user_data: Any = None
        if isinstance(payload, dict):
            token = payload.get("token") or payload.get("access_token")
            user_data = payload.get("user")

        if not token:
            raise ApiError("Backend response did not include an auth token", payload=payload)

        user = User.from_dict(user_data) if isinstance(user_data, dict) else User()
        self.login(token, user)
        return user


def has_token(payload: Any) -> bool:
    """True if an auth payload carries a token."""
    return isinstance(payload, dict) and bool(payload.get("token") or payload.get("access_token"))
