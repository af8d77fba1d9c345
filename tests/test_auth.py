"""Tests for the session lifecycle."""

import pytest

from bugboard.auth import AuthContext, has_token
from bugboard.config import TOKEN_KEY, USER_KEY
from bugboard.errors import ApiError, NotAuthenticatedError
from bugboard.models import User


class TestAuthContext:
    """Test AuthContext class."""

    def test_starts_logged_out(self, storage):
        auth = AuthContext(storage)
        assert auth.user is None
        assert auth.token is None
        assert not auth.is_authenticated

    def test_restores_persisted_session(self, logged_in):
        auth = AuthContext(logged_in)
        assert auth.is_authenticated
        assert auth.token == "tok-123"
        assert auth.user == User(id="u1", name="Ada", email="ada@example.com")

    def test_login_persists_token_and_user(self, storage):
        auth = AuthContext(storage)
        auth.login("tok-9", User(id="u2", name="Bob", email="bob@example.com"))

        assert auth.is_authenticated
        assert storage.get_item(TOKEN_KEY) == "tok-9"
        assert storage.get_item(USER_KEY)["email"] == "bob@example.com"
        assert AuthContext(storage).user.name == "Bob"

    def test_login_requires_token(self, storage):
        auth = AuthContext(storage)
        with pytest.raises(ValueError):
            auth.login("", User(name="Bob"))
        assert storage.get_item(USER_KEY) is None

    def test_logout_clears_everything(self, logged_in):
        auth = AuthContext(logged_in)
        auth.logout()

        assert not auth.is_authenticated
        assert auth.user is None
        assert logged_in.get_item(TOKEN_KEY) is None
        assert logged_in.get_item(USER_KEY) is None

    def test_orphaned_user_is_dropped(self, storage):
        storage.set_item(USER_KEY, {"id": "u1", "name": "Ada"})

        auth = AuthContext(storage)

        assert auth.user is None
        assert not auth.is_authenticated
        assert storage.get_item(USER_KEY) is None

    def test_token_without_user_is_not_a_session(self, storage):
        storage.set_item(TOKEN_KEY, "tok-1")
        auth = AuthContext(storage)
        assert auth.token == "tok-1"
        assert not auth.is_authenticated

    def test_require_user(self, storage, logged_in):
        assert AuthContext(logged_in).require_user().name == "Ada"

        AuthContext(logged_in).logout()
        with pytest.raises(NotAuthenticatedError, match="Not logged in"):
            AuthContext(storage).require_user()


class TestLoginFromPayload:
    def test_token_and_user(self, storage):
        auth = AuthContext(storage)
        user = auth.login_from_payload(
            {"token": "tok-5", "user": {"user_id": "u5", "name": "Cy", "email": "cy@example.com"}}
        )
        assert user.id == "u5"
        assert auth.token == "tok-5"
        assert auth.is_authenticated

    def test_access_token_key(self, storage):
        auth = AuthContext(storage)
        auth.login_from_payload({"access_token": "tok-6", "user": {"name": "Di"}})
        assert auth.token == "tok-6"

    @pytest.mark.parametrize("payload", [{}, {"user": {"name": "x"}}, None, "ok"])
    def test_missing_token(self, storage, payload):
        auth = AuthContext(storage)
        with pytest.raises(ApiError, match="auth token"):
            auth.login_from_payload(payload)
        assert not auth.is_authenticated
        assert storage.get_item(TOKEN_KEY) is None


def test_has_token():
    assert has_token({"token": "t"})
    assert has_token({"access_token": "t"})
    assert not has_token({"message": "created"})
    assert not has_token(None)
