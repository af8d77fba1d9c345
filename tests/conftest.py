"""Shared fixtures: a recording fake backend and temporary client storage."""

from typing import Any, Callable, Optional, Union

import httpx
import pytest
from werkzeug.datastructures import FileStorage, MultiDict
from werkzeug.formparser import parse_form_data
from werkzeug.test import EnvironBuilder

from bugboard.config import BASE_URL_KEY, TOKEN_KEY, USER_KEY
from bugboard.storage import LocalStorage

API_URL = "http://api.test"

Route = Union[tuple[int, Any], Callable[[httpx.Request], httpx.Response]]


class FakeBackend:
    """In-memory stand-in for the REST backend that records every request."""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Route] = {}
        self.requests: list[httpx.Request] = []

    def add(
        self,
        method: str,
        path: str,
        body: Any = None,
        status: int = 200,
        handler: Optional[Callable[[httpx.Request], httpx.Response]] = None,
    ) -> None:
        self.routes[(method, path)] = handler if handler else (status, body)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"message": "Not found"})
        if callable(route):
            return route(request)
        status, body = route
        if body is None:
            return httpx.Response(status)
        return httpx.Response(status, json=body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    def calls(self, method: Optional[str] = None, path: Optional[str] = None) -> list[httpx.Request]:
        return [
            r
            for r in self.requests
            if (method is None or r.method == method) and (path is None or r.url.path == path)
        ]


def parse_multipart(request: httpx.Request) -> tuple[MultiDict, MultiDict]:
    """Decode a multipart request body into (form, files)."""
    builder = EnvironBuilder(
        method="POST",
        data=request.content,
        content_type=request.headers["Content-Type"],
    )
    _, form, files = parse_form_data(builder.get_environ())
    return form, files


def file_names(files: MultiDict) -> list[str]:
    uploads: list[FileStorage] = files.getlist("attachments")
    return [f.filename for f in uploads]


@pytest.fixture
def storage(tmp_path) -> LocalStorage:
    """Client storage in a temporary directory, pointed at the fake API."""
    store = LocalStorage(str(tmp_path / "storage.json"))
    store.set_item(BASE_URL_KEY, API_URL)
    return store


@pytest.fixture
def logged_in(storage: LocalStorage) -> LocalStorage:
    """Storage holding an active session."""
    storage.set_item(TOKEN_KEY, "tok-123")
    storage.set_item(USER_KEY, {"id": "u1", "name": "Ada", "email": "ada@example.com"})
    return storage


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()
