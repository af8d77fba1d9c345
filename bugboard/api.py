"""Domain API modules: one class per backend resource.

Each method maps to exactly one REST operation and returns the decoded
backend payload unchanged. Turning failures into user-facing messages is
left to the caller (see ``ApiError.user_message``).
"""

from dataclasses import dataclass
from typing import Any, BinaryIO, List, Optional, Union

from bugboard.client import ApiClient

# (filename, content, content_type) as accepted by httpx multipart uploads
FileTuple = tuple[str, Union[bytes, BinaryIO], str]


@dataclass
class BugQuery:
    """Filters for listing bugs. Unset fields are not sent.

    Attributes:
        topic: Only bugs whose topic matches.
        q: Free-text search over title, description and topic.
        limit: Maximum number of bugs to return.
    """

    topic: Optional[str] = None
    q: Optional[str] = None
    limit: Optional[int] = None

    def to_params(self) -> dict[str, Any]:
        params: dict[str, Any] = {}
        if self.topic:
            params["topic"] = self.topic
        if self.q:
            params["q"] = self.q
        if self.limit is not None:
            params["limit"] = self.limit
        return params


@dataclass
class CommentInput:
    """Body of a new comment; parent_comment_id makes it a reply."""

    text: str
    parent_comment_id: Optional[str] = None

    def to_json(self) -> dict[str, Any]:
        body: dict[str, Any] = {"text": self.text}
        if self.parent_comment_id:
            body["parent_comment_id"] = self.parent_comment_id
        return body


@dataclass
class LikeTarget:
    """What a like toggles: target_type is "bug" or "comment"."""

    target_type: str
    target_id: str

    def to_json(self) -> dict[str, Any]:
        return {"target_type": self.target_type, "target_id": self.target_id}


class SystemApi:
    def __init__(self, client: ApiClient) -> None:
        self.client = client

    def health(self) -> Any:
        return self.client.get("/health")


class AuthApi:
    def __init__(self, client: ApiClient) -> None:
        self.client = client

    def signup(self, name: str, email: str, password: str) -> Any:
        """Register a new account. The payload normally carries token and user."""
        return self.client.post(
            "/auth/signup", json={"name": name, "email": email, "password": password}
        )

    def login(self, email: str, password: str) -> Any:
        """Exchange credentials for a token and user profile."""
        return self.client.post("/auth/login", json={"email": email, "password": password})


class BugsApi:
    def __init__(self, client: ApiClient) -> None:
        self.client = client

    def list(self, query: Optional[BugQuery] = None) -> Any:
        query = query or BugQuery()
        return self.client.get("/bugs", params=query.to_params())

    def get(self, bug_id: str) -> Any:
        return self.client.get(f"/bugs/{bug_id}")

    def create(self, fields: dict[str, str], files: Optional[List[FileTuple]] = None) -> Any:
        """Create a bug from multipart form data.

        Args:
            fields: Text form fields (title, description, topic, severity).
            files: Attachments, each sent as a separate "attachments" part.
        """
        parts = [("attachments", f) for f in files or []]
        if parts:
            return self.client.post("/bugs", data=fields, files=parts)
        # httpx only switches to multipart when files are present
        return self.client.post("/bugs", files=[(name, (None, value)) for name, value in fields.items()])

    def update(self, bug_id: str, partial: dict[str, Any]) -> Any:
        return self.client.put(f"/bugs/{bug_id}", json=partial)

    def delete(self, bug_id: str) -> Any:
        return self.client.delete(f"/bugs/{bug_id}")


class CommentsApi:
    def __init__(self, client: ApiClient) -> None:
        self.client = client

    def add(self, bug_id: str, comment: CommentInput) -> Any:
        return self.client.post(f"/comments/{bug_id}", json=comment.to_json())

    def delete(self, comment_id: str) -> Any:
        return self.client.delete(f"/comments/{comment_id}")


class LikesApi:
    def __init__(self, client: ApiClient) -> None:
        self.client = client

    def toggle(self, target: LikeTarget) -> Any:
        return self.client.post("/likes", json=target.to_json())


class BackendApi:
    """All resource modules over one shared ApiClient."""

    def __init__(self, client: ApiClient) -> None:
        self.client = client
        self.system = SystemApi(client)
        self.auth = AuthApi(client)
        self.bugs = BugsApi(client)
        self.comments = CommentsApi(client)
        self.likes = LikesApi(client)

    def close(self) -> None:
        self.client.close()
