"""Data models and enums for Bugboard."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from urllib.parse import urljoin

DEFAULT_STATUS = "open"


class Severity(Enum):
    """Severity levels for bug reports."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @classmethod
    def from_string(cls, value: str) -> "Severity":
        """Create Severity from string value."""
        try:
            return cls(value.lower())
        except (ValueError, AttributeError):
            raise ValueError(
                f"Invalid severity: {value}. Must be one of: {', '.join([s.value for s in cls])}"
            ) from None

    @classmethod
    def coerce(cls, value: Any) -> "Severity":
        """Lenient variant of from_string: unknown or missing values become MEDIUM."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        return cls.MEDIUM


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp from the backend, or return None."""
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


@dataclass
class User:
    """Represents the signed-in user's profile."""

    id: Optional[str] = field(default=None)
    name: str = field(default="")
    email: str = field(default="")

    def to_dict(self) -> dict[str, Any]:
        """Convert user to dictionary for JSON serialization."""
        return {"id": self.id, "name": self.name, "email": self.email}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "User":
        """Create User from dictionary."""
        user_id = data.get("user_id", data.get("id"))
        return cls(
            id=str(user_id) if user_id is not None else None,
            name=data.get("name") or "",
            email=data.get("email") or "",
        )


@dataclass
class Attachment:
    """Represents a file attached to a bug report."""

    filename: str = field(default="")
    url: str = field(default="")

    def resolve_url(self, base_url: str) -> str:
        """Return an absolute download URL, resolving relative paths against base_url."""
        if not self.url:
            return ""
        return urljoin(base_url.rstrip("/") + "/", self.url)

    def to_dict(self) -> dict[str, Any]:
        return {"filename": self.filename, "url": self.url}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Attachment":
        return cls(filename=data.get("filename") or "", url=data.get("url") or "")


@dataclass
class Comment:
    """Represents a comment on a bug report."""

    id: Optional[str] = field(default=None)
    text: str = field(default="")
    user_name: Optional[str] = field(default=None)
    parent_comment_id: Optional[str] = field(default=None)
    created_at: Optional[datetime] = field(default=None)

    def to_dict(self) -> dict[str, Any]:
        """Convert comment to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "text": self.text,
            "user_name": self.user_name,
            "parent_comment_id": self.parent_comment_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Comment":
        """Create Comment from dictionary."""
        comment_id = data.get("comment_id", data.get("id"))
        return cls(
            id=str(comment_id) if comment_id is not None else None,
            text=data.get("text") or "",
            user_name=data.get("user_name"),
            parent_comment_id=data.get("parent_comment_id"),
            created_at=parse_timestamp(data.get("created_at")),
        )


@dataclass
class Bug:
    """Represents a bug report as returned by the backend."""

    id: str = field(default="")
    title: str = field(default="")
    description: str = field(default="")
    topic: str = field(default="")
    severity: Severity = field(default=Severity.MEDIUM)
    status: str = field(default=DEFAULT_STATUS)
    user_id: Optional[str] = field(default=None)
    user_name: Optional[str] = field(default=None)
    created_at: Optional[datetime] = field(default=None)
    likes_count: int = field(default=0)
    attachments: list[Attachment] = field(default_factory=list)
    comments: list[Comment] = field(default_factory=list)
    liked: Optional[bool] = field(default=None)  # only when the backend reports it

    def to_dict(self) -> dict[str, Any]:
        """Convert bug to dictionary for JSON serialization."""
        result: dict[str, Any] = {
            "bug_id": self.id,
            "title": self.title,
            "description": self.description,
            "topic": self.topic,
            "severity": self.severity.value,
            "status": self.status,
            "user_id": self.user_id,
            "user_name": self.user_name,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "likes_count": self.likes_count,
            "attachments": [a.to_dict() for a in self.attachments],
            "comments": [c.to_dict() for c in self.comments],
        }
        if self.liked is not None:
            result["liked"] = self.liked
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Bug":
        """Create Bug from a backend payload.

        Missing or unknown severity becomes medium and a missing status
        becomes open; neither is treated as an error.
        """
        bug = cls()
        bug_id = data.get("bug_id", data.get("id"))
        bug.id = str(bug_id) if bug_id is not None else ""
        bug.title = data.get("title") or ""
        bug.description = data.get("description") or ""
        bug.topic = data.get("topic") or ""
        bug.severity = Severity.coerce(data.get("severity"))
        bug.status = data.get("status") or DEFAULT_STATUS

        if data.get("user_id") is not None:
            bug.user_id = str(data["user_id"])
        bug.user_name = data.get("user_name")
        bug.created_at = parse_timestamp(data.get("created_at"))

        try:
            bug.likes_count = int(data.get("likes_count") or 0)
        except (TypeError, ValueError):
            bug.likes_count = 0

        if isinstance(data.get("attachments"), list):
            bug.attachments = [
                Attachment.from_dict(a) for a in data["attachments"] if isinstance(a, dict)
            ]

        if isinstance(data.get("comments"), list):
            bug.comments = [Comment.from_dict(c) for c in data["comments"] if isinstance(c, dict)]

        for key in ("liked", "liked_by_user"):
            if isinstance(data.get(key), bool):
                bug.liked = data[key]
                break

        return bug
