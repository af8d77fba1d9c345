"""Form state for the create-report flow."""

import threading
from dataclasses import dataclass, field
from typing import Optional

from bugboard.api import FileTuple
from bugboard.models import Severity

ATTACHMENT_HINT = "PDF, PNG, JPG, GIF up to 10MB"


@dataclass
class PendingFile:
    """A file selected for upload but not yet submitted."""

    filename: str
    content: bytes
    content_type: str = "application/octet-stream"

    @property
    def size_mb(self) -> str:
        """Size in megabytes, formatted with two decimals."""
        return f"{len(self.content) / 1024 / 1024:.2f}"

    def to_upload(self) -> FileTuple:
        return (self.filename, self.content, self.content_type)


@dataclass
class BugDraft:
    """Create-report form state, kept until a submission succeeds."""

    title: str = ""
    description: str = ""
    topic: str = ""
    severity: str = Severity.MEDIUM.value
    attachments: list[PendingFile] = field(default_factory=list)

    def update_fields(
        self,
        title: Optional[str] = None,
        description: Optional[str] = None,
        topic: Optional[str] = None,
        severity: Optional[str] = None,
    ) -> None:
        """Copy submitted text fields into the draft. None leaves a field unchanged."""
        if title is not None:
            self.title = title
        if description is not None:
            self.description = description
        if topic is not None:
            self.topic = topic
        if severity is not None:
            self.severity = Severity.from_string(severity).value

    def add_files(self, files: list[PendingFile]) -> None:
        """Append files after those already selected. Files with no name are skipped."""
        self.attachments.extend(f for f in files if f.filename)

    def remove_file(self, index: int) -> PendingFile:
        """Remove the file at index from the pending list."""
        if index < 0 or index >= len(self.attachments):
            raise IndexError(f"No pending attachment at position {index}")
        return self.attachments.pop(index)

    def validate(self) -> Optional[str]:
        """Return an error message, or None when the draft can be submitted."""
        if not self.title.strip():
            return "Title is required"
        return None

    def to_multipart(self) -> tuple[dict[str, str], list[FileTuple]]:
        """Form fields and files for BugsApi.create, in submission order."""
        fields = {
            "title": self.title,
            "description": self.description,
            "topic": self.topic,
            "severity": self.severity,
        }
        return fields, [f.to_upload() for f in self.attachments]


class DraftStore:
    """Holds the single in-progress draft of the local client.

    Callers hold ``lock`` for the whole of a read-modify-submit sequence.
    It is reentrant so that reset() can run inside such a sequence.
    """

    def __init__(self) -> None:
        self.lock = threading.RLock()
        self._draft = BugDraft()

    @property
    def draft(self) -> BugDraft:
        return self._draft

    def reset(self) -> None:
        with self.lock:
            self._draft = BugDraft()
