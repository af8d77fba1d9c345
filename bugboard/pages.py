"""Page controllers: data loading and interaction state for each screen.

A controller lives for one request. It fetches what its page needs, turns
failures into notices (rendered as toasts) and never lets an ApiError
escape. Once cancelled (on request teardown) it stops committing state.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Optional

from bugboard.api import BackendApi, BugQuery, LikeTarget
from bugboard.auth import AuthContext, has_token
from bugboard.config import DASHBOARD_LIMIT
from bugboard.errors import ApiError
from bugboard.forms import BugDraft, DraftStore, PendingFile
from bugboard.models import Bug

logger = logging.getLogger(__name__)


@dataclass
class Notice:
    """A transient message for the user (category: "success" or "error")."""

    category: str
    message: str


class CancelToken:
    """Set once the page that owns it has been torn down."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class LikeState:
    """Locally tracked liked flags, keyed by bug id."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._liked: dict[str, bool] = {}

    def is_liked(self, bug_id: str) -> bool:
        return self._liked.get(bug_id, False)

    def set(self, bug_id: str, liked: bool) -> None:
        with self._lock:
            self._liked[bug_id] = liked

    def flip(self, bug_id: str) -> bool:
        """Invert the flag and return its previous value."""
        with self._lock:
            previous = self._liked.get(bug_id, False)
            self._liked[bug_id] = not previous
            return previous


class Page:
    """Base class holding notices and the cancellation token."""

    def __init__(self, api: BackendApi) -> None:
        self.api = api
        self.notices: list[Notice] = []
        self.cancel_token = CancelToken()

    def close(self) -> None:
        self.cancel_token.cancel()

    def _commit(self, **state: Any) -> bool:
        """Apply state changes unless the page has been torn down."""
        if self.cancel_token.cancelled:
            logger.debug("Dropping state update for closed %s", type(self).__name__)
            return False
        for name, value in state.items():
            setattr(self, name, value)
        return True

    def _notify(self, category: str, message: str) -> None:
        if not self.cancel_token.cancelled:
            self.notices.append(Notice(category, message))

    def _fail(self, error: ApiError, message: str) -> None:
        logger.warning("%s: %s", message, error)
        self._notify("error", message)


def _extract(payload: Any, key: str) -> Any:
    """Unwrap ``{"<key>": ...}`` envelopes; bare payloads pass through."""
    if isinstance(payload, dict) and key in payload:
        return payload[key]
    return payload


class DashboardPage(Page):
    """Bug list with free-text search."""

    def __init__(self, api: BackendApi) -> None:
        super().__init__(api)
        self.search_query = ""
        self.bugs: list[Bug] = []

    def load(self, query: Optional[str] = None) -> None:
        """Fetch up to DASHBOARD_LIMIT bugs matching query."""
        query = (query or "").strip()
        self._commit(search_query=query)

        try:
            payload = self.api.bugs.list(BugQuery(q=query or None, limit=DASHBOARD_LIMIT))
        except ApiError as e:
            self._fail(e, "Failed to load bugs")
            self._commit(bugs=[])
            return

        items = _extract(payload, "bugs") or []
        bugs = [Bug.from_dict(item) for item in items if isinstance(item, dict)]
        self._commit(bugs=bugs)

    @property
    def empty_message(self) -> str:
        if self.search_query:
            return "No bugs found matching your search."
        return "No bugs reported yet."


class CreateBugPage(Page):
    """Create-report form backed by the shared draft."""

    def __init__(self, api: BackendApi, drafts: DraftStore) -> None:
        super().__init__(api)
        self.drafts = drafts

    @property
    def draft(self) -> BugDraft:
        return self.drafts.draft

    def update_fields(self, **fields: Optional[str]) -> bool:
        """Copy form fields into the draft. Returns False if a value was rejected."""
        try:
            self.draft.update_fields(**fields)
        except ValueError as e:
            self._notify("error", str(e))
            return False
        return True

    def add_files(self, files: list[PendingFile]) -> None:
        self.draft.add_files(files)

    def remove_file(self, index: int) -> None:
        try:
            self.draft.remove_file(index)
        except IndexError as e:
            self._notify("error", str(e))

    def submit(self) -> bool:
        """Post the draft as a new bug. Returns True on success.

        On failure the draft is left untouched so the user can retry.
        """
        error = self.draft.validate()
        if error:
            self._notify("error", error)
            return False

        fields, files = self.draft.to_multipart()
        try:
            self.api.bugs.create(fields, files)
        except ApiError as e:
            logger.warning("Bug submission failed: %s", e)
            self._notify("error", e.user_message("Failed to submit bug report"))
            return False

        self.drafts.reset()
        self._notify("success", "Bug report submitted successfully.")
        return True


class BugDetailPage(Page):
    """Single bug with like toggling."""

    def __init__(self, api: BackendApi, likes: LikeState) -> None:
        super().__init__(api)
        self.likes = likes
        self.bug: Optional[Bug] = None
        self.bug_id = ""

    @property
    def liked(self) -> bool:
        return self.likes.is_liked(self.bug_id)

    def load(self, bug_id: str) -> None:
        self._commit(bug_id=bug_id)
        try:
            payload = self.api.bugs.get(bug_id)
        except ApiError as e:
            self._fail(e, "Failed to load bug details")
            self._commit(bug=None)
            return

        data = _extract(payload, "bug")
        if not isinstance(data, dict):
            self._commit(bug=None)
            return

        bug = Bug.from_dict(data)
        if self._commit(bug=bug) and bug.liked is not None:
            # The backend's flag is authoritative over the optimistic one
            self.likes.set(bug_id, bug.liked)

    def toggle_like(self, bug_id: str) -> None:
        """Flip the liked flag, send the toggle, then refetch the bug.

        The refetch happens whether or not the toggle succeeded. A failed
        toggle rolls the flag back.
        """
        self._commit(bug_id=bug_id)
        previous = self.likes.flip(bug_id)
        try:
            self.api.likes.toggle(LikeTarget("bug", bug_id))
        except ApiError as e:
            self.likes.set(bug_id, previous)
            self._fail(e, "Failed to update like")
        finally:
            self.load(bug_id)


class LoginPage(Page):
    def __init__(self, api: BackendApi, auth: AuthContext) -> None:
        super().__init__(api)
        self.auth = auth

    def submit(self, email: str, password: str) -> bool:
        if not email or not password:
            self._notify("error", "Email and password are required")
            return False
        try:
            payload = self.api.auth.login(email, password)
            self.auth.login_from_payload(payload)
        except ApiError as e:
            logger.warning("Login failed: %s", e)
            self._notify("error", e.user_message("Invalid email or password"))
            return False
        return True


class SignupPage(Page):
    def __init__(self, api: BackendApi, auth: AuthContext) -> None:
        super().__init__(api)
        self.auth = auth

    def submit(self, name: str, email: str, password: str) -> Optional[str]:
        """Register an account.

        Returns:
            "logged_in" when the backend issued a token, "registered" when the
            user still has to log in, or None on failure.
        """
        if not name or not email or not password:
            self._notify("error", "Name, email and password are required")
            return None
        try:
            payload = self.api.auth.signup(name, email, password)
            if has_token(payload):
                self.auth.login_from_payload(payload)
                self._notify("success", "Account created.")
                return "logged_in"
        except ApiError as e:
            logger.warning("Signup failed: %s", e)
            self._notify("error", e.user_message("Failed to create account"))
            return None

        self._notify("success", "Account created. Please log in.")
        return "registered"


class SettingsPage(Page):
    """API base URL configuration and backend health."""

    def __init__(self, api: BackendApi) -> None:
        super().__init__(api)
        self.base_url = api.client.base_url
        self.healthy: Optional[bool] = None
        self.health_message = ""

    def check_health(self) -> None:
        try:
            self.api.system.health()
        except ApiError as e:
            if e.is_network_error:
                message = f"Cannot reach {self.api.client.base_url}"
            else:
                message = f"Backend responded with status {e.status}"
            self._commit(healthy=False, health_message=message)
            return
        self._commit(healthy=True, health_message="Backend reachable")

    def save_base_url(self, url: str) -> bool:
        try:
            self.api.client.set_base_url(url)
        except ValueError as e:
            self._notify("error", str(e))
            return False
        self._commit(base_url=self.api.client.base_url)
        self._notify("success", "API base URL saved.")
        return True
