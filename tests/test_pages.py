"""Tests for the page controllers."""

import httpx
import pytest

from bugboard.api import BackendApi
from bugboard.auth import AuthContext
from bugboard.client import ApiClient
from bugboard.forms import DraftStore, PendingFile
from bugboard.pages import (
    BugDetailPage,
    CreateBugPage,
    DashboardPage,
    LikeState,
    LoginPage,
    Notice,
    SettingsPage,
    SignupPage,
)

from conftest import file_names, parse_multipart

BUG = {
    "bug_id": "b1",
    "title": "Login fails",
    "severity": "high",
    "likes_count": 2,
}


@pytest.fixture
def api(logged_in, backend):
    return BackendApi(ApiClient(logged_in, transport=backend.transport))


class TestDashboardPage:
    def test_load_sends_search_and_limit(self, api, backend):
        backend.add("GET", "/bugs", {"bugs": [BUG]})
        page = DashboardPage(api)

        page.load("  login  ")

        params = backend.requests[0].url.params
        assert params["q"] == "login"
        assert params["limit"] == "50"
        assert page.search_query == "login"
        assert [b.id for b in page.bugs] == ["b1"]
        assert page.notices == []

    def test_load_without_search(self, api, backend):
        backend.add("GET", "/bugs", [BUG])
        page = DashboardPage(api)

        page.load()

        assert "q" not in backend.requests[0].url.params
        assert len(page.bugs) == 1

    def test_empty_messages(self, api, backend):
        backend.add("GET", "/bugs", {"bugs": []})

        page = DashboardPage(api)
        page.load("")
        assert page.empty_message == "No bugs reported yet."

        page = DashboardPage(api)
        page.load("nothing-matches")
        assert page.empty_message == "No bugs found matching your search."

    def test_failure_shows_notice(self, api, backend):
        backend.add("GET", "/bugs", {"message": "db down"}, status=500)
        page = DashboardPage(api)

        page.load("x")

        assert page.bugs == []
        assert page.notices == [Notice("error", "Failed to load bugs")]

    def test_closed_page_ignores_results(self, api, backend):
        backend.add("GET", "/bugs", {"bugs": [BUG]})
        page = DashboardPage(api)
        page.close()

        page.load("login")

        assert page.bugs == []
        assert page.search_query == ""


class TestCreateBugPage:
    def test_submit_success_resets_draft(self, api, backend):
        backend.add("POST", "/bugs", {"bug": BUG}, status=201)
        drafts = DraftStore()
        page = CreateBugPage(api, drafts)
        page.update_fields(title="Crash", description=None, topic=None, severity=None)
        page.add_files([PendingFile("a.txt", b"a"), PendingFile("b.txt", b"b")])
        page.remove_file(0)

        assert page.submit()

        form, files = parse_multipart(backend.calls("POST", "/bugs")[0])
        assert form["title"] == "Crash"
        assert form["description"] == ""
        assert form["topic"] == ""
        assert form["severity"] == "medium"
        assert file_names(files) == ["b.txt"]
        assert drafts.draft.title == ""
        assert drafts.draft.attachments == []
        assert page.notices == [Notice("success", "Bug report submitted successfully.")]

    def test_submit_failure_keeps_draft(self, api, backend):
        backend.add("POST", "/bugs", {"message": "Attachment too large"}, status=413)
        drafts = DraftStore()
        page = CreateBugPage(api, drafts)
        page.update_fields(title="Crash", topic="UI")
        page.add_files([PendingFile("big.bin", b"0" * 10)])

        assert not page.submit()

        assert drafts.draft.title == "Crash"
        assert drafts.draft.topic == "UI"
        assert [f.filename for f in drafts.draft.attachments] == ["big.bin"]
        assert page.notices == [Notice("error", "Attachment too large")]

    def test_submit_failure_without_message(self, api, backend):
        backend.add("POST", "/bugs", handler=lambda r: httpx.Response(500))
        page = CreateBugPage(api, DraftStore())
        page.update_fields(title="Crash")

        assert not page.submit()
        assert page.notices == [Notice("error", "Failed to submit bug report")]

    def test_missing_title_not_sent(self, api, backend):
        page = CreateBugPage(api, DraftStore())
        page.update_fields(title="  ")

        assert not page.submit()
        assert backend.requests == []
        assert page.notices == [Notice("error", "Title is required")]

    def test_invalid_severity_and_index_become_notices(self, api):
        page = CreateBugPage(api, DraftStore())
        assert page.update_fields(title="Crash") is True
        assert page.update_fields(severity="urgent") is False
        page.remove_file(4)

        assert page.draft.severity == "medium"
        assert [n.category for n in page.notices] == ["error", "error"]


class TestBugDetailPage:
    def test_load(self, api, backend):
        backend.add("GET", "/bugs/b1", {"bug": BUG})
        page = BugDetailPage(api, LikeState())

        page.load("b1")

        assert page.bug.title == "Login fails"
        assert page.liked is False

    def test_load_failure(self, api, backend):
        page = BugDetailPage(api, LikeState())

        page.load("missing")

        assert page.bug is None
        assert page.notices == [Notice("error", "Failed to load bug details")]

    def test_toggle_like_flips_and_refetches(self, api, backend):
        backend.add("POST", "/likes", {"liked": True})
        backend.add("GET", "/bugs/b1", {"bug": dict(BUG, likes_count=3)})
        likes = LikeState()
        page = BugDetailPage(api, likes)

        page.toggle_like("b1")

        assert [r.method for r in backend.requests] == ["POST", "GET"]
        assert page.liked is True
        assert page.bug.likes_count == 3

        page.toggle_like("b1")
        assert page.liked is False

    def test_toggle_failure_rolls_back_and_still_refetches(self, api, backend):
        backend.add("POST", "/likes", {"message": "nope"}, status=500)
        backend.add("GET", "/bugs/b1", {"bug": BUG})
        page = BugDetailPage(api, LikeState())

        page.toggle_like("b1")

        assert [r.url.path for r in backend.requests] == ["/likes", "/bugs/b1"]
        assert page.liked is False
        assert page.bug.likes_count == 2
        assert page.notices == [Notice("error", "Failed to update like")]

    def test_server_flag_overrides_local_flag(self, api, backend):
        backend.add("POST", "/likes", {})
        backend.add("GET", "/bugs/b1", {"bug": dict(BUG, liked_by_user=False)})
        likes = LikeState()
        page = BugDetailPage(api, likes)

        page.toggle_like("b1")

        assert likes.is_liked("b1") is False


class TestSessionPages:
    def test_login_success(self, storage, backend):
        backend.add("POST", "/auth/login", {"token": "t1", "user": {"id": "u1", "name": "Ada"}})
        api = BackendApi(ApiClient(storage, transport=backend.transport))
        auth = AuthContext(storage)

        assert LoginPage(api, auth).submit("ada@example.com", "pw")
        assert auth.is_authenticated

    def test_login_failure(self, storage, backend):
        backend.add("POST", "/auth/login", handler=lambda r: httpx.Response(401))
        api = BackendApi(ApiClient(storage, transport=backend.transport))
        page = LoginPage(api, AuthContext(storage))

        assert not page.submit("ada@example.com", "wrong")
        assert page.notices == [Notice("error", "Invalid email or password")]

    def test_login_requires_credentials(self, storage, backend):
        api = BackendApi(ApiClient(storage, transport=backend.transport))
        page = LoginPage(api, AuthContext(storage))

        assert not page.submit("", "")
        assert backend.requests == []

    def test_signup_with_token_logs_in(self, storage, backend):
        backend.add("POST", "/auth/signup", {"token": "t1", "user": {"name": "Ada"}}, status=201)
        api = BackendApi(ApiClient(storage, transport=backend.transport))
        auth = AuthContext(storage)

        assert SignupPage(api, auth).submit("Ada", "ada@example.com", "pw") == "logged_in"
        assert auth.is_authenticated

    def test_signup_without_token(self, storage, backend):
        backend.add("POST", "/auth/signup", {"message": "created"}, status=201)
        api = BackendApi(ApiClient(storage, transport=backend.transport))
        auth = AuthContext(storage)

        assert SignupPage(api, auth).submit("Ada", "ada@example.com", "pw") == "registered"
        assert not auth.is_authenticated

    def test_signup_failure(self, storage, backend):
        backend.add("POST", "/auth/signup", {"message": "Email already registered"}, status=409)
        api = BackendApi(ApiClient(storage, transport=backend.transport))
        page = SignupPage(api, AuthContext(storage))

        assert page.submit("Ada", "ada@example.com", "pw") is None
        assert page.notices == [Notice("error", "Email already registered")]


class TestSettingsPage:
    def test_health_ok(self, api, backend):
        backend.add("GET", "/health", {"status": "ok"})
        page = SettingsPage(api)
        page.check_health()
        assert page.healthy is True

    def test_health_unreachable(self, api, backend):
        backend.add("GET", "/health", handler=lambda r: httpx.Response(503))
        page = SettingsPage(api)
        page.check_health()
        assert page.healthy is False
        assert "503" in page.health_message

    def test_health_network_failure(self, storage):
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        api = BackendApi(ApiClient(storage, transport=httpx.MockTransport(refuse)))
        page = SettingsPage(api)
        page.check_health()

        assert page.healthy is False
        assert page.health_message == "Cannot reach http://api.test"

    def test_save_base_url(self, api):
        page = SettingsPage(api)

        assert page.save_base_url("http://new.test/")
        assert page.base_url == "http://new.test"
        assert api.client.base_url == "http://new.test"

        assert not page.save_base_url("not a url")
        assert page.base_url == "http://new.test"
        assert page.notices[-1].category == "error"
