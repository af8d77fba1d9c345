"""Flask web client for the bug-tracking backend."""

import functools
import logging
import secrets
from typing import Any, Callable, Optional, TypeVar, Union
from urllib.parse import urlsplit

import httpx
from flask import (
    Blueprint,
    Flask,
    abort,
    current_app,
    flash,
    g,
    redirect,
    render_template_string,
    request,
    session,
    url_for,
)
from werkzeug.wrappers import Response

from bugboard import config
from bugboard.api import BackendApi
from bugboard.auth import AuthContext
from bugboard.client import ApiClient
from bugboard.forms import ATTACHMENT_HINT, DraftStore, PendingFile
from bugboard.models import Severity
from bugboard.pages import (
    BugDetailPage,
    CreateBugPage,
    DashboardPage,
    LikeState,
    LoginPage,
    Page,
    SettingsPage,
    SignupPage,
)
from bugboard.storage import LocalStorage
from bugboard.ui import TEMPLATE_HELPERS

logger = logging.getLogger(__name__)

bp = Blueprint("bugboard", __name__)

P = TypeVar("P", bound=Page)

CSRF_SESSION_KEY = "csrf_token"


class ClientState:
    """Everything the web client shares across requests."""

    def __init__(self, storage: LocalStorage, transport: Optional[httpx.BaseTransport] = None) -> None:
        self.storage = storage
        self.api = BackendApi(ApiClient(storage, transport=transport))
        self.auth = AuthContext(storage)
        self.drafts = DraftStore()
        self.likes = LikeState()


def get_state() -> ClientState:
    """Client state of the running application."""
    state: ClientState = current_app.extensions["bugboard"]
    return state


def login_required(view: Callable[..., Any]) -> Callable[..., Any]:
    """Redirect to the login page unless a session is active."""

    @functools.wraps(view)
    def wrapped(*args: Any, **kwargs: Any) -> Any:
        if not get_state().auth.is_authenticated:
            return redirect(url_for("bugboard.login"))
        return view(*args, **kwargs)

    return wrapped


def open_page(page: P) -> P:
    """Register a page controller so it is cancelled on request teardown."""
    g.setdefault("pages", []).append(page)
    return page


def flash_notices(page: Page) -> None:
    for notice in page.notices:
        flash(notice.message, notice.category)
    page.notices.clear()


def csrf_token() -> str:
    """Form token for the current browser session, created on first use."""
    token = session.get(CSRF_SESSION_KEY)
    if not token:
        token = secrets.token_urlsafe(32)
        session[CSRF_SESSION_KEY] = token
    return token


def _same_origin() -> bool:
    """False when the browser reports that the request came from another site."""
    source = request.headers.get("Origin") or request.headers.get("Referer")
    if not source:
        return True
    return urlsplit(source).netloc == request.host


@bp.before_request
def _check_csrf() -> None:
    """Refuse form posts that did not come from one of our own pages."""
    if request.method != "POST":
        return

    if not _same_origin():
        logger.warning("Refused cross-site POST %s", request.path)
        abort(403)

    expected = session.get(CSRF_SESSION_KEY)
    submitted = request.form.get(CSRF_SESSION_KEY, "")
    if not expected or not secrets.compare_digest(expected, submitted):
        logger.warning("Refused POST %s with a missing or invalid form token", request.path)
        abort(403)


# =============================================================================
# HTML Templates
# =============================================================================

BASE_TEMPLATE = """
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{% block title %}Bugboard{% endblock %}</title>
    <style>
        :root {
            --bg-primary: #0d1117;
            --bg-secondary: #161b22;
            --bg-tertiary: #21262d;
            --bg-hover: #30363d;
            --border-color: #30363d;
            --border-light: #21262d;
            --border-focus: #58a6ff;
            --text-primary: #e6edf3;
            --text-secondary: #8b949e;
            --text-muted: #6e7681;
            --accent-blue: #58a6ff;
            --accent-green: #3fb950;
            --accent-red: #f85149;
            --accent-cyan: #39d5ff;
            --status-open: #3fb950;
            --status-other: #8b949e;
            --severity-low: #3fb950;
            --severity-medium: #d29922;
            --severity-high: #db6d28;
            --severity-critical: #f85149;
            --shadow-sm: 0 1px 2px rgba(0, 0, 0, 0.3);
            --shadow-md: 0 4px 6px rgba(0, 0, 0, 0.4);
        }

        * { margin: 0; padding: 0; box-sizing: border-box; }

        body {
            font-family: 'SF Mono', 'Monaco', 'Inconsolata', 'Fira Code', monospace;
            font-size: 14px;
            line-height: 1.6;
            background-color: var(--bg-primary);
            color: var(--text-primary);
            min-height: 100vh;
        }

        a { color: var(--accent-blue); text-decoration: none; }
        a:hover { color: var(--accent-cyan); }

        .container { max-width: 1100px; margin: 0 auto; padding: 0 24px; }

        /* Header */
        .header {
            background-color: var(--bg-secondary);
            border-bottom: 1px solid var(--border-color);
            padding: 14px 0;
            position: sticky;
            top: 0;
            z-index: 100;
        }
        .header-content { display: flex; align-items: center; justify-content: space-between; gap: 16px; }
        .logo { font-size: 20px; font-weight: 600; color: var(--text-primary); }
        .logo-icon { color: var(--accent-red); font-weight: 700; }
        .nav { display: flex; gap: 8px; align-items: center; }
        .nav a { color: var(--text-secondary); font-size: 13px; padding: 8px 16px; border-radius: 6px; }
        .nav a:hover, .nav a.active { color: var(--text-primary); background-color: var(--bg-tertiary); }
        .welcome { color: var(--text-secondary); font-size: 13px; }
        .welcome strong { color: var(--text-primary); }

        /* Main content */
        .main { padding: 32px 0; min-height: calc(100vh - 140px); }
        .page-header {
            margin-bottom: 28px;
            display: flex;
            align-items: center;
            justify-content: space-between;
            flex-wrap: wrap;
            gap: 16px;
        }
        .page-title { font-size: 26px; font-weight: 600; letter-spacing: -0.5px; }
        .page-subtitle { font-size: 14px; color: var(--text-secondary); margin-top: 4px; }

        /* Buttons */
        .btn {
            display: inline-flex;
            align-items: center;
            justify-content: center;
            gap: 8px;
            padding: 10px 18px;
            font-family: inherit;
            font-size: 13px;
            font-weight: 500;
            border: 1px solid var(--border-color);
            border-radius: 6px;
            background-color: var(--bg-tertiary);
            color: var(--text-primary);
            cursor: pointer;
            white-space: nowrap;
        }
        .btn:hover { background-color: var(--bg-hover); color: var(--text-primary); }
        .btn-primary { background-color: var(--accent-green); border-color: var(--accent-green); color: #000; font-weight: 600; }
        .btn-primary:hover { background-color: #2ea043; color: #000; }
        .btn-liked { background-color: var(--accent-red); border-color: var(--accent-red); color: #fff; }
        .btn-sm { padding: 6px 12px; font-size: 12px; }
        .btn-ghost { background-color: transparent; border-color: transparent; }

        /* Cards */
        .card {
            background-color: var(--bg-secondary);
            border: 1px solid var(--border-color);
            border-radius: 10px;
            overflow: hidden;
            margin-bottom: 16px;
            box-shadow: var(--shadow-sm);
        }
        .card-body { padding: 20px; }
        .card-title { font-size: 16px; font-weight: 600; color: var(--text-primary); }
        .card-description { color: var(--text-secondary); margin-top: 4px; }
        a.bug-card { display: block; color: inherit; }
        a.bug-card:hover .card { border-color: var(--accent-blue); box-shadow: var(--shadow-md); }
        .card-meta { display: flex; gap: 16px; align-items: center; font-size: 12px; color: var(--text-muted); margin-top: 12px; }
        .chip-row { display: flex; gap: 6px; align-items: center; margin-bottom: 8px; flex-wrap: wrap; }
        .chip { font-size: 11px; padding: 2px 8px; border-radius: 10px; background-color: var(--bg-tertiary); color: var(--text-secondary); }

        /* Badges */
        .badge {
            display: inline-flex;
            align-items: center;
            padding: 3px 10px;
            font-size: 11px;
            font-weight: 600;
            border-radius: 16px;
            text-transform: uppercase;
            letter-spacing: 0.3px;
        }
        .badge-open { background-color: rgba(63, 185, 80, 0.15); color: var(--status-open); border: 1px solid rgba(63, 185, 80, 0.4); }
        .badge-other { background-color: rgba(139, 148, 158, 0.15); color: var(--status-other); border: 1px solid rgba(139, 148, 158, 0.4); }
        .badge-critical { background-color: var(--severity-critical); color: #fff; }
        .badge-high { background-color: var(--severity-high); color: #fff; }
        .badge-medium { background-color: var(--severity-medium); color: #000; }
        .badge-low { background-color: var(--severity-low); color: #fff; }

        /* Forms */
        .form-group { margin-bottom: 18px; }
        .form-label { display: block; font-size: 12px; color: var(--text-secondary); margin-bottom: 6px; font-weight: 600; }
        .form-control {
            width: 100%;
            padding: 10px 12px;
            font-family: inherit;
            font-size: 13px;
            background-color: var(--bg-primary);
            border: 1px solid var(--border-color);
            border-radius: 6px;
            color: var(--text-primary);
        }
        .form-control:focus { outline: none; border-color: var(--border-focus); }
        textarea.form-control { min-height: 140px; resize: vertical; }
        .form-row { display: grid; grid-template-columns: 1fr 1fr; gap: 20px; }
        .form-hint { font-size: 11px; color: var(--text-muted); margin-top: 4px; }
        .search-form { display: flex; gap: 8px; margin-bottom: 24px; }
        .file-list { margin-top: 12px; }
        .file-item {
            display: flex;
            align-items: center;
            justify-content: space-between;
            gap: 12px;
            padding: 8px 12px;
            background-color: var(--bg-tertiary);
            border-radius: 6px;
            margin-bottom: 6px;
        }
        .file-name { flex: 1; overflow: hidden; text-overflow: ellipsis; white-space: nowrap; }

        /* Empty state */
        .empty-state { text-align: center; padding: 48px 20px; color: var(--text-secondary); }
        .empty-state .btn { margin-top: 16px; }

        /* Toasts */
        .toasts { position: fixed; right: 24px; bottom: 24px; z-index: 200; display: flex; flex-direction: column; gap: 8px; }
        .alert { padding: 12px 16px; border-radius: 6px; font-size: 13px; box-shadow: var(--shadow-md); max-width: 360px; }
        .alert-success { background-color: #12261a; border: 1px solid var(--accent-green); color: var(--accent-green); }
        .alert-error { background-color: #2d1214; border: 1px solid var(--accent-red); color: var(--accent-red); }

        /* Detail */
        .detail-meta { display: flex; gap: 16px; color: var(--text-secondary); font-size: 13px; margin-top: 8px; }
        .detail-header { display: flex; justify-content: space-between; align-items: flex-start; gap: 16px; }
        .bug-description { white-space: pre-wrap; line-height: 1.8; color: var(--text-secondary); margin-top: 16px; }
        .section-title { font-size: 15px; font-weight: 600; margin: 24px 0 12px; }
        .attachment {
            display: flex;
            justify-content: space-between;
            align-items: center;
            padding: 10px 12px;
            border: 1px solid var(--border-color);
            border-radius: 6px;
            margin-bottom: 8px;
        }
        .comment { border: 1px solid var(--border-color); border-radius: 8px; margin-bottom: 12px; overflow: hidden; }
        .comment-header { padding: 8px 14px; background-color: var(--bg-tertiary); font-size: 12px; color: var(--text-secondary); }
        .comment-body { padding: 12px 14px; white-space: pre-wrap; }
        .comment-reply { margin-left: 32px; }

        .auth-card { max-width: 420px; margin: 40px auto; }

        .footer { border-top: 1px solid var(--border-color); padding: 20px 0; color: var(--text-muted); font-size: 12px; }
    </style>
</head>
<body>
    <header class="header">
        <div class="container">
            <div class="header-content">
                <a href="/dashboard" class="logo"><span class="logo-icon">#</span> Bugboard</a>
                <nav class="nav">
                    {% if current_user %}
                    <a href="/dashboard" class="{{ 'active' if active_page == 'dashboard' else '' }}">Dashboard</a>
                    <a href="/create" class="{{ 'active' if active_page == 'create' else '' }}">Report Bug</a>
                    {% endif %}
                    <a href="/settings" class="{{ 'active' if active_page == 'settings' else '' }}">Settings</a>
                    {% if current_user %}
                    <span class="welcome">Welcome back, <strong>{{ current_user.name }}</strong></span>
                    <form action="/logout" method="post" style="display: inline;">
                        <input type="hidden" name="csrf_token" value="{{ csrf_token() }}">
                        <button type="submit" class="btn btn-sm btn-ghost">Logout</button>
                    </form>
                    {% else %}
                    <a href="/login" class="{{ 'active' if active_page == 'login' else '' }}">Login</a>
                    <a href="/signup" class="{{ 'active' if active_page == 'signup' else '' }}">Sign up</a>
                    {% endif %}
                </nav>
            </div>
        </div>
    </header>

    <main class="main">
        <div class="container">
            {% block content %}{% endblock %}
        </div>
    </main>

    {% with messages = get_flashed_messages(with_categories=true) %}
    {% if messages %}
    <div class="toasts" id="toasts">
        {% for category, message in messages %}
        <div class="alert alert-{{ category }}">{{ message }}</div>
        {% endfor %}
    </div>
    <script>
    setTimeout(function() {
        var toasts = document.getElementById('toasts');
        if (toasts) { toasts.remove(); }
    }, 5000);
    </script>
    {% endif %}
    {% endwith %}

    <footer class="footer">
        <div class="container">Bugboard &middot; API: {{ api_base_url }}</div>
    </footer>
</body>
</html>
"""


def _page_template(title: str, content: str) -> str:
    return BASE_TEMPLATE.replace(
        "{% block title %}Bugboard{% endblock %}", "{% block title %}" + title + " - Bugboard{% endblock %}"
    ).replace("{% block content %}{% endblock %}", "{% block content %}" + content + "{% endblock %}")


DASHBOARD_TEMPLATE = _page_template(
    "Bug Reports",
    """
<div class="page-header">
    <div>
        <h1 class="page-title">Bug Reports</h1>
        <p class="page-subtitle">Track and manage all reported issues</p>
    </div>
    <a href="/create" class="btn btn-primary">+ Report Bug</a>
</div>

<form action="/dashboard" method="get" class="search-form">
    <input type="text" name="q" class="form-control" value="{{ search_query }}"
           placeholder="Search bugs by title, description, or topic...">
    <button type="submit" class="btn">Search</button>
</form>

{% if bugs %}
    {% for bug in bugs %}
    {% set severity = severity_badge(bug.severity) %}
    {% set status = status_badge(bug.status) %}
    <a href="/bug/{{ bug.id }}" class="bug-card">
        <div class="card">
            <div class="card-body">
                <div class="chip-row">
                    <span class="badge {{ severity.css_class }}">{{ severity.label }}</span>
                    <span class="badge {{ status.css_class }}">{{ status.label }}</span>
                    {% if bug.topic %}<span class="chip">{{ bug.topic }}</span>{% endif %}
                </div>
                <div class="card-title">{{ bug.title }}</div>
                <div class="card-description">{{ truncate_text(bug.description) }}</div>
                <div class="card-meta">
                    <span>{{ format_date(bug.created_at) }}</span>
                    <span>&hearts; {{ bug.likes_count }}</span>
                    {% if bug.attachments %}
                    <span class="chip">{{ pluralize(bug.attachments|length, 'attachment') }}</span>
                    {% endif %}
                </div>
            </div>
        </div>
    </a>
    {% endfor %}
{% else %}
<div class="card">
    <div class="empty-state">
        <div>{{ empty_message }}</div>
        <a href="/create" class="btn">Report the first bug</a>
    </div>
</div>
{% endif %}
""",
)

CREATE_TEMPLATE = _page_template(
    "Report a Bug",
    """
<div class="page-header">
    <div>
        <h1 class="page-title">Report a Bug</h1>
        <p class="page-subtitle">Provide details about the issue you've encountered</p>
    </div>
</div>

<div class="card">
    <div class="card-body">
        <form action="/create" method="post" enctype="multipart/form-data">
            <input type="hidden" name="csrf_token" value="{{ csrf_token() }}">
            <div class="form-group">
                <label class="form-label" for="title">Title *</label>
                <input type="text" id="title" name="title" class="form-control"
                       value="{{ draft.title }}" placeholder="Brief description of the issue">
            </div>

            <div class="form-group">
                <label class="form-label" for="description">Description</label>
                <textarea id="description" name="description" class="form-control" rows="5"
                          placeholder="Detailed description of the issue, steps to reproduce, expected behavior, etc.">{{ draft.description }}</textarea>
            </div>

            <div class="form-row">
                <div class="form-group">
                    <label class="form-label" for="topic">Topic/Category</label>
                    <input type="text" id="topic" name="topic" class="form-control"
                           value="{{ draft.topic }}" placeholder="e.g., UI, Authentication, Performance">
                </div>

                <div class="form-group">
                    <label class="form-label" for="severity">Severity</label>
                    <select id="severity" name="severity" class="form-control">
                        {% for option in severities %}
                        <option value="{{ option.value }}" {{ 'selected' if draft.severity == option.value }}>{{ option.value|capitalize }}</option>
                        {% endfor %}
                    </select>
                </div>
            </div>

            <div class="form-group">
                <label class="form-label" for="attachments">Attachments</label>
                <input type="file" id="attachments" name="attachments" class="form-control" multiple>
                <div class="form-hint">{{ attachment_hint }}</div>
                <button type="submit" name="action" value="add-files" class="btn btn-sm" style="margin-top: 8px;">Add files</button>

                {% if draft.attachments %}
                <div class="file-list">
                    {% for file in draft.attachments %}
                    <div class="file-item">
                        <span class="file-name">{{ file.filename }}</span>
                        <span class="form-hint">{{ file.size_mb }} MB</span>
                        <button type="submit" name="action" value="remove:{{ loop.index0 }}" class="btn btn-sm btn-ghost" title="Remove">&times;</button>
                    </div>
                    {% endfor %}
                </div>
                {% endif %}
            </div>

            <div style="display: flex; gap: 12px; margin-top: 8px;">
                <button type="submit" name="action" value="cancel" class="btn" formnovalidate>Cancel</button>
                <button type="submit" name="action" value="submit" class="btn btn-primary">Submit Bug Report</button>
            </div>
        </form>
    </div>
</div>
""",
)

DETAIL_TEMPLATE = _page_template(
    "{{ bug.title if bug else 'Bug not found' }}",
    """
{% if not bug %}
<div class="empty-state">
    <h2 class="page-title">Bug not found</h2>
    <a href="/dashboard" class="btn">Back to Dashboard</a>
</div>
{% else %}
{% set severity = severity_badge(bug.severity) %}
{% set status = status_badge(bug.status) %}
<div style="margin-bottom: 20px;">
    <a href="/dashboard" class="btn btn-sm">&larr; Back to Dashboard</a>
</div>

<div class="card">
    <div class="card-body">
        <div class="detail-header">
            <div>
                <div class="chip-row">
                    <span class="badge {{ severity.css_class }}">{{ severity.label }}</span>
                    <span class="badge {{ status.css_class }}">{{ status.label }}</span>
                    {% if bug.topic %}<span class="chip">{{ bug.topic }}</span>{% endif %}
                </div>
                <h1 class="page-title">{{ bug.title }}</h1>
                <div class="detail-meta">
                    <span>{{ format_date(bug.created_at) }}</span>
                    <span>{{ bug.user_name or 'Unknown User' }}</span>
                </div>
            </div>
            <form action="/bug/{{ bug.id }}/like" method="post">
                <input type="hidden" name="csrf_token" value="{{ csrf_token() }}">
                <button type="submit" class="btn btn-sm {{ 'btn-liked' if liked else '' }}"
                        {{ 'disabled' if not current_user }}>&hearts; {{ bug.likes_count }}</button>
            </form>
        </div>

        <div class="bug-description">{{ bug.description }}</div>

        {% if bug.attachments %}
        <h3 class="section-title">Attachments</h3>
        {% for attachment in bug.attachments %}
        <div class="attachment">
            <span>{{ attachment.filename }}</span>
            <a href="{{ attachment.resolve_url(api_base_url) }}" download="{{ attachment.filename }}" class="btn btn-sm">Download</a>
        </div>
        {% endfor %}
        {% endif %}

        {% if bug.comments %}
        <h3 class="section-title">Comments ({{ bug.comments|length }})</h3>
        {% for comment in bug.comments %}
        <div class="comment {{ 'comment-reply' if comment.parent_comment_id else '' }}">
            <div class="comment-header">
                {{ comment.user_name or 'Unknown User' }}{% if comment.created_at %} &middot; {{ format_date(comment.created_at) }}{% endif %}
            </div>
            <div class="comment-body">{{ comment.text }}</div>
        </div>
        {% endfor %}
        {% endif %}
    </div>
</div>
{% endif %}
""",
)

LOGIN_TEMPLATE = _page_template(
    "Login",
    """
<div class="card auth-card">
    <div class="card-body">
        <h1 class="page-title">Welcome back</h1>
        <p class="page-subtitle" style="margin-bottom: 20px;">Sign in to your account</p>
        <form action="/login" method="post">
            <input type="hidden" name="csrf_token" value="{{ csrf_token() }}">
            <div class="form-group">
                <label class="form-label" for="email">Email</label>
                <input type="email" id="email" name="email" class="form-control" value="{{ email }}" required>
            </div>
            <div class="form-group">
                <label class="form-label" for="password">Password</label>
                <input type="password" id="password" name="password" class="form-control" required>
            </div>
            <button type="submit" class="btn btn-primary" style="width: 100%;">Sign in</button>
        </form>
        <p class="form-hint" style="margin-top: 16px;">No account yet? <a href="/signup">Sign up</a></p>
    </div>
</div>
""",
)

SIGNUP_TEMPLATE = _page_template(
    "Sign up",
    """
<div class="card auth-card">
    <div class="card-body">
        <h1 class="page-title">Create an account</h1>
        <p class="page-subtitle" style="margin-bottom: 20px;">Start reporting bugs</p>
        <form action="/signup" method="post">
            <input type="hidden" name="csrf_token" value="{{ csrf_token() }}">
            <div class="form-group">
                <label class="form-label" for="name">Name</label>
                <input type="text" id="name" name="name" class="form-control" value="{{ name }}" required>
            </div>
            <div class="form-group">
                <label class="form-label" for="email">Email</label>
                <input type="email" id="email" name="email" class="form-control" value="{{ email }}" required>
            </div>
            <div class="form-group">
                <label class="form-label" for="password">Password</label>
                <input type="password" id="password" name="password" class="form-control" required>
            </div>
            <button type="submit" class="btn btn-primary" style="width: 100%;">Sign up</button>
        </form>
        <p class="form-hint" style="margin-top: 16px;">Already registered? <a href="/login">Log in</a></p>
    </div>
</div>
""",
)

SETTINGS_TEMPLATE = _page_template(
    "Settings",
    """
<div class="page-header">
    <div>
        <h1 class="page-title">Settings</h1>
        <p class="page-subtitle">Backend connection</p>
    </div>
</div>

<div class="card">
    <div class="card-body">
        <form action="/settings" method="post">
            <input type="hidden" name="csrf_token" value="{{ csrf_token() }}">
            <div class="form-group">
                <label class="form-label" for="base_url">API base URL</label>
                <input type="text" id="base_url" name="base_url" class="form-control" value="{{ base_url }}">
            </div>
            <button type="submit" class="btn btn-primary">Save</button>
        </form>
        <p style="margin-top: 16px;">
            {% if healthy %}
            <span class="badge badge-open">{{ health_message }}</span>
            {% else %}
            <span class="badge badge-other">Backend unreachable</span>
            <span class="form-hint">{{ health_message }}</span>
            {% endif %}
        </p>
    </div>
</div>
""",
)

NOT_FOUND_TEMPLATE = _page_template(
    "Page not found",
    """
<div class="empty-state">
    <h1 class="page-title">404</h1>
    <p>Page not found</p>
    <a href="/dashboard" class="btn">Back to Dashboard</a>
</div>
""",
)


# =============================================================================
# Web Routes (Pages)
# =============================================================================


@bp.route("/")
def index() -> Response:
    return redirect(url_for("bugboard.dashboard"))


@bp.route("/login", methods=["GET", "POST"])
def login() -> Union[str, Response]:
    """Login page."""
    state = get_state()
    if state.auth.is_authenticated:
        return redirect(url_for("bugboard.dashboard"))

    email = ""
    if request.method == "POST":
        email = request.form.get("email", "").strip()
        page = open_page(LoginPage(state.api, state.auth))
        if page.submit(email, request.form.get("password", "")):
            return redirect(url_for("bugboard.dashboard"))
        flash_notices(page)

    return render_template_string(LOGIN_TEMPLATE, active_page="login", email=email)


@bp.route("/signup", methods=["GET", "POST"])
def signup() -> Union[str, Response]:
    """Signup page."""
    state = get_state()
    name = ""
    email = ""
    if request.method == "POST":
        name = request.form.get("name", "").strip()
        email = request.form.get("email", "").strip()
        page = open_page(SignupPage(state.api, state.auth))
        outcome = page.submit(name, email, request.form.get("password", ""))
        flash_notices(page)
        if outcome == "logged_in":
            return redirect(url_for("bugboard.dashboard"))
        if outcome == "registered":
            return redirect(url_for("bugboard.login"))

    return render_template_string(SIGNUP_TEMPLATE, active_page="signup", name=name, email=email)


@bp.route("/logout", methods=["POST"])
@login_required
def logout() -> Response:
    get_state().auth.logout()
    return redirect(url_for("bugboard.login"))


@bp.route("/dashboard")
@login_required
def dashboard() -> str:
    """Bug list with search."""
    state = get_state()
    page = open_page(DashboardPage(state.api))
    page.load(request.args.get("q"))
    flash_notices(page)

    return render_template_string(
        DASHBOARD_TEMPLATE,
        active_page="dashboard",
        bugs=page.bugs,
        search_query=page.search_query,
        empty_message=page.empty_message,
    )


def _uploaded_files() -> list[PendingFile]:
    pending = []
    for storage in request.files.getlist("attachments"):
        if not storage or not storage.filename:
            continue
        pending.append(
            PendingFile(
                filename=storage.filename,
                content=storage.read(),
                content_type=storage.mimetype or "application/octet-stream",
            )
        )
    return pending


def _render_create_form(page: CreateBugPage) -> str:
    return render_template_string(
        CREATE_TEMPLATE,
        active_page="create",
        draft=page.draft,
        severities=list(Severity)[::-1],
        attachment_hint=ATTACHMENT_HINT,
    )


@bp.route("/create", methods=["GET", "POST"])
@login_required
def create_bug() -> Union[str, Response]:
    """Create-report form.

    One form drives every interaction; the clicked button's ``action`` says
    whether to add files, remove a file, cancel or submit.
    """
    state = get_state()
    page = open_page(CreateBugPage(state.api, state.drafts))

    if request.method == "GET":
        return _render_create_form(page)

    action = request.form.get("action", "submit")

    if action == "cancel":
        state.drafts.reset()
        return redirect(url_for("bugboard.dashboard"))

    # The draft is shared by every request thread
    with state.drafts.lock:
        fields_valid = page.update_fields(
            title=request.form.get("title"),
            description=request.form.get("description"),
            topic=request.form.get("topic"),
            severity=request.form.get("severity"),
        )
        page.add_files(_uploaded_files())

        if action.startswith("remove:"):
            try:
                page.remove_file(int(action.split(":", 1)[1]))
            except ValueError:
                flash(f"Invalid action: {action}", "error")
        elif action == "submit" and fields_valid and page.submit():
            flash_notices(page)
            return redirect(url_for("bugboard.dashboard"))

        flash_notices(page)
        return _render_create_form(page)


def _render_detail(page: BugDetailPage) -> tuple[str, int]:
    html = render_template_string(
        DETAIL_TEMPLATE,
        active_page="dashboard",
        bug=page.bug,
        liked=page.liked,
    )
    return html, 200 if page.bug else 404


@bp.route("/bug/<bug_id>")
@login_required
def bug_detail(bug_id: str) -> tuple[str, int]:
    """Bug detail page."""
    state = get_state()
    page = open_page(BugDetailPage(state.api, state.likes))
    page.load(bug_id)
    flash_notices(page)
    return _render_detail(page)


@bp.route("/bug/<bug_id>/like", methods=["POST"])
@login_required
def toggle_like(bug_id: str) -> Response:
    """Toggle the like, then send the browser back to the refetched bug."""
    state = get_state()
    page = open_page(BugDetailPage(state.api, state.likes))
    page.toggle_like(bug_id)
    flash_notices(page)
    return redirect(url_for("bugboard.bug_detail", bug_id=bug_id))


@bp.route("/settings", methods=["GET", "POST"])
def settings() -> str:
    """API base URL and backend health."""
    state = get_state()
    page = open_page(SettingsPage(state.api))

    if request.method == "POST":
        page.save_base_url(request.form.get("base_url", ""))

    page.check_health()
    flash_notices(page)

    return render_template_string(
        SETTINGS_TEMPLATE,
        active_page="settings",
        base_url=page.base_url,
        healthy=page.healthy,
        health_message=page.health_message,
    )


# =============================================================================
# Application
# =============================================================================


def _inject_globals() -> dict[str, Any]:
    state = get_state()
    return {
        "current_user": state.auth.user if state.auth.is_authenticated else None,
        "api_base_url": state.api.client.base_url,
    }


def _close_pages(exc: Optional[BaseException]) -> None:
    for page in g.pop("pages", []):
        page.close()


def _not_found(error: Exception) -> Union[tuple[str, int], Response]:
    if not get_state().auth.is_authenticated:
        return redirect(url_for("bugboard.login"))
    return render_template_string(NOT_FOUND_TEMPLATE, active_page=None), 404


def create_app(
    storage: Optional[LocalStorage] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> Flask:
    """Build the web client.

    Args:
        storage: Persisted client storage (default: file from configuration).
        transport: Optional httpx transport for backend calls.

    Returns:
        Configured Flask application.
    """
    app = Flask(__name__)
    app.config["SECRET_KEY"] = config.secret_key()
    app.extensions["bugboard"] = ClientState(storage or LocalStorage(), transport=transport)

    app.config["SESSION_COOKIE_SAMESITE"] = "Lax"

    app.jinja_env.globals.update(TEMPLATE_HELPERS)
    app.jinja_env.globals["csrf_token"] = csrf_token
    app.context_processor(_inject_globals)
    app.teardown_request(_close_pages)
    app.register_error_handler(404, _not_found)
    app.register_blueprint(bp)
    return app


def run_server(
    host: str = config.WEB_HOST,
    port: int = config.WEB_PORT,
    debug: bool = False,
    storage_path: Optional[str] = None,
) -> None:
    """Run the web client.

    Args:
        host: Host to bind to.
        port: Port to bind to.
        debug: Enable debug mode (uses Flask dev server).
        storage_path: Optional path to the storage file.
    """
    app = create_app(LocalStorage(storage_path))

    if debug:
        print(f"Starting Bugboard on http://{host}:{port} (DEBUG mode with Flask)")
        app.run(host=host, port=port, debug=True)
        return

    from waitress import serve

    print(f"Starting Bugboard on http://{host}:{port} (Production mode with Waitress)")
    serve(app, host=host, port=port, threads=4)
