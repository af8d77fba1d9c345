"""Command-line interface for Bugboard."""

import argparse
import json
import logging
import mimetypes
import sys
from pathlib import Path
from typing import Any, Optional

import httpx

from bugboard import config
from bugboard.api import BackendApi, BugQuery, CommentInput, LikeTarget
from bugboard.auth import AuthContext, has_token
from bugboard.client import ApiClient
from bugboard.forms import BugDraft, PendingFile
from bugboard.logging_config import setup_logging
from bugboard.models import Bug, Severity
from bugboard.storage import LocalStorage
from bugboard.ui import format_date, pluralize


class CLI:
    """Command-line interface handler."""

    def __init__(
        self,
        storage_path: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        """Initialize CLI with storage and an API client.

        Args:
            storage_path: Optional path to the storage file.
            transport: Optional httpx transport for backend calls.
        """
        self.storage = LocalStorage(storage_path)
        self.api = BackendApi(ApiClient(self.storage, transport=transport))
        self.auth = AuthContext(self.storage)

    def close(self) -> None:
        """Release the HTTP connection pool."""
        self.api.close()

    def format_output(self, data: Any, as_json: bool = False) -> str:
        """Format output for display.

        Args:
            data: Data to format (Bug, list of Bugs, dict, etc).
            as_json: If True, output as JSON.

        Returns:
            Formatted string output.
        """
        if as_json:
            if isinstance(data, Bug):
                return json.dumps(data.to_dict(), indent=2)
            elif isinstance(data, list) and all(isinstance(b, Bug) for b in data):
                return json.dumps([b.to_dict() for b in data], indent=2)
            else:
                return json.dumps(data, indent=2)
        else:
            if isinstance(data, Bug):
                return self._format_bug(data)
            elif isinstance(data, list) and all(isinstance(b, Bug) for b in data):
                if not data:
                    return "No bugs found."
                return "\n\n".join(self._format_bug_summary(b) for b in data)
            elif isinstance(data, dict):
                return self._format_dict(data)
            else:
                return str(data)

    def _format_bug_summary(self, bug: Bug) -> str:
        """Format a bug as a dashboard-style summary card."""
        lines = [
            f"ID: {bug.id}",
            f"Title: {bug.title}",
            f"Severity: {bug.severity.value}  Status: {bug.status}"
            + (f"  Topic: {bug.topic}" if bug.topic else ""),
        ]
        meta = [format_date(bug.created_at) or "-", f"likes: {bug.likes_count}"]
        if bug.attachments:
            meta.append(pluralize(len(bug.attachments), "attachment"))
        lines.append(" | ".join(meta))
        return "\n".join(lines)

    def _format_bug(self, bug: Bug) -> str:
        """Format a single bug with attachments and comments."""
        lines = [
            f"ID: {bug.id}",
            f"Title: {bug.title}",
            f"Severity: {bug.severity.value}",
            f"Status: {bug.status}",
        ]

        if bug.topic:
            lines.append(f"Topic: {bug.topic}")

        lines.append(f"Reported by: {bug.user_name or 'Unknown User'}")

        if bug.created_at:
            lines.append(f"Created: {bug.created_at.strftime('%Y-%m-%d %H:%M:%S')}")

        lines.append(f"Likes: {bug.likes_count}")

        if bug.description:
            lines.append(f"Description: {bug.description}")

        if bug.attachments:
            base_url = self.api.client.base_url
            lines.append("")
            lines.append("Attachments:")
            for attachment in bug.attachments:
                lines.append(f"  - {attachment.filename}: {attachment.resolve_url(base_url)}")

        if bug.comments:
            lines.append("")
            lines.append(f"Comments ({len(bug.comments)}):")
            for comment in bug.comments:
                indent = "    " if comment.parent_comment_id else "  "
                author = comment.user_name or "Unknown User"
                lines.append(f"{indent}[{comment.id}] {author}: {comment.text}")

        return "\n".join(lines)

    def _format_dict(self, data: dict[str, Any]) -> str:
        lines = []
        for key, value in data.items():
            formatted_key = key.replace("_", " ").title()
            lines.append(f"{formatted_key}: {value}")
        return "\n".join(lines)

    def _bug_from_payload(self, payload: Any) -> Bug:
        data = payload.get("bug", payload) if isinstance(payload, dict) else {}
        return Bug.from_dict(data if isinstance(data, dict) else {})

    # -- configuration ---------------------------------------------------

    def show_config(self, as_json: bool = False) -> str:
        data = {
            "api_base_url": self.api.client.base_url,
            "storage": str(self.storage.path),
            "logged_in_as": self.auth.user.email if self.auth.user else None,
        }
        return self.format_output(data, as_json)

    def set_base_url(self, url: str, as_json: bool = False) -> str:
        self.api.client.set_base_url(url)
        if as_json:
            return json.dumps({"api_base_url": self.api.client.base_url}, indent=2)
        return f"API base URL set to {self.api.client.base_url}"

    def health(self, as_json: bool = False) -> str:
        payload = self.api.system.health()
        if as_json:
            return json.dumps(payload, indent=2)
        return f"Backend at {self.api.client.base_url} is reachable"

    # -- session ---------------------------------------------------------

    def signup(self, name: str, email: str, password: str, as_json: bool = False) -> str:
        payload = self.api.auth.signup(name, email, password)
        if has_token(payload):
            user = self.auth.login_from_payload(payload)
            message = f"Account created. Logged in as {user.name or user.email}"
        else:
            message = "Account created. Run 'bugboard-cli login' to sign in."
        if as_json:
            return json.dumps({"message": message}, indent=2)
        return message

    def login(self, email: str, password: str, as_json: bool = False) -> str:
        payload = self.api.auth.login(email, password)
        user = self.auth.login_from_payload(payload)
        if as_json:
            return json.dumps({"user": user.to_dict()}, indent=2)
        return f"Logged in as {user.name or user.email}"

    def logout(self, as_json: bool = False) -> str:
        self.auth.logout()
        if as_json:
            return json.dumps({"message": "Logged out"}, indent=2)
        return "Logged out"

    def whoami(self, as_json: bool = False) -> str:
        user = self.auth.require_user()
        return self.format_output(user.to_dict(), as_json)

    # -- bugs ------------------------------------------------------------

    def list_bugs(
        self,
        q: Optional[str] = None,
        topic: Optional[str] = None,
        limit: Optional[int] = config.DASHBOARD_LIMIT,
        as_json: bool = False,
    ) -> str:
        self.auth.require_user()
        payload = self.api.bugs.list(BugQuery(topic=topic, q=q, limit=limit))
        items = payload.get("bugs", []) if isinstance(payload, dict) else payload or []
        bugs = [Bug.from_dict(item) for item in items if isinstance(item, dict)]
        if not bugs and not as_json and q:
            return "No bugs found matching your search."
        return self.format_output(bugs, as_json)

    def get_bug(self, bug_id: str, as_json: bool = False) -> str:
        self.auth.require_user()
        bug = self._bug_from_payload(self.api.bugs.get(bug_id))
        return self.format_output(bug, as_json)

    def create_bug(
        self,
        title: str,
        description: str = "",
        topic: str = "",
        severity: str = Severity.MEDIUM.value,
        attachments: Optional[list[str]] = None,
        as_json: bool = False,
    ) -> str:
        """Create a bug report, uploading the given files as attachments."""
        self.auth.require_user()
        draft = BugDraft()
        draft.update_fields(title=title, description=description, topic=topic, severity=severity)
        draft.add_files([self._read_file(path) for path in attachments or []])

        error = draft.validate()
        if error:
            raise ValueError(error)

        fields, files = draft.to_multipart()
        payload = self.api.bugs.create(fields, files)
        if as_json:
            return json.dumps(payload, indent=2)
        bug = self._bug_from_payload(payload)
        if bug.id:
            return f"Bug report submitted successfully.\n\n{self._format_bug(bug)}"
        return "Bug report submitted successfully."

    def _read_file(self, path: str) -> PendingFile:
        file_path = Path(path)
        if not file_path.is_file():
            raise ValueError(f"Attachment not found: {path}")
        content_type = mimetypes.guess_type(file_path.name)[0] or "application/octet-stream"
        return PendingFile(file_path.name, file_path.read_bytes(), content_type)

    def update_bug(self, bug_id: str, as_json: bool = False, **updates: Any) -> str:
        self.auth.require_user()
        if "severity" in updates:
            updates["severity"] = Severity.from_string(updates["severity"]).value
        payload = self.api.bugs.update(bug_id, updates)
        if as_json:
            return json.dumps(payload, indent=2)
        bug = self._bug_from_payload(payload)
        if bug.id:
            return self._format_bug(bug)
        return f"Bug {bug_id} updated successfully."

    def delete_bug(self, bug_id: str, as_json: bool = False) -> str:
        self.auth.require_user()
        self.api.bugs.delete(bug_id)
        if as_json:
            return json.dumps({"message": f"Bug {bug_id} deleted successfully"}, indent=2)
        return f"Bug {bug_id} deleted successfully."

    # -- comments and likes ------------------------------------------------

    def add_comment(
        self,
        bug_id: str,
        text: str,
        parent_comment_id: Optional[str] = None,
        as_json: bool = False,
    ) -> str:
        self.auth.require_user()
        if not text.strip():
            raise ValueError("Comment text cannot be empty")
        payload = self.api.comments.add(bug_id, CommentInput(text, parent_comment_id))
        if as_json:
            return json.dumps(payload, indent=2)
        return f"Comment added to bug {bug_id}."

    def delete_comment(self, comment_id: str, as_json: bool = False) -> str:
        self.auth.require_user()
        self.api.comments.delete(comment_id)
        if as_json:
            return json.dumps({"message": f"Comment {comment_id} deleted successfully"}, indent=2)
        return f"Comment {comment_id} deleted successfully."

    def toggle_like(self, bug_id: str, as_json: bool = False) -> str:
        """Toggle the like on a bug and report the refreshed like count."""
        self.auth.require_user()
        self.api.likes.toggle(LikeTarget("bug", bug_id))
        bug = self._bug_from_payload(self.api.bugs.get(bug_id))
        if as_json:
            return json.dumps({"bug_id": bug_id, "likes_count": bug.likes_count}, indent=2)
        return f"Bug {bug_id} now has {pluralize(bug.likes_count, 'like')}."


def main() -> None:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        prog="bugboard-cli",
        description="Client for the bug-tracking backend",
    )

    parser.add_argument(
        "--storage",
        help="Path to client storage file (default: ~/.bugboard/storage.json)",
        default=None,
    )

    parser.add_argument(
        "--json",
        action="store_true",
        help="Output results in JSON format",
    )

    parser.add_argument(
        "--log-level",
        default=config.log_level(),
        help="Logging level (default: from BUGBOARD_LOG_LEVEL or INFO)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Config command
    config_parser = subparsers.add_parser("config", help="Show or change client configuration")
    config_subparsers = config_parser.add_subparsers(dest="config_command")
    config_subparsers.add_parser("show", help="Show configuration")
    set_url_parser = config_subparsers.add_parser("set-url", help="Set the API base URL")
    set_url_parser.add_argument("url", help="Base URL, e.g. http://localhost:8000")

    subparsers.add_parser("health", help="Check that the backend is reachable")

    # Session commands
    signup_parser = subparsers.add_parser("signup", help="Create an account")
    signup_parser.add_argument("-n", "--name", required=True, help="Display name")
    signup_parser.add_argument("-e", "--email", required=True, help="Email address")
    signup_parser.add_argument("-p", "--password", required=True, help="Password")

    login_parser = subparsers.add_parser("login", help="Log in")
    login_parser.add_argument("-e", "--email", required=True, help="Email address")
    login_parser.add_argument("-p", "--password", required=True, help="Password")

    subparsers.add_parser("logout", help="Log out")
    subparsers.add_parser("whoami", help="Show the logged-in user")

    # Bug commands
    list_parser = subparsers.add_parser("list", help="List bugs")
    list_parser.add_argument("-q", "--query", help="Free-text search")
    list_parser.add_argument("--topic", help="Filter by topic")
    list_parser.add_argument(
        "-l", "--limit", type=int, default=config.DASHBOARD_LIMIT, help="Maximum number of bugs"
    )

    get_parser = subparsers.add_parser("get", help="Get bug details")
    get_parser.add_argument("id", help="Bug ID")

    create_parser = subparsers.add_parser("create", help="Report a new bug")
    create_parser.add_argument("-t", "--title", required=True, help="Bug title")
    create_parser.add_argument("-d", "--description", default="", help="Bug description")
    create_parser.add_argument("--topic", default="", help="Topic/category")
    create_parser.add_argument(
        "-s",
        "--severity",
        choices=[s.value for s in Severity],
        default=Severity.MEDIUM.value,
        help="Severity level (default: medium)",
    )
    create_parser.add_argument(
        "-a", "--attach", action="append", default=[], metavar="FILE", help="File to attach"
    )

    update_parser = subparsers.add_parser("update", help="Update a bug")
    update_parser.add_argument("id", help="Bug ID")
    update_parser.add_argument("-t", "--title", help="New title")
    update_parser.add_argument("-d", "--description", help="New description")
    update_parser.add_argument("--topic", help="New topic")
    update_parser.add_argument("-s", "--severity", choices=[s.value for s in Severity], help="New severity")
    update_parser.add_argument("--status", help="New status")

    delete_parser = subparsers.add_parser("delete", help="Delete a bug")
    delete_parser.add_argument("id", help="Bug ID")

    # Comment and like commands
    comment_parser = subparsers.add_parser("comment", help="Add a comment to a bug")
    comment_parser.add_argument("id", help="Bug ID")
    comment_parser.add_argument("text", help="Comment text")
    comment_parser.add_argument("--parent", help="Reply to this comment ID")

    delete_comment_parser = subparsers.add_parser("delete-comment", help="Delete a comment")
    delete_comment_parser.add_argument("id", help="Comment ID")

    like_parser = subparsers.add_parser("like", help="Toggle your like on a bug")
    like_parser.add_argument("id", help="Bug ID")

    # Web command
    web_parser = subparsers.add_parser("web", help="Start the web client")
    web_parser.add_argument(
        "--host",
        default=config.WEB_HOST,
        help=f"Host to bind to (default: {config.WEB_HOST})",
    )
    web_parser.add_argument(
        "-p",
        "--port",
        type=int,
        default=config.WEB_PORT,
        help=f"Port to bind to (default: {config.WEB_PORT})",
    )
    web_parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug mode",
    )

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    setup_logging(args.log_level)
    logger = logging.getLogger("bugboard.cli")

    cli: Optional[CLI] = None
    try:
        cli = CLI(args.storage)

        if args.command == "config":
            if args.config_command == "set-url":
                result = cli.set_base_url(args.url, as_json=args.json)
            else:
                result = cli.show_config(as_json=args.json)

        elif args.command == "health":
            result = cli.health(as_json=args.json)

        elif args.command == "signup":
            result = cli.signup(args.name, args.email, args.password, as_json=args.json)

        elif args.command == "login":
            result = cli.login(args.email, args.password, as_json=args.json)

        elif args.command == "logout":
            result = cli.logout(as_json=args.json)

        elif args.command == "whoami":
            result = cli.whoami(as_json=args.json)

        elif args.command == "list":
            result = cli.list_bugs(
                q=args.query,
                topic=args.topic,
                limit=args.limit,
                as_json=args.json,
            )

        elif args.command == "get":
            result = cli.get_bug(args.id, as_json=args.json)

        elif args.command == "create":
            result = cli.create_bug(
                title=args.title,
                description=args.description,
                topic=args.topic,
                severity=args.severity,
                attachments=args.attach,
                as_json=args.json,
            )

        elif args.command == "update":
            updates = {}
            for name in ("title", "description", "topic", "severity", "status"):
                value = getattr(args, name)
                if value is not None:
                    updates[name] = value

            if not updates:
                print("Error: No updates specified", file=sys.stderr, flush=True)
                sys.exit(1)

            result = cli.update_bug(args.id, as_json=args.json, **updates)

        elif args.command == "delete":
            result = cli.delete_bug(args.id, as_json=args.json)

        elif args.command == "comment":
            result = cli.add_comment(args.id, args.text, args.parent, as_json=args.json)

        elif args.command == "delete-comment":
            result = cli.delete_comment(args.id, as_json=args.json)

        elif args.command == "like":
            result = cli.toggle_like(args.id, as_json=args.json)

        elif args.command == "web":
            from bugboard.web import run_server

            run_server(host=args.host, port=args.port, debug=args.debug, storage_path=args.storage)
            return

        else:
            parser.print_help()
            sys.exit(1)

        print(result, file=sys.stdout, flush=True)

    except Exception as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"Error: {e}", file=sys.stderr, flush=True)
        sys.exit(1)
    finally:
        if cli is not None:
            cli.close()


if __name__ == "__main__":
    main()
