"""Presentational helpers shared by the page templates."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from bugboard.models import DEFAULT_STATUS, Severity


@dataclass(frozen=True)
class Badge:
    label: str
    css_class: str


SEVERITY_BADGES = {
    Severity.CRITICAL: Badge("Critical", "badge-critical"),
    Severity.HIGH: Badge("High", "badge-high"),
    Severity.MEDIUM: Badge("Medium", "badge-medium"),
    Severity.LOW: Badge("Low", "badge-low"),
}


def severity_badge(severity: Any) -> Badge:
    """Badge for a severity; anything unrecognized uses the medium style."""
    return SEVERITY_BADGES[Severity.coerce(severity)]


def status_badge(status: Optional[str]) -> Badge:
    """Badge for a status. Missing status renders as open."""
    label = status or DEFAULT_STATUS
    css_class = "badge-open" if label == DEFAULT_STATUS else "badge-other"
    return Badge(label, css_class)


def format_date(value: Optional[datetime]) -> str:
    """Short date, e.g. "Jan 5, 2025"."""
    if value is None:
        return ""
    return f"{value.strftime('%b')} {value.day}, {value.year}"


def pluralize(count: int, word: str) -> str:
    return f"{count} {word}{'s' if count != 1 else ''}"


def truncate(text: Optional[str], length: int = 160) -> str:
    """Shorten text for summary cards."""
    if not text:
        return ""
    if len(text) <= length:
        return text
    return text[: length - 3].rstrip() + "..."


TEMPLATE_HELPERS = {
    "severity_badge": severity_badge,
    "status_badge": status_badge,
    "format_date": format_date,
    "pluralize": pluralize,
    "truncate_text": truncate,
}
