"""Tests for template helpers and logging setup."""

import logging
from datetime import datetime

import pytest

from bugboard.logging_config import ColoredFormatter, setup_logging
from bugboard.models import Severity
from bugboard.ui import Badge, format_date, pluralize, severity_badge, status_badge, truncate


class TestBadges:
    @pytest.mark.parametrize(
        "severity,css_class",
        [
            ("critical", "badge-critical"),
            (Severity.HIGH, "badge-high"),
            ("low", "badge-low"),
            ("medium", "badge-medium"),
            ("blocker", "badge-medium"),
            (None, "badge-medium"),
        ],
    )
    def test_severity_badge(self, severity, css_class):
        assert severity_badge(severity).css_class == css_class

    def test_status_badge(self):
        assert status_badge(None) == Badge("open", "badge-open")
        assert status_badge("") == Badge("open", "badge-open")
        assert status_badge("open") == Badge("open", "badge-open")
        assert status_badge("in_progress") == Badge("in_progress", "badge-other")


def test_format_date():
    assert format_date(datetime(2025, 1, 5, 23, 59)) == "Jan 5, 2025"
    assert format_date(None) == ""


def test_pluralize():
    assert pluralize(1, "attachment") == "1 attachment"
    assert pluralize(0, "like") == "0 likes"
    assert pluralize(3, "like") == "3 likes"


def test_truncate():
    assert truncate(None) == ""
    assert truncate("short") == "short"
    assert truncate("word " * 50, 20) == "word word word wo..."
    assert len(truncate("x" * 500)) == 160


def test_setup_logging_is_idempotent():
    setup_logging("DEBUG")
    setup_logging("WARNING")

    logger = logging.getLogger("bugboard")
    assert len(logger.handlers) == 1
    assert isinstance(logger.handlers[0].formatter, ColoredFormatter)
    assert logger.level == logging.WARNING
    assert logger.propagate is False
