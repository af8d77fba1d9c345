"""Bugboard: web and command-line client for a bug-tracking backend."""

__version__ = "0.1.0"
