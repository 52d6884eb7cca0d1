"""Command-line interface for bookmark_feeds."""

from bookmark_feeds.cli.app import main, render_report, run_check

__all__ = ["main", "render_report", "run_check"]
