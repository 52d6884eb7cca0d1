"""End-to-end tests for the check command.

Runs the command line against a temporary database with the HTTP client
replaced by canned responses.
"""

from unittest.mock import AsyncMock, patch

import pytest
from click.testing import CliRunner

from bookmark_feeds.cli.app import main, render_report
from bookmark_feeds.models.schemas import LinkRecord, LinkState
from bookmark_feeds.services.link_extractor import Link
from bookmark_feeds.storage.store import LinkStore
from tests.conftest import make_client, make_response


BOOKMARKS = """<!DOCTYPE NETSCAPE-Bookmark-file-1>
<DL><p>
    <DT><A HREF="https://blog.example.com/">Example Blog</A>
    <DT><A HREF="https://gone.example.com/">Gone</A>
    <DT><A HREF="https://down.example.com/">Down</A>
</DL><p>
"""

BLOG_PAGE = b"""<html><head>
<link rel="alternate" type="application/rss+xml" href="/rss.xml">
</head><body><a href="/about">About</a></body></html>"""

RSS_BODY = b"""<?xml version="1.0"?>
<rss version="2.0"><channel>
    <item><title>Second &amp; last</title><link>/2</link><pubDate>Tue, 02 Jan 2024 12:00:00 GMT</pubDate></item>
    <item><title>First</title><link>/1</link><pubDate>Mon, 01 Jan 2024 12:00:00 GMT</pubDate></item>
</channel></rss>"""


def _client():
    client = make_client({
        "https://blog.example.com/": make_response(200, BLOG_PAGE),
        "https://blog.example.com/rss.xml": make_response(200, RSS_BODY, "application/rss+xml"),
        "https://gone.example.com/": make_response(404),
        "https://down.example.com/": make_response(503),
    })
    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock(return_value=None)
    return client


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "feeds.db"


class TestCheckCommand:
    """Tests for bookmark-feeds check."""

    def test_reports_unread_articles_then_marks_read(self, tmp_path, db_path):
        bookmarks = tmp_path / "bookmarks.html"
        bookmarks.write_text(BOOKMARKS)
        runner = CliRunner()

        with patch("bookmark_feeds.services.scheduler.create_client", return_value=_client()):
            result = runner.invoke(main, ["--db", str(db_path), "--log-level", "ERROR", "check", str(bookmarks)])

        assert result.exit_code == 0, result.output
        assert "<h1>Example Blog</h1>" in result.output
        assert "<li><a href='https://blog.example.com/1'>First</a>" in result.output
        assert "Second &amp; last" in result.output
        assert result.output.index("First") < result.output.index("Second")
        # Permanent discovery failures are not reported, transient ones are
        assert "Gone" not in result.output
        assert "<h1>Down</h1>" in result.output
        assert "ERROR: TRANSIENT:" in result.output

        # Reported articles were marked read and the feed is rate limited
        with patch("bookmark_feeds.services.scheduler.create_client", return_value=_client()):
            again = runner.invoke(main, ["--db", str(db_path), "--log-level", "ERROR", "check", str(bookmarks)])

        assert again.exit_code == 0, again.output
        assert "Example Blog" not in again.output

    def test_reads_bookmarks_from_stdin(self, db_path):
        runner = CliRunner()

        with patch("bookmark_feeds.services.scheduler.create_client", return_value=_client()):
            result = runner.invoke(main, ["--db", str(db_path), "--log-level", "ERROR", "check"], input=BOOKMARKS)

        assert result.exit_code == 0, result.output
        assert "<h1>Example Blog</h1>" in result.output

    def test_no_mark_read(self, tmp_path, db_path):
        bookmarks = tmp_path / "bookmarks.html"
        bookmarks.write_text(BOOKMARKS)
        runner = CliRunner()

        for _ in range(2):
            with patch("bookmark_feeds.services.scheduler.create_client", return_value=_client()):
                result = runner.invoke(main, ["--db", str(db_path), "--log-level", "ERROR", "check", "--no-mark-read", str(bookmarks)])
            assert "<h1>Example Blog</h1>" in result.output

    def test_ignore_command(self, tmp_path, db_path):
        bookmarks = tmp_path / "bookmarks.html"
        bookmarks.write_text(BOOKMARKS)
        runner = CliRunner()
        with patch("bookmark_feeds.services.scheduler.create_client", return_value=_client()):
            runner.invoke(main, ["--db", str(db_path), "--log-level", "ERROR", "check", str(bookmarks)])

        result = runner.invoke(main, ["--db", str(db_path), "--log-level", "ERROR", "ignore", "https://down.example.com/"])
        assert result.exit_code == 0, result.output

        client = _client()
        with patch("bookmark_feeds.services.scheduler.create_client", return_value=client):
            result = runner.invoke(main, ["--db", str(db_path), "--log-level", "ERROR", "check", str(bookmarks)])

        assert "Down" not in result.output
        assert "https://down.example.com/" not in client.requested

    def test_ignore_unknown_link(self, db_path):
        result = CliRunner().invoke(main, ["--db", str(db_path), "--log-level", "ERROR", "ignore", "https://nowhere.example/"])

        assert result.exit_code != 0
        assert "Unknown link" in result.output

    def test_corrupt_database_is_reported(self, tmp_path, db_path):
        db_path.write_bytes(b"this is not a database" * 100)
        bookmarks = tmp_path / "bookmarks.html"
        bookmarks.write_text(BOOKMARKS)

        with patch("bookmark_feeds.services.scheduler.create_client", return_value=_client()):
            result = CliRunner().invoke(main, ["--db", str(db_path), "--log-level", "ERROR", "check", str(bookmarks)])

        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)
        assert "not a database" in result.output

    def test_ignore_with_corrupt_database(self, db_path):
        db_path.write_bytes(b"this is not a database" * 100)

        result = CliRunner().invoke(main, ["--db", str(db_path), "--log-level", "ERROR", "ignore", "https://x/"])

        assert result.exit_code == 1
        assert "not a database" in result.output

    def test_undo_ignore_gives_fresh_discovery_budget(self, tmp_path, db_path, monkeypatch):
        monkeypatch.setenv("BOOKMARK_FEEDS_MAX_DISCOVERY_ATTEMPTS", "2")
        bookmarks = tmp_path / "bookmarks.html"
        bookmarks.write_text(BOOKMARKS)
        runner = CliRunner()
        args = ["--db", str(db_path), "--log-level", "ERROR"]

        # Down answers 503 twice and uses up its discovery attempts.
        for _ in range(2):
            with patch("bookmark_feeds.services.scheduler.create_client", return_value=_client()):
                runner.invoke(main, args + ["check", str(bookmarks)])
        runner.invoke(main, args + ["ignore", "https://down.example.com/"])
        result = runner.invoke(main, args + ["ignore", "--undo", "https://down.example.com/"])
        assert result.exit_code == 0, result.output

        client = _client()
        with patch("bookmark_feeds.services.scheduler.create_client", return_value=client):
            result = runner.invoke(main, args + ["check", str(bookmarks)])

        assert "https://down.example.com/" in client.requested
        assert "ERROR: TRANSIENT:" in result.output


class TestRenderReport:
    """Tests for the HTML report."""

    def test_error_shown_for_links_without_feed(self):
        record = LinkRecord(
            base_url="https://x/", title="<X>", state=LinkState.TRANSIENT_ERROR, last_error="TRANSIENT: nope"
        )
        store = LinkStore({record.base_url: record})

        report = render_report(store, [Link(url="https://x/", title="X")])

        assert report == "<h1>&lt;X&gt;</h1>\n<i>ERROR: TRANSIENT: nope</i>\n"

    def test_nothing_to_report(self):
        record = LinkRecord(base_url="https://x/", title="X", state=LinkState.HAS_FEED, feed_url="https://x/f")
        store = LinkStore({record.base_url: record})

        assert render_report(store, [Link(url="https://x/", title="X")]) == ""
