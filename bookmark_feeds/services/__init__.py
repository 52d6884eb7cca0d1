"""Services for bookmark_feeds."""

from .feed_discovery import discover_feed_url
from .feed_parser import parse_articles, parse_time
from .lifecycle import check_link, transition
from .link_extractor import Link, extract_links
from .refresh import refresh_articles, RefreshOutcome
from .scheduler import check_for_updates

__all__ = [
    "discover_feed_url",
    "parse_articles",
    "parse_time",
    "check_link",
    "transition",
    "Link",
    "extract_links",
    "refresh_articles",
    "RefreshOutcome",
    "check_for_updates",
]
