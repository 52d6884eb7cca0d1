"""Feed discovery service.

This module finds the feed URL for a bookmarked page by ranking the links on
that page and probing the likely ones.
"""

import logging
from typing import Optional

import httpx

from bookmark_feeds.errors import LinkError, permanent_error, transient_error
from bookmark_feeds.models.schemas import LinkRecord
from bookmark_feeds.services.feed_parser import first_start_element, parser_for_root
from bookmark_feeds.services.link_extractor import Link, extract_links
from bookmark_feeds.services.urls import force_absolute

logger = logging.getLogger(__name__)


# Substrings of a link title that suggest a feed
FEED_HINTS = ("rss", "atom", "feed")

# URL endings that suggest a feed
URL_SUFFIXES = (
    "atom.xml",
    "rss.xml",
    "feed.xml",
    "feed=rss2",  # WordPress
    "feed=atom",
    "feed=rss",
    "feed",
)

# Content types a feed may be served with
FEED_CONTENT_TYPES = (
    "text/xml",
    "text/plain",
    "application/xml",
    "application/rss+xml",
    "application/atom+xml",
)


def named_like_feed_link(link: Link) -> bool:
    """Check whether a link's title or URL suggests it points to a feed."""
    title = link.title.lower()
    if any(hint in title for hint in FEED_HINTS):
        return True

    url = link.url.lower()
    return any(url.endswith(suffix) for suffix in URL_SUFFIXES)


def valid_feed_content_type(content_type: str) -> bool:
    return content_type.lower().startswith(FEED_CONTENT_TYPES)


def recognized_feed_format(body: bytes) -> bool:
    """Check whether a document's root element is one we can parse."""
    try:
        root = first_start_element(body)
    except LinkError:
        return False
    return parser_for_root(root) is not None


async def check_feed_candidate(
    client: httpx.AsyncClient,
    base_url: str,
    link: Link,
) -> Optional[str]:
    """Probe one link from a page and return its absolute URL if it is a feed.

    Failures here only rule out this candidate: they are logged, never raised.

    Args:
        client: HTTP client
        base_url: URL of the page the link was found on
        link: Candidate link

    Returns:
        Absolute feed URL if the candidate serves a feed, None otherwise
    """
    if not named_like_feed_link(link):
        return None

    try:
        feed_url = force_absolute(base_url, link.url)
    except LinkError as e:
        logger.warning(f"Skipping candidate {link.url!r}: {e}")
        return None

    try:
        response = await client.get(feed_url)
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        logger.warning(f"Skipping candidate {feed_url}: {e}")
        return None

    if response.status_code != 200:
        logger.info(f"Skipping candidate {feed_url}: status {response.status_code}")
        return None

    content_type = response.headers.get("content-type", "")
    if valid_feed_content_type(content_type) and recognized_feed_format(response.content):
        return feed_url

    logger.debug(f"Candidate {feed_url} is not a feed (content type {content_type!r})")
    return None


async def discover_feed_url(client: httpx.AsyncClient, record: LinkRecord) -> str:
    """Discover the feed URL for a bookmarked page.

    1. Fetches the page at record.base_url
    2. Extracts its links and keeps the ones named like feeds
    3. Probes each candidate, accepting the first that serves a feed

    Args:
        client: HTTP client
        record: Link whose base_url is inspected

    Returns:
        Absolute URL of the discovered feed

    Raises:
        LinkError: transient for connection problems, 5xx responses and pages
            without a usable feed link; permanent for other error statuses
            and malformed base URLs
    """
    logger.info(f"Looking for feed for ({record.title})")

    try:
        response = await client.get(record.base_url)
    except httpx.InvalidURL as e:
        raise permanent_error("Invalid URL %s: %s", record.base_url, e) from e
    except httpx.HTTPError as e:
        # Err on the conservative side and treat all of these as temporary.
        raise transient_error("Fetching %s: %s", record.base_url, e) from e

    if response.status_code >= 500:
        raise transient_error("Server error %d reading %s", response.status_code, record.base_url)
    if response.status_code != 200:
        raise permanent_error("Error %d reading %s", response.status_code, record.base_url)

    links = extract_links(response.content)
    if not links:
        raise transient_error("No links found in main page for %s", record.title)

    for link in links:
        feed_url = await check_feed_candidate(client, record.base_url, link)
        if feed_url:
            logger.info(f"Found feed for ({record.title}): {feed_url}")
            return feed_url

    raise transient_error("No feed link found in main page for %s", record.title)
