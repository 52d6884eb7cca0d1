"""Article refresh for links that have a feed."""

import logging
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

import httpx

from bookmark_feeds.errors import permanent_error, transient_error
from bookmark_feeds.models.schemas import LinkRecord
from bookmark_feeds.services.feed_parser import (
    absolutize_articles,
    first_start_element,
    parser_for_root,
)
from bookmark_feeds.services.urls import force_absolute

logger = logging.getLogger(__name__)

MIN_CHECK_INTERVAL = timedelta(seconds=300)


class RefreshOutcome(str, Enum):
    REFRESHED = "refreshed"
    # Checked too recently, nothing done.
    SKIPPED = "skipped"
    # The document's root element is not a feed we can parse.
    UNRECOGNIZED = "unrecognized"


async def refresh_articles(
    client: httpx.AsyncClient,
    record: LinkRecord,
    now: Optional[datetime] = None,
    min_interval: timedelta = MIN_CHECK_INTERVAL,
) -> RefreshOutcome:
    """Fetch a link's feed and replace its article list.

    The article list is only replaced after the whole feed has been parsed
    and every URL resolved; on failure the previous list is kept.

    Args:
        client: HTTP client
        record: Link in the has_feed state
        now: Start time of the refresh (defaults to the current time)
        min_interval: Minimum time between two refreshes of the same feed

    Returns:
        What the refresh did

    Raises:
        LinkError: transient for fetch failures, permanent for parse and
            URL resolution failures
    """
    logger.info(f"Checking for articles: ({record.title})")

    moment = now or datetime.now(timezone.utc)
    if record.last_checked is not None and moment - record.last_checked < min_interval:
        logger.info(f"Less than {min_interval} since the last check of ({record.title}), skipping")
        return RefreshOutcome.SKIPPED

    feed_url = force_absolute(record.base_url, record.feed_url)
    try:
        response = await client.get(feed_url)
    except httpx.InvalidURL as e:
        raise permanent_error("Invalid feed URL %s: %s", feed_url, e) from e
    except httpx.HTTPError as e:
        raise transient_error("Fetching feed %s: %s", feed_url, e) from e

    if response.status_code != 200:
        raise transient_error("Bad response %d from %s", response.status_code, feed_url)

    body = response.content
    parse = parser_for_root(first_start_element(body))
    if parse is None:
        # TODO: count these so a link that stopped serving a feed goes back to discovery.
        logger.warning(f"No parser for the feed at {feed_url}, leaving ({record.title}) as is")
        return RefreshOutcome.UNRECOGNIZED

    articles = absolutize_articles(record.base_url, parse(body))

    record.articles = articles
    record.last_checked = moment
    logger.info(f"Found {len(articles)} articles for ({record.title})")
    return RefreshOutcome.REFRESHED
