"""Data models for bookmark_feeds.

This module defines the core data structures for bookmarked links and the
articles found in their feeds.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional


# Publish time of an article whose feed gave none.
ZERO_TIME = datetime.min.replace(tzinfo=timezone.utc)


class LinkState(str, Enum):
    """How much we know about a bookmarked link."""

    # Newly created, we don't know yet if it has a feed.
    NEW = "new"
    # We looked, but could not find a feed for this link.
    NO_FEED_FOUND = "no_feed_found"
    # The last update failed, expected to be temporary.
    TRANSIENT_ERROR = "transient_error"
    # We found a feed URL and recorded it.
    HAS_FEED = "has_feed"
    # Marked by the user as a link to ignore. Never set by the engine.
    IGNORED = "ignored"


@dataclass(frozen=True)
class Article:
    """Represents an article from a link's feed."""

    url: str
    title: str
    publish_time: datetime = ZERO_TIME


@dataclass
class LinkRecord:
    """Represents one bookmarked URL and what we know about its feed."""

    base_url: str
    title: str = ""
    state: LinkState = LinkState.NEW
    feed_url: str = ""
    last_error: Optional[str] = None
    last_read: Optional[datetime] = None
    last_checked: Optional[datetime] = None
    discovery_attempts: int = 0
    # Articles seen at the last successful refresh, oldest first.
    articles: List[Article] = field(default_factory=list)

    def unread_articles(self) -> List[Article]:
        """Return the articles published strictly after last_read."""
        last_read = self.last_read or ZERO_TIME
        return [a for a in self.articles if a.publish_time > last_read]

    def mark_all_as_read(self) -> None:
        """Advance last_read to the newest publish time in articles."""
        latest = max((a.publish_time for a in self.articles), default=ZERO_TIME)
        if latest > (self.last_read or ZERO_TIME):
            self.last_read = latest

    def check_invariants(self) -> None:
        """Raise ValueError if the record is in an inconsistent state."""
        if self.state is LinkState.HAS_FEED and not self.feed_url:
            raise ValueError(f"{self.base_url}: has_feed without a feed url")
        if self.last_error is not None and self.state is not LinkState.TRANSIENT_ERROR:
            raise ValueError(f"{self.base_url}: error recorded in state {self.state.value}")
        times = [a.publish_time for a in self.articles]
        if any(earlier > later for earlier, later in zip(times, times[1:])):
            raise ValueError(f"{self.base_url}: articles are not sorted by publish time")
