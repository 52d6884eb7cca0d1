"""Per-link lifecycle.

A link moves between the LinkState values through the transition table in
transition(). check_link() drives one link through the table, running the
discovery and refresh effects it asks for and feeding their outcome back in
as the next event, until the table says to stop.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Optional

import httpx

from bookmark_feeds.config import ReaderConfig, get_config
from bookmark_feeds.errors import LinkError, is_transient
from bookmark_feeds.models.schemas import LinkRecord, LinkState
from bookmark_feeds.services.feed_discovery import discover_feed_url
from bookmark_feeds.services.refresh import refresh_articles

logger = logging.getLogger(__name__)


class Event(str, Enum):
    # Evaluate the current state.
    CHECK = "check"
    FEED_FOUND = "feed_found"
    TRANSIENT_FAILURE = "transient_failure"
    PERMANENT_FAILURE = "permanent_failure"
    # Refresh finished without error (including rate-limited and no-op refreshes).
    REFRESH_DONE = "refresh_done"


class Effect(str, Enum):
    # Evaluate the new state straight away.
    RECHECK = "recheck"
    DISCOVER = "discover"
    REFRESH = "refresh"
    LOG_IGNORED = "log_ignored"
    STOP = "stop"


@dataclass(frozen=True)
class Step:
    state: LinkState
    effect: Effect


def transition(
    state: LinkState,
    event: Event,
    *,
    has_feed_url: bool = False,
    discovery_exhausted: bool = False,
) -> Step:
    """Return the next state and the effect to run for an event.

    Args:
        state: Current state of the link
        event: What just happened
        has_feed_url: Whether the link has a feed URL recorded
        discovery_exhausted: Whether the link has used up its discovery attempts

    Raises:
        ValueError: if the event cannot happen in this state
    """
    if event is Event.CHECK:
        if state is LinkState.TRANSIENT_ERROR:
            # Last time through we couldn't connect. A recorded feed URL is
            # assumed to still be good.
            if has_feed_url:
                return Step(LinkState.HAS_FEED, Effect.RECHECK)
            return Step(LinkState.NEW, Effect.RECHECK)
        if state is LinkState.NEW:
            return Step(LinkState.NEW, Effect.DISCOVER)
        if state is LinkState.HAS_FEED:
            return Step(LinkState.HAS_FEED, Effect.REFRESH)
        if state is LinkState.NO_FEED_FOUND:
            return Step(LinkState.NO_FEED_FOUND, Effect.STOP)
        if state is LinkState.IGNORED:
            return Step(LinkState.IGNORED, Effect.LOG_IGNORED)

    elif state is LinkState.NEW:
        if event is Event.FEED_FOUND:
            return Step(LinkState.HAS_FEED, Effect.RECHECK)
        if event is Event.TRANSIENT_FAILURE:
            if discovery_exhausted:
                return Step(LinkState.NO_FEED_FOUND, Effect.STOP)
            return Step(LinkState.TRANSIENT_ERROR, Effect.STOP)
        if event is Event.PERMANENT_FAILURE:
            return Step(LinkState.NO_FEED_FOUND, Effect.STOP)

    elif state is LinkState.HAS_FEED:
        if event is Event.REFRESH_DONE:
            return Step(LinkState.HAS_FEED, Effect.STOP)
        if event in (Event.TRANSIENT_FAILURE, Event.PERMANENT_FAILURE):
            return Step(LinkState.TRANSIENT_ERROR, Effect.STOP)

    raise ValueError(f"No transition from {state.value} on {event.value}")


def discovery_exhausted(record: LinkRecord, config: ReaderConfig) -> bool:
    """Whether a link has failed discovery as often as the config allows."""
    limit = config.max_discovery_attempts
    return limit > 0 and record.discovery_attempts >= limit


def _enter(record: LinkRecord, state: LinkState, error: Optional[LinkError]) -> None:
    record.state = state
    # last_error is only kept while the link sits in transient_error.
    if state is LinkState.TRANSIENT_ERROR:
        if error is not None:
            record.last_error = str(error)
    else:
        record.last_error = None


async def check_link(
    client: httpx.AsyncClient,
    record: LinkRecord,
    config: Optional[ReaderConfig] = None,
) -> LinkState:
    """Update the articles of one link, finding its feed first if needed.

    Args:
        client: HTTP client
        record: Link to update, owned by the caller for the duration
        config: Engine configuration

    Returns:
        The state the link ends up in
    """
    if config is None:
        config = get_config()
    min_interval = timedelta(seconds=config.min_check_interval)

    event = Event.CHECK
    error: Optional[LinkError] = None
    while True:
        step = transition(
            record.state,
            event,
            has_feed_url=bool(record.feed_url),
            discovery_exhausted=discovery_exhausted(record, config),
        )
        logger.debug(f"({record.title}) {record.state.value} --{event.value}--> {step.state.value}")
        _enter(record, step.state, error)
        record.check_invariants()

        if step.effect is Effect.STOP:
            return record.state
        if step.effect is Effect.LOG_IGNORED:
            logger.info(f"Ignoring ({record.title})...")
            return record.state

        error = None
        if step.effect is Effect.RECHECK:
            event = Event.CHECK

        elif step.effect is Effect.DISCOVER:
            try:
                feed_url = await discover_feed_url(client, record)
            except LinkError as e:
                error = e
                logger.warning(f"Feed discovery for ({record.title}) failed: {e}")
                if is_transient(e):
                    # Only transient failures use up the discovery budget.
                    record.discovery_attempts += 1
                    event = Event.TRANSIENT_FAILURE
                else:
                    event = Event.PERMANENT_FAILURE
            else:
                record.feed_url = feed_url
                record.discovery_attempts = 0
                event = Event.FEED_FOUND

        elif step.effect is Effect.REFRESH:
            try:
                await refresh_articles(client, record, min_interval=min_interval)
            except LinkError as e:
                error = e
                logger.warning(f"Refreshing ({record.title}) failed: {e}")
                event = Event.TRANSIENT_FAILURE if is_transient(e) else Event.PERMANENT_FAILURE
            else:
                event = Event.REFRESH_DONE
