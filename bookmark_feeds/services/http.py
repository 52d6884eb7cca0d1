"""Shared HTTP client for feed discovery and refresh."""

import httpx

from bookmark_feeds.config import ReaderConfig


def create_client(config: ReaderConfig) -> httpx.AsyncClient:
    """Create the client shared read-only by every worker.

    Requests follow redirects and are never timed out: a slow server only
    holds up the worker handling that link.
    """
    return httpx.AsyncClient(
        follow_redirects=True,
        timeout=None,
        headers={"User-Agent": config.user_agent},
    )
