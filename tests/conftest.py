"""Shared fixtures for bookmark_feeds tests."""

from unittest.mock import AsyncMock, MagicMock

import pytest


@pytest.fixture
def anyio_backend():
    """The engine runs on asyncio."""
    return "asyncio"


def make_response(status_code=200, content=b"", content_type="text/html"):
    """Build a stand-in for an httpx response."""
    response = MagicMock()
    response.status_code = status_code
    response.content = content
    response.text = content.decode("utf-8", errors="replace")
    response.headers = {"content-type": content_type}
    return response


def make_client(routes, default=None):
    """Build a mock HTTP client answering GETs from a url -> response map.

    A route may map to an exception instance, which is raised instead.
    Requested URLs are recorded on client.requested.
    """
    client = AsyncMock()
    client.requested = []

    async def mock_get(url, **kwargs):
        client.requested.append(url)
        result = routes.get(url, default)
        if result is None:
            return make_response(status_code=404)
        if isinstance(result, BaseException):
            raise result
        return result

    client.get = mock_get
    return client
