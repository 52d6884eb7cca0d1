"""URL helpers."""

from urllib.parse import urljoin, urlsplit

from bookmark_feeds.errors import permanent_error


def force_absolute(base: str, maybe_relative: str) -> str:
    """Resolve maybe_relative against base.

    An absolute URL comes back unchanged. A URL that cannot be parsed is a
    permanent error.
    """
    try:
        urlsplit(base)
        urlsplit(maybe_relative)
        return urljoin(base, maybe_relative)
    except ValueError as e:
        raise permanent_error("Could not resolve %r against %r: %s", maybe_relative, base, e) from e
