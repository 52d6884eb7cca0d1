"""Feed parser service.

This module extracts articles from RSS 2.0, Atom and RDF documents. All three
share one extraction routine: their item-level shape is close enough that
the element names below cover them.
"""

import logging
import re
from dataclasses import replace
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Callable, List, Optional

from lxml import etree

from bookmark_feeds.errors import LinkError, permanent_error
from bookmark_feeds.models.schemas import Article, ZERO_TIME
from bookmark_feeds.services.urls import force_absolute

logger = logging.getLogger(__name__)

# Local names of the root elements we know how to read.
FEED_ROOTS = frozenset({"rss", "feed", "RDF"})

ITEM_TAGS = frozenset({"item", "entry"})
TIME_TAGS = frozenset({"pubDate", "updated", "date"})

CHUNK_SIZE = 16 * 1024

UTF8_BOM = b"\xef\xbb\xbf"

# YYYY-MM-DDTHH:MM:SS[.fraction](Z|+HH:MM|-HH:MM), "T" or space between date and time
RFC3339_RE = re.compile(
    r"^\d{4}-\d{2}-\d{2}[Tt ]\d{2}:\d{2}:\d{2}(\.\d+)?([Zz]|[+-]\d{2}:\d{2})$"
)

ArticleParser = Callable[[bytes], List[Article]]


def _local_name(tag) -> str:
    # Comments and processing instructions have non-string tags.
    if not isinstance(tag, str):
        return ""
    return etree.QName(tag).localname


def _text_of(element) -> str:
    return etree.tostring(element, method="text", encoding="unicode", with_tail=False)


def _pull_parser(events) -> etree.XMLPullParser:
    return etree.XMLPullParser(
        events=events,
        resolve_entities=False,
        no_network=True,
    )


def _document_start(data: bytes) -> bytes:
    """Drop whitespace before the XML declaration, which lxml rejects."""
    bom = data.startswith(UTF8_BOM)
    if bom:
        data = data[len(UTF8_BOM):]
    data = data.lstrip(b" \t\r\n")
    return UTF8_BOM + data if bom else data


def first_start_element(data: bytes) -> str:
    """Return the local name of the document's first start element.

    Only as much of the document as needed is parsed, so trailing garbage
    after the root start tag does not matter here.

    Raises:
        LinkError: permanent, if no start element can be read
    """
    data = _document_start(data)
    parser = _pull_parser(("start",))
    for offset in range(0, len(data), CHUNK_SIZE):
        error = None
        try:
            parser.feed(data[offset:offset + CHUNK_SIZE])
        except etree.XMLSyntaxError as e:
            error = e
        # A syntax error later in the chunk still leaves earlier events readable.
        for _, element in parser.read_events():
            return _local_name(element.tag)
        if error is not None:
            raise permanent_error("No start element found: %s", error) from error

    # The push parser may hold back the tail of the input until it is closed.
    try:
        parser.close()
    except etree.XMLSyntaxError:
        pass
    for _, element in parser.read_events():
        return _local_name(element.tag)

    raise permanent_error("No start element found.")


def parser_for_root(root: str) -> Optional[ArticleParser]:
    """Return the article parser for a feed root element, if we know it."""
    if root in FEED_ROOTS:
        return parse_articles
    return None


def parse_time(text: str) -> datetime:
    """Parse a feed timestamp.

    RSS calls for RFC 822, but feeds in the wild use RFC 1123,
    numeric zones, RFC 3339 and bare dates as well, so try each in turn.
    Times without a zone are taken as UTC.

    Raises:
        LinkError: permanent, if no format matches
    """
    value = text.strip()

    # RFC 822 / RFC 1123, with a zone name or a numeric zone
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        parsed = None

    # RFC 3339
    if parsed is None and RFC3339_RE.match(value):
        try:
            parsed = datetime.fromisoformat(value.upper().replace("Z", "+00:00"))
        except ValueError:
            parsed = None

    # Bare YYYY-M-D
    if parsed is None:
        try:
            parsed = datetime.strptime(value, "%Y-%m-%d")
        except ValueError:
            raise permanent_error("Could not parse time: %s", text) from None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class _ArticleBuilder:
    """Accumulates the fields of one item/entry while it is being parsed."""

    def __init__(self, element, looks_like_atom: bool):
        self.element = element
        self.looks_like_atom = looks_like_atom
        self.title = ""
        self.url = ""
        self.atom_links = []
        self.publish_time = ZERO_TIME
        self.time_seen = False

    def start(self, element, name: str) -> None:
        if self.looks_like_atom and name == "link":
            # Atom carries the URL in the href attribute, not the body.
            href = element.get("href")
            if href is None:
                raise permanent_error("Could not find href attribute for entry link.")
            self.atom_links.append((element.get("rel"), href))

    def end(self, element, name: str) -> None:
        if name == "title":
            # Some feeds carry more than one title under different
            # namespaces (e.g. media:title). All of them are appended.
            self.title += _text_of(element).strip()
        elif name == "link" and not self.looks_like_atom:
            text = _text_of(element).strip()
            if text:
                self.url = text
        elif name in TIME_TAGS and not self.time_seen:
            self.publish_time = parse_time(_text_of(element))
            self.time_seen = True

    def build(self) -> Article:
        url = self.url
        if self.looks_like_atom and self.atom_links:
            alternates = [href for rel, href in self.atom_links if rel in (None, "alternate")]
            url = alternates[0] if alternates else self.atom_links[0][1]
        return Article(url=url, title=self.title, publish_time=self.publish_time)


def parse_articles(data: bytes) -> List[Article]:
    """Extract every item (RSS/RDF) or entry (Atom) from a feed document.

    Channels are not distinguished: all items in the document are returned,
    in document order.

    Raises:
        LinkError: permanent, on malformed XML (including mismatched closing
            tags), a missing Atom link href or an unparsable publish time
    """
    data = _document_start(data)
    parser = _pull_parser(("start", "end"))
    articles: List[Article] = []
    current: Optional[_ArticleBuilder] = None

    def consume(events):
        nonlocal current
        for event, element in events:
            name = _local_name(element.tag)
            if event == "start":
                if current is None:
                    if name in ITEM_TAGS:
                        current = _ArticleBuilder(element, looks_like_atom=(name == "entry"))
                else:
                    current.start(element, name)
            elif current is not None:
                if element is current.element:
                    articles.append(current.build())
                    current = None
                    element.clear()
                else:
                    current.end(element, name)

    try:
        for offset in range(0, len(data), CHUNK_SIZE):
            parser.feed(data[offset:offset + CHUNK_SIZE])
            consume(parser.read_events())
        parser.close()
        consume(parser.read_events())
    except etree.XMLSyntaxError as e:
        raise permanent_error("Malformed feed: %s", e) from e

    return articles


def absolutize_articles(base_url: str, articles: List[Article]) -> List[Article]:
    """Sort articles oldest first and resolve their URLs against base_url.

    All or nothing: if any URL cannot be resolved the whole batch is dropped.

    Raises:
        LinkError: permanent, if an article URL cannot be resolved
    """
    ordered = sorted(articles, key=lambda a: a.publish_time)
    try:
        return [replace(a, url=force_absolute(base_url, a.url)) for a in ordered]
    except LinkError:
        logger.warning(f"Discarding {len(articles)} articles for {base_url}: bad article URL")
        raise
