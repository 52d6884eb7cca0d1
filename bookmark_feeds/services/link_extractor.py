"""Link extraction from HTML.

Pulls <a href> and <link href> elements out of a page, in document order.
Used both for the bookmark file and for pages probed during feed discovery.
"""

from dataclasses import dataclass
from typing import List

from bs4 import BeautifulSoup


@dataclass(frozen=True)
class Link:
    """A link found in an HTML document."""

    url: str
    title: str


def extract_links(html) -> List[Link]:
    """Extract every anchor and link element that has an href.

    Anchors are titled by their text. <link> elements are titled by their
    type attribute, so an alternate of type application/rss+xml reads as a
    feed link.

    Args:
        html: Page markup, as str or bytes

    Returns:
        List of Link objects
    """
    soup = BeautifulSoup(html, "lxml")

    links = []
    for element in soup.find_all(["a", "link"]):
        href = (element.get("href") or "").strip()
        if not href:
            continue

        if element.name == "link":
            title = element.get("type", "")
        else:
            title = element.get_text(" ", strip=True)

        links.append(Link(url=href, title=title))

    return links
