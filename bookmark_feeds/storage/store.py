"""In-memory link store.

The store owns every LinkRecord. Records are handed out one at a time with
checkout() and must be returned with checkin() before they can be handed
out again, so no two workers ever touch the same record.
"""

from typing import Dict, List, Optional, Set

from bookmark_feeds.models.schemas import LinkRecord, LinkState


class LinkStore:
    """All known links, keyed by base URL, plus the links noted this session."""

    def __init__(self, links: Optional[Dict[str, LinkRecord]] = None, max_discovery_attempts: int = 0):
        self.links: Dict[str, LinkRecord] = dict(links or {})
        self.max_discovery_attempts = max_discovery_attempts
        # Base URLs we are interested in this session, in the order noted.
        self.noted: List[str] = []
        self._checked_out: Set[str] = set()

    def __len__(self) -> int:
        return len(self.links)

    def __contains__(self, url: str) -> bool:
        return url in self.links

    def get(self, url: str) -> Optional[LinkRecord]:
        return self.links.get(url)

    def interested_in(self, url: str, title: str) -> LinkRecord:
        """Note a link to check this session, creating it if it is new.

        An existing record is left untouched, except that a link that found
        no feed last session is put back to new unless it has used up its
        discovery attempts.
        """
        record = self.links.get(url)
        if record is None:
            record = LinkRecord(base_url=url, title=title)
            self.links[url] = record
        elif record.state is LinkState.NO_FEED_FOUND and not self._gave_up(record):
            record.state = LinkState.NEW

        if url not in self.noted:
            self.noted.append(url)
        return record

    def _gave_up(self, record: LinkRecord) -> bool:
        limit = self.max_discovery_attempts
        return limit > 0 and record.discovery_attempts >= limit

    def checkout(self, url: str) -> LinkRecord:
        """Hand out a record for exclusive use.

        Raises:
            KeyError: if the store has no record for url
            RuntimeError: if the record is already checked out
        """
        record = self.links[url]
        if url in self._checked_out:
            raise RuntimeError(f"{url} is already checked out")
        self._checked_out.add(url)
        return record

    def checkin(self, record: LinkRecord) -> None:
        """Return a record handed out by checkout()."""
        if record.base_url not in self._checked_out:
            raise RuntimeError(f"{record.base_url} was not checked out")
        self._checked_out.discard(record.base_url)

    def is_checked_out(self, url: str) -> bool:
        return url in self._checked_out
