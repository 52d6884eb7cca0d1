"""Storage layer for bookmark_feeds."""

from .store import LinkStore
from .database import (
    get_database,
    init_database,
    load_store,
    save_store,
    set_link_state,
    close_database,
)

__all__ = [
    "LinkStore",
    "get_database",
    "init_database",
    "load_store",
    "save_store",
    "set_link_state",
    "close_database",
]
