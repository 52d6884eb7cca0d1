"""Data models for bookmark_feeds."""

from .schemas import Article, LinkRecord, LinkState, ZERO_TIME

__all__ = [
    "Article",
    "LinkRecord",
    "LinkState",
    "ZERO_TIME",
]
