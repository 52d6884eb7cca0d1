"""Database storage for bookmark_feeds.

This module persists the link store in SQLite. The store is loaded once at
the start of a run and saved once at the end.
Database location: ~/.bookmark_feeds/bookmark_feeds.db (or BOOKMARK_FEEDS_DB_PATH env var)
"""

from datetime import datetime
from pathlib import Path
from typing import Optional

import aiosqlite

from bookmark_feeds.config import get_config
from bookmark_feeds.models.schemas import Article, LinkRecord, LinkState
from bookmark_feeds.storage.store import LinkStore


# Singleton connection
_db_connection: Optional[aiosqlite.Connection] = None


async def get_database(db_path: Optional[Path] = None) -> aiosqlite.Connection:
    """Get or create a singleton database connection.

    Args:
        db_path: Database file (defaults to the configured path)

    Returns:
        Active database connection
    """
    global _db_connection

    if _db_connection is None:
        if db_path is None:
            db_path = get_config().db_path
        # Ensure directory exists
        db_path.parent.mkdir(parents=True, exist_ok=True)

        db = await aiosqlite.connect(db_path)
        db.row_factory = aiosqlite.Row
        try:
            await init_database(db)
        except aiosqlite.Error:
            await db.close()
            raise
        _db_connection = db

    return _db_connection


async def init_database(db: Optional[aiosqlite.Connection] = None) -> None:
    """Initialize database tables if they don't exist.

    Args:
        db: Optional database connection (uses singleton if not provided)
    """
    if db is None:
        db = await get_database()

    await db.execute("""
        CREATE TABLE IF NOT EXISTS links (
            base_url TEXT PRIMARY KEY,
            title TEXT NOT NULL DEFAULT '',
            state TEXT NOT NULL,
            feed_url TEXT NOT NULL DEFAULT '',
            last_error TEXT,
            last_read TIMESTAMP,
            last_checked TIMESTAMP,
            discovery_attempts INTEGER NOT NULL DEFAULT 0
        )
    """)

    await db.execute("""
        CREATE TABLE IF NOT EXISTS articles (
            id INTEGER PRIMARY KEY,
            base_url TEXT NOT NULL,
            position INTEGER NOT NULL,
            url TEXT NOT NULL,
            title TEXT NOT NULL,
            publish_time TIMESTAMP NOT NULL,
            FOREIGN KEY (base_url) REFERENCES links(base_url) ON DELETE CASCADE
        )
    """)

    await db.execute("""
        CREATE INDEX IF NOT EXISTS idx_articles_base_url ON articles(base_url, position)
    """)

    await db.commit()


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _format_timestamp(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _parse_state(base_url: str, value: str) -> LinkState:
    try:
        return LinkState(value)
    except ValueError:
        raise ValueError(f"Unknown state {value!r} stored for {base_url}") from None


async def load_store(max_discovery_attempts: int = 0) -> LinkStore:
    """Load every link and its articles.

    A fresh database simply yields an empty store.

    Args:
        max_discovery_attempts: Discovery budget passed on to the store

    Returns:
        LinkStore holding all persisted links

    Raises:
        ValueError: if a stored row cannot be read back
    """
    db = await get_database()

    links = {}
    cursor = await db.execute("SELECT * FROM links ORDER BY base_url")
    async for row in cursor:
        links[row["base_url"]] = LinkRecord(
            base_url=row["base_url"],
            title=row["title"],
            state=_parse_state(row["base_url"], row["state"]),
            feed_url=row["feed_url"],
            last_error=row["last_error"],
            last_read=_parse_timestamp(row["last_read"]),
            last_checked=_parse_timestamp(row["last_checked"]),
            discovery_attempts=row["discovery_attempts"],
        )

    cursor = await db.execute("SELECT * FROM articles ORDER BY base_url, position")
    async for row in cursor:
        record = links.get(row["base_url"])
        if record is None:
            continue
        record.articles.append(Article(
            url=row["url"],
            title=row["title"],
            publish_time=datetime.fromisoformat(row["publish_time"]),
        ))

    return LinkStore(links, max_discovery_attempts=max_discovery_attempts)


async def save_store(store: LinkStore) -> None:
    """Write every link and replace its stored articles, in one transaction.

    Args:
        store: Store to persist
    """
    db = await get_database()

    try:
        for record in store.links.values():
            await db.execute(
                """
                INSERT INTO links (base_url, title, state, feed_url, last_error,
                                   last_read, last_checked, discovery_attempts)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(base_url) DO UPDATE SET
                    title = excluded.title,
                    state = excluded.state,
                    feed_url = excluded.feed_url,
                    last_error = excluded.last_error,
                    last_read = excluded.last_read,
                    last_checked = excluded.last_checked,
                    discovery_attempts = excluded.discovery_attempts
                """,
                (
                    record.base_url,
                    record.title,
                    record.state.value,
                    record.feed_url,
                    record.last_error,
                    _format_timestamp(record.last_read),
                    _format_timestamp(record.last_checked),
                    record.discovery_attempts,
                ),
            )

            await db.execute("DELETE FROM articles WHERE base_url = ?", (record.base_url,))
            await db.executemany(
                """
                INSERT INTO articles (base_url, position, url, title, publish_time)
                VALUES (?, ?, ?, ?, ?)
                """,
                [
                    (record.base_url, i, a.url, a.title, a.publish_time.isoformat())
                    for i, a in enumerate(record.articles)
                ],
            )

        await db.commit()
    except Exception:
        await db.rollback()
        raise


async def set_link_state(base_url: str, state: LinkState) -> bool:
    """Change the stored state of a link, for user edits such as ignoring it.

    Putting a link back to new also gives it a fresh discovery budget.

    Args:
        base_url: Link to update
        state: New state

    Returns:
        True if the link exists
    """
    db = await get_database()

    if state is LinkState.NEW:
        sql = "UPDATE links SET state = ?, last_error = NULL, discovery_attempts = 0 WHERE base_url = ?"
    else:
        sql = "UPDATE links SET state = ?, last_error = NULL WHERE base_url = ?"
    cursor = await db.execute(sql, (state.value, base_url))
    await db.commit()
    return cursor.rowcount > 0


async def close_database() -> None:
    """Close the database connection."""
    global _db_connection

    if _db_connection is not None:
        await _db_connection.close()
        _db_connection = None
