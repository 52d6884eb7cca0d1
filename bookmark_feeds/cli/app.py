"""bookmark_feeds command line.

Reads a bookmark file, checks every bookmarked page for new articles and
prints an HTML report of what has not been read yet.
"""

import asyncio
import html
import logging
import sys
from pathlib import Path
from typing import Iterable, List, Optional

import aiosqlite
import click

from bookmark_feeds.config import ReaderConfig, load_config
from bookmark_feeds.logging_config import setup_logging
from bookmark_feeds.models.schemas import LinkState
from bookmark_feeds.services.link_extractor import Link, extract_links
from bookmark_feeds.services.scheduler import check_for_updates
from bookmark_feeds.storage import database
from bookmark_feeds.storage.store import LinkStore

logger = logging.getLogger(__name__)


def render_report(store: LinkStore, links: Iterable[Link], mark_read: bool = True) -> str:
    """Render the unread articles of each bookmark as HTML.

    Bookmarks come out in input order. A link without a usable feed is only
    shown when it has an error to report. Links whose articles are shown are
    marked as read unless mark_read is False.
    """
    lines: List[str] = []
    seen = set()
    for link in links:
        if link.url in seen:
            continue
        seen.add(link.url)

        record = store.get(link.url)
        if record is None:
            continue
        title = html.escape(record.title)

        if record.state is not LinkState.HAS_FEED:
            if record.last_error:
                lines.append(f"<h1>{title}</h1>")
                lines.append(f"<i>ERROR: {html.escape(record.last_error)}</i>")
            continue

        unread = record.unread_articles()
        if not unread:
            continue

        lines.append(f"<h1>{title}</h1>")
        lines.append("<ul>")
        # Articles are kept oldest first.
        for article in unread:
            lines.append(
                f"<li><a href='{html.escape(article.url, quote=True)}'>"
                f"{html.escape(article.title)}</a>"
            )
        lines.append("</ul>")
        if mark_read:
            record.mark_all_as_read()

    return "\n".join(lines) + ("\n" if lines else "")


async def run_check(links: List[Link], config: ReaderConfig, mark_read: bool = True) -> str:
    """Load the store, check the given bookmarks, save and return the report."""
    await database.get_database(config.db_path)
    try:
        store = await database.load_store(config.max_discovery_attempts)
        for link in links:
            store.interested_in(link.url, link.title)

        await check_for_updates(store, config=config)

        report = render_report(store, links, mark_read=mark_read)
        await database.save_store(store)
        return report
    finally:
        await database.close_database()


def _apply_overrides(config: ReaderConfig, db: Optional[str], workers: Optional[int],
                     log_level: Optional[str]) -> ReaderConfig:
    if db:
        config.db_path = Path(db)
    if workers is not None:
        if workers < 1:
            raise click.BadParameter("must be at least 1", param_hint="--workers")
        config.workers = workers
    if log_level:
        config.log_level = log_level.upper()
    return config


@click.group()
@click.option("--db", default=None, help="Database file (default: ~/.bookmark_feeds/bookmark_feeds.db)")
@click.option("--workers", type=int, default=None, help="Links checked concurrently")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Logging level (logs go to stderr)",
)
@click.pass_context
def main(ctx: click.Context, db: Optional[str], workers: Optional[int], log_level: Optional[str]) -> None:
    """Track the feeds behind a list of bookmarks."""
    try:
        config = load_config()
    except ValueError as e:
        raise click.ClickException(str(e))
    ctx.obj = _apply_overrides(config, db, workers, log_level)
    setup_logging(ctx.obj)


@main.command()
@click.argument("bookmarks", type=click.File("rb"), default="-")
@click.option("--no-mark-read", is_flag=True, help="Leave reported articles unread")
@click.pass_obj
def check(config: ReaderConfig, bookmarks, no_mark_read: bool) -> None:
    """Check BOOKMARKS (an HTML file, default stdin) and print unread articles."""
    links = extract_links(bookmarks.read())
    logger.info(f"Read {len(links)} bookmarks")

    try:
        report = asyncio.run(run_check(links, config, mark_read=not no_mark_read))
    except (OSError, ValueError, aiosqlite.Error) as e:
        logger.error(f"Check failed: {e}", exc_info=True)
        raise click.ClickException(str(e))

    click.echo(report, nl=False)


@main.command()
@click.argument("url")
@click.option("--undo", is_flag=True, help="Stop ignoring the link (it is rediscovered)")
@click.pass_obj
def ignore(config: ReaderConfig, url: str, undo: bool) -> None:
    """Stop (or resume) checking the bookmark URL."""
    async def update() -> bool:
        await database.get_database(config.db_path)
        try:
            state = LinkState.NEW if undo else LinkState.IGNORED
            return await database.set_link_state(url, state)
        finally:
            await database.close_database()

    try:
        found = asyncio.run(update())
    except (OSError, aiosqlite.Error) as e:
        logger.error(f"Updating {url} failed: {e}", exc_info=True)
        raise click.ClickException(str(e))

    if not found:
        raise click.ClickException(f"Unknown link: {url}")
    click.echo(f"{'Resumed' if undo else 'Ignoring'} {url}")


if __name__ == "__main__":
    sys.exit(main())
