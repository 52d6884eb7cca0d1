"""Concurrent update scheduler.

Fans the links noted in a store out over a fixed pool of worker tasks and
waits until every one of them has been processed.
"""

import asyncio
import logging
from typing import Optional

import httpx

from bookmark_feeds.config import ReaderConfig, get_config
from bookmark_feeds.models.schemas import LinkRecord, LinkState
from bookmark_feeds.services.http import create_client
from bookmark_feeds.services.lifecycle import check_link
from bookmark_feeds.storage.store import LinkStore

logger = logging.getLogger(__name__)


async def _worker(
    name: str,
    queue: "asyncio.Queue[LinkRecord]",
    client: httpx.AsyncClient,
    store: LinkStore,
    config: ReaderConfig,
) -> None:
    """Process records one at a time until cancelled."""
    while True:
        record = await queue.get()
        try:
            await check_link(client, record, config)
        except Exception as e:
            # One bad link must not take the batch down with it.
            logger.exception(f"{name}: unexpected error checking ({record.title})")
            if record.state is not LinkState.IGNORED:
                record.state = LinkState.TRANSIENT_ERROR
                record.last_error = f"Unexpected error: {e}"
        finally:
            store.checkin(record)
            queue.task_done()


async def check_for_updates(
    store: LinkStore,
    client: Optional[httpx.AsyncClient] = None,
    config: Optional[ReaderConfig] = None,
) -> None:
    """Check every link noted in the store for new articles.

    Blocks until each noted link has been processed exactly once. Records are
    only safe to read again once this returns.

    Args:
        store: Store whose noted links are checked
        client: HTTP client shared by the workers (one is created if omitted)
        config: Engine configuration
    """
    if config is None:
        config = get_config()

    if client is None:
        async with create_client(config) as owned_client:
            await check_for_updates(store, owned_client, config)
        return

    records = [store.checkout(url) for url in store.noted]
    if not records:
        return

    logger.info(f"Checking {len(records)} links with {config.workers} workers")

    queue: "asyncio.Queue[LinkRecord]" = asyncio.Queue()
    for record in records:
        queue.put_nowait(record)

    workers = [
        asyncio.create_task(_worker(f"worker-{i}", queue, client, store, config))
        for i in range(min(config.workers, len(records)))
    ]

    await queue.join()

    for task in workers:
        task.cancel()
    await asyncio.gather(*workers, return_exceptions=True)

    logger.info(f"Finished checking {len(records)} links")
