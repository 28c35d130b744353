import asyncio
import contextlib
import logging
import sqlite3
from contextlib import asynccontextmanager

from cvrag.services.profile_service import get_draft_store

logger = logging.getLogger(__name__)

_PURGE_INTERVAL_SECONDS = 3600


def _purge_drafts() -> None:
    try:
        deleted = get_draft_store().purge_expired()
    except sqlite3.Error as exc:
        logger.warning("draft_expiry_purge_failed: %s", exc)
        return
    if deleted:
        logger.info("draft_expiry_purge deleted=%s", deleted)


@asynccontextmanager
async def lifespan(app):
    _purge_drafts()
    stop_event = asyncio.Event()

    async def periodic_purge() -> None:
        while not stop_event.is_set():
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=_PURGE_INTERVAL_SECONDS)
            except asyncio.TimeoutError:
                _purge_drafts()

    purge_task = asyncio.create_task(periodic_purge())
    yield
    stop_event.set()
    if not purge_task.done():
        purge_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await purge_task
