"""listingwatch: posts Discord alerts for opened and closed job listings.

Scheduler entry point. Runs a check cycle on the configured cron pattern
until interrupted.
"""

import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from dotenv import load_dotenv

from listingwatch.config import ConfigError, Settings
from listingwatch.db.database import get_db, init_db
from listingwatch.jobs.queue import DeliveryQueue
from listingwatch.watcher import Watcher

logger = logging.getLogger("listingwatch")


def configure_logging():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def load_settings() -> Settings:
    """Load .env and settings, exiting with status 1 if they are incomplete."""
    load_dotenv()
    try:
        return Settings.from_env()
    except ConfigError as e:
        logger.error("%s", e)
        sys.exit(1)


@asynccontextmanager
async def open_watcher(settings: Settings) -> AsyncIterator[Watcher]:
    db = await get_db(settings.db_path)
    try:
        await init_db(db)
        logger.info("Database initialized at %s", settings.db_path)
        async with httpx.AsyncClient(timeout=settings.http_timeout) as client:
            queue = DeliveryQueue(interval=settings.update_queue_interval)
            yield Watcher(settings, db, queue, client)
    finally:
        await db.close()


async def serve(settings: Settings):
    async with open_watcher(settings) as watcher:
        scheduler = AsyncIOScheduler()
        scheduler.add_job(
            watcher.check,
            CronTrigger.from_crontab(settings.cron_pattern),
            id="check_listings",
            max_instances=1,
            coalesce=True,
        )
        scheduler.start()
        logger.info("Job started, running on schedule %s", settings.cron_pattern)
        try:
            await asyncio.Event().wait()
        finally:
            scheduler.shutdown(wait=False)


def main():
    configure_logging()
    settings = load_settings()
    try:
        asyncio.run(serve(settings))
    except KeyboardInterrupt:
        logger.info("Stopped")


if __name__ == "__main__":
    main()
