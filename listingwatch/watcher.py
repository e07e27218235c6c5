"""Check cycle orchestration.

For every configured repository, in order: update the local clone, diff
its listings against the stored snapshot, and queue publish tasks for the
opened listings followed by close tasks for the closed ones. The delivery
queue is drained before the cycle ends, and a new cycle never starts while
another is still running.
"""

import asyncio
import logging
import time
from functools import partial
from typing import Awaitable, Callable, Dict, Optional

import aiosqlite
import httpx

from listingwatch.config import Category, Settings
from listingwatch.db.alerts import AlertStore
from listingwatch.db.database import finish_check_run, start_check_run
from listingwatch.db.snapshots import SnapshotStore
from listingwatch.jobs.queue import DeliveryQueue
from listingwatch.notify.discord import DiscordNotifier, repo_slug_from_url
from listingwatch.pipeline.change_detector import build_change_summary, detect_and_persist
from listingwatch.pipeline.validator import filter_recent, parse_listings
from listingwatch.sources.repository import (
    AcquisitionError,
    load_listings_document,
    local_path,
    update_repository,
)

logger = logging.getLogger(__name__)


class Watcher:
    def __init__(
        self,
        settings: Settings,
        db: aiosqlite.Connection,
        queue: DeliveryQueue,
        client: httpx.AsyncClient,
        acquire: Callable[[str, str], Awaitable[None]] = update_repository,
        clock: Callable[[], float] = time.time,
    ):
        self.settings = settings
        self.db = db
        self.queue = queue
        self.snapshots = SnapshotStore(db)
        self.alerts = AlertStore(db)
        self.notifiers: Dict[str, DiscordNotifier] = {
            category.name: DiscordNotifier(
                category.discord, self.alerts, client, interval=queue.interval
            )
            for category in settings.categories
        }
        self._acquire = acquire
        self._clock = clock
        self._running = asyncio.Lock()

    async def check(self) -> Optional[Dict[str, dict]]:
        """Run one full check cycle. Returns per-repository results.

        Returns None when a previous cycle is still in progress.
        """
        if self._running.locked():
            logger.warning("Previous check still running, skipping this trigger")
            return None

        async with self._running:
            logger.info("Checking for new listings...")
            results = {}
            for category in self.settings.categories:
                for repo_url in category.repositories:
                    repo_slug = repo_slug_from_url(repo_url)
                    results[repo_slug] = await self.check_source(category, repo_url)

            if len(self.queue):
                logger.info("Delivering %d notification tasks", len(self.queue))
            await self.queue.run()
            logger.info("Check complete: %s", results)
            return results

    async def check_source(self, category: Category, repo_url: str) -> dict:
        """Diff one repository and queue its notifications."""
        repo_slug = repo_slug_from_url(repo_url)
        run_id = None

        try:
            run_id = await start_check_run(self.db, repo_slug)
            path = local_path(self.settings.cache_dir, repo_slug)
            await self._acquire(repo_url, path)

            raw = load_listings_document(path)
            if raw is None:
                await finish_check_run(self.db, run_id, "empty")
                return {"status": "empty", "opened": 0, "closed": 0}

            current = parse_listings(raw, repo_slug)
            changes = await detect_and_persist(self.snapshots, repo_slug, current)
            summary = build_change_summary(changes)

            opened = filter_recent(changes.opened, self.settings.max_post_age, self._clock())
            if len(opened) < len(changes.opened):
                logger.info(
                    "%s: skipping %d opened listings older than max post age",
                    repo_slug, len(changes.opened) - len(opened),
                )

            notifier = self.notifiers[category.name]
            if opened:
                logger.info("Found %d opened listings in %s", len(opened), repo_slug)
            for listing in opened:
                self.queue.enqueue(
                    partial(notifier.publish, repo_slug, listing),
                    label=f"publish {repo_slug} {listing.id}",
                )

            if changes.closed:
                logger.info("Found %d closed listings in %s", len(changes.closed), repo_slug)
            for listing in changes.closed:
                self.queue.enqueue(
                    partial(notifier.close, repo_slug, listing),
                    label=f"close {repo_slug} {listing.id}",
                )

            await finish_check_run(
                self.db, run_id, "completed",
                opened_count=summary["opened_count"],
                closed_count=summary["closed_count"],
            )
            return {
                "status": "completed",
                "opened": len(opened),
                "closed": len(changes.closed),
            }

        except AcquisitionError as e:
            logger.error("%s: skipped, %s", repo_slug, e)
            await self._record_failure(run_id, "skipped", str(e))
            return {"status": "skipped", "error": str(e)}
        except Exception as e:
            logger.error("%s: failed: %s", repo_slug, e, exc_info=True)
            await self._record_failure(run_id, "failed", str(e))
            return {"status": "failed", "error": str(e)}

    async def _record_failure(self, run_id: Optional[int], status: str, error: str):
        if run_id is None:
            return
        try:
            await finish_check_run(self.db, run_id, status, error=error)
        except aiosqlite.Error as e:
            logger.error("Could not record check run %s: %s", run_id, e)
