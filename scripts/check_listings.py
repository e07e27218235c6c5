"""Standalone single check for CI cron jobs.

Runs one full cycle (pull → diff → publish/close) for all configured
repositories, waits for delivery to finish, then exits. Individual
repository failures are logged, not fatal.
"""

import asyncio
import logging

from listingwatch.main import configure_logging, load_settings, open_watcher

logger = logging.getLogger("check_listings")


async def run_check(settings):
    async with open_watcher(settings) as watcher:
        return await watcher.check()


def main():
    configure_logging()
    settings = load_settings()
    results = asyncio.run(run_check(settings))
    logger.info("Check finished: %s", results)


if __name__ == "__main__":
    main()
