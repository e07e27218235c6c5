"""Local clones of the listing repositories.

Existing clones are fast-forwarded with ``git pull``; a clone that fails to
pull is removed and cloned again. Only a failed clone is reported to the
caller, as AcquisitionError.
"""

import asyncio
import json
import logging
import os
import shutil
from typing import List, Optional

from listingwatch.config import LISTINGS_PATH

logger = logging.getLogger(__name__)


class AcquisitionError(Exception):
    """A repository could not be cloned."""


class GitCommandError(Exception):
    pass


async def run_git(args: List[str], cwd: Optional[str] = None) -> str:
    proc = await asyncio.create_subprocess_exec(
        "git", *args,
        cwd=cwd,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stdout, stderr = await proc.communicate()
    if proc.returncode != 0:
        raise GitCommandError(
            f"git {' '.join(args)} failed ({proc.returncode}): {stderr.decode(errors='replace').strip()}"
        )
    return stdout.decode(errors="replace")


def local_path(cache_dir: str, repo_slug: str) -> str:
    return os.path.join(cache_dir, repo_slug.replace("/", "-"))


async def clone(url: str, path: str):
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    try:
        await run_git(["clone", "--depth", "1", url, path])
    except (GitCommandError, OSError) as e:
        raise AcquisitionError(f"Failed to clone {url}: {e}") from e
    logger.info("Cloned %s -> %s", url, path)


async def update_repository(url: str, path: str):
    """Bring the clone at path up to date with url."""
    if not os.path.isdir(path):
        await clone(url, path)
        return

    try:
        output = await run_git(["pull", "--ff-only"], cwd=path)
        logger.info("Pulled %s: %s", url, output.strip().splitlines()[-1] if output.strip() else "no output")
    except (GitCommandError, OSError) as e:
        logger.error("Failed to pull %s, recloning: %s", url, e)
        shutil.rmtree(path, ignore_errors=True)
        await clone(url, path)


def load_listings_document(path: str) -> Optional[list]:
    """Read listings.json from a clone, or None when it is missing or unreadable."""
    listings_file = os.path.join(path, LISTINGS_PATH)
    if not os.path.exists(listings_file):
        logger.warning("No listings file at %s", listings_file)
        return None

    try:
        with open(listings_file, encoding="utf-8") as f:
            return json.load(f)
    except (OSError, ValueError) as e:
        logger.warning("Could not read %s: %s", listings_file, e)
        return None
