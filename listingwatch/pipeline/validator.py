"""Validation of raw listings.json entries and post-age filtering."""

import logging
import time
from typing import Any, List, Optional

from pydantic import ValidationError

from listingwatch.schemas import Listing

logger = logging.getLogger(__name__)


def parse_listings(raw: Any, source: str = "unknown") -> List[Listing]:
    """Validate raw entries into Listings, dropping the ones that fail.

    Order is preserved. A non-list document yields no listings.
    """
    if not isinstance(raw, list):
        logger.warning("%s: listings document is not a list, ignoring", source)
        return []

    listings = []
    rejected = 0
    for item in raw:
        try:
            listings.append(Listing.model_validate(item))
        except ValidationError as e:
            rejected += 1
            logger.debug("%s: rejected listing %r: %s", source, item.get("id") if isinstance(item, dict) else item, e)

    if rejected:
        logger.warning("%s: %d/%d listings failed validation", source, rejected, len(raw))
    return listings


def is_recent(listing: Listing, max_age: float, now: Optional[float] = None) -> bool:
    """True when the listing was posted within max_age seconds."""
    if now is None:
        now = time.time()
    return now - listing.date_posted <= max_age


def filter_recent(listings: List[Listing], max_age: float, now: Optional[float] = None) -> List[Listing]:
    return [l for l in listings if is_recent(l, max_age, now)]
