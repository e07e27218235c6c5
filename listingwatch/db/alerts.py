"""Alert lifecycle store.

Maps an alert slug to every message posted for that listing, so a later
close can edit the same messages. The whole mapping lives in a single
document and each mutation rewrites it, so callers must not mutate it
from more than one task at a time.
"""

import logging
import re
from typing import Dict, List

import aiosqlite
from pydantic import ValidationError

from listingwatch.db.database import read_document, write_document
from listingwatch.schemas import AlertRecord, Listing

logger = logging.getLogger(__name__)

ALERTS_DOCUMENT = "alerts"


def normalize_company_slug(company_name: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", company_name.lower())
    return slug.strip("-")


def alert_slug(repo_slug: str, listing: Listing) -> str:
    """Key for a listing's alert history within one repository."""
    return f"{repo_slug}/{normalize_company_slug(listing.company_name)}/{listing.id}"


class AlertStore:
    def __init__(self, db: aiosqlite.Connection):
        self.db = db

    async def _load(self) -> Dict[str, list]:
        data = await read_document(self.db, ALERTS_DOCUMENT)
        if not isinstance(data, dict):
            return {}
        return data

    async def append(self, slug: str, message_id: str, payload: dict):
        data = await self._load()
        record = AlertRecord(message_id=message_id, payload=payload)
        data[slug] = [*data.get(slug, []), record.model_dump()]
        await write_document(self.db, ALERTS_DOCUMENT, data)

    async def history(self, slug: str) -> List[AlertRecord]:
        data = await self._load()
        try:
            return [AlertRecord.model_validate(r) for r in data.get(slug) or []]
        except ValidationError as e:
            logger.warning("Alert history for %s is invalid, treating as empty: %s", slug, e)
            return []

    async def clear(self, slug: str):
        data = await self._load()
        if slug not in data:
            return
        del data[slug]
        await write_document(self.db, ALERTS_DOCUMENT, data)
