"""Last-seen listings per source, kept as one document per repository."""

import logging
from typing import List, Optional

import aiosqlite
from pydantic import ValidationError

from listingwatch.db.database import read_document, write_document
from listingwatch.schemas import Listing

logger = logging.getLogger(__name__)


def _document_name(source: str) -> str:
    return f"snapshot:{source}"


class SnapshotStore:
    """Reads and overwrites the stored snapshot for a source."""

    def __init__(self, db: aiosqlite.Connection):
        self.db = db

    async def load(self, source: str) -> Optional[List[Listing]]:
        """Return the previous snapshot, or None if this source was never seen."""
        data = await read_document(self.db, _document_name(source))
        if not isinstance(data, list):
            return None

        try:
            return [Listing.model_validate(item) for item in data]
        except ValidationError as e:
            logger.warning("Stored snapshot for %s is invalid, treating as absent: %s", source, e)
            return None

    async def save(self, source: str, listings: List[Listing]):
        await write_document(
            self.db, _document_name(source), [l.to_document() for l in listings]
        )
