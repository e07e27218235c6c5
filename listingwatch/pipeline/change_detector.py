"""Change detection between successive snapshots of a repository.

Compares the current listings against the previously stored snapshot,
identifying listings that opened (became active and visible) and listings
that closed (lost either flag). Listings that vanish from the dataset
without a flag flip are not reported.
"""

from typing import Dict, List, Optional

from listingwatch.db.snapshots import SnapshotStore
from listingwatch.schemas import ChangeSet, Listing


def compare(previous: Optional[List[Listing]], current: List[Listing]) -> ChangeSet:
    """Classify current listings into opened and closed.

    Args:
        previous: Snapshot from the last check, or None on the first run.
        current: Snapshot just read from the repository.

    Returns:
        ChangeSet with 'opened' and 'closed' in current-snapshot order.
    """
    if previous is None:
        return ChangeSet(opened=[l for l in current if l.is_open])

    known: Dict[tuple, Listing] = {}
    for old in previous:
        # first occurrence wins for duplicate ids
        known.setdefault(old.identity, old)

    opened = []
    closed = []
    for listing in current:
        old = known.get(listing.identity)
        if old is None:
            if listing.is_open:
                opened.append(listing)
            continue

        if listing.is_open and not old.is_open:
            opened.append(listing)
        elif (old.active and not listing.active) or (old.is_visible and not listing.is_visible):
            closed.append(listing)

    return ChangeSet(opened=opened, closed=closed)


async def detect_and_persist(
    store: SnapshotStore,
    source: str,
    current: List[Listing],
) -> ChangeSet:
    """Diff against the stored snapshot, then store the current one.

    The snapshot is overwritten whether or not anything changed, so a
    transition is only ever detected once.
    """
    previous = await store.load(source)
    changes = compare(previous, current)
    await store.save(source, current)
    return changes


def build_change_summary(changes: ChangeSet) -> Dict[str, int]:
    """Summarize changes into counts for storage in check_runs."""
    return {
        "opened_count": len(changes.opened),
        "closed_count": len(changes.closed),
    }
