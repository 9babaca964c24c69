"""
Batch lookups against the catalog and the user's collection.

Each function issues at most one read query per call and none for empty
input, so a whole import batch is reconciled in a fixed number of round trips.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from figsync.models.collection import CollectionEntry
from figsync.models.item import Item, ItemRelease


@dataclass(frozen=True)
class MatchedItem:
    """A catalog item resolved from an external catalog id."""

    id: str
    external_id: int
    title: str


@dataclass
class LatestReleases:
    """Most recent release per item, keyed by internal item id."""

    release_ids: dict[str, str] = field(default_factory=dict)
    release_dates: dict[str, str] = field(default_factory=dict)  # ISO dates


def match_catalog_items(
    db: Session,
    external_ids: Iterable[int],
    source: str = "mfc",
) -> list[MatchedItem]:
    """Resolve external catalog ids to catalog items within one source namespace."""
    unique_ids = sorted(set(external_ids))
    if not unique_ids:
        return []

    rows = (
        db.query(Item.id, Item.external_id, Item.title)
        .filter(Item.source == source, Item.external_id.in_(unique_ids))
        .all()
    )

    return [MatchedItem(id=row.id, external_id=row.external_id, title=row.title) for row in rows]


def unknown_external_ids(external_ids: Iterable[int], matched: Iterable[MatchedItem]) -> set[int]:
    """External ids with no catalog match."""
    return set(external_ids) - {item.external_id for item in matched}


def get_owned_item_ids(db: Session, item_ids: Iterable[str], user_id: str) -> set[str]:
    """Return the subset of ``item_ids`` already in the user's collection."""
    unique_ids = set(item_ids)
    if not unique_ids:
        return set()

    rows = (
        db.query(CollectionEntry.item_id)
        .filter(
            CollectionEntry.user_id == user_id,
            CollectionEntry.item_id.in_(unique_ids),
        )
        .distinct()
        .all()
    )

    return {row.item_id for row in rows}


def resolve_latest_releases(db: Session, item_ids: Iterable[str]) -> LatestReleases:
    """
    Find the most recent release of each item.

    The latest release date wins; on equal dates the most recently created
    release record wins. Items without releases are absent from both maps.
    """
    result = LatestReleases()
    unique_ids = set(item_ids)
    if not unique_ids:
        return result

    rows = (
        db.query(ItemRelease.id, ItemRelease.item_id, ItemRelease.release_date)
        .filter(ItemRelease.item_id.in_(unique_ids))
        .order_by(
            ItemRelease.item_id,
            ItemRelease.release_date.desc(),
            ItemRelease.created_at.desc(),
            ItemRelease.id.desc(),
        )
        .all()
    )

    # Rows arrive newest-first per item; keep the first one seen
    for row in rows:
        if row.item_id in result.release_ids:
            continue
        result.release_ids[row.item_id] = row.id
        result.release_dates[row.item_id] = row.release_date.isoformat()

    return result
