"""
Import reconciliation.

Splits an import batch into three disjoint parts:
1. rows whose catalog item is known and not yet in the user's collection
   (ready to insert, with orders synthesized for "Ordered" rows)
2. rows whose catalog item is unknown (handed to the external lookup worker)
3. rows whose item the user already has (skipped, so re-imports are harmless)
"""

import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from figsync.core.logging import get_logger
from figsync.schemas.sync import ImportRecord
from figsync.services.catalog import (
    get_owned_item_ids,
    match_catalog_items,
    resolve_latest_releases,
    unknown_external_ids,
)
from figsync.services.dates import sanitize_date
from figsync.services.defaults import default_price, default_score
from figsync.services.orders import OrderLine, OrderPayload, synthesize_orders

logger = get_logger(__name__)


def new_id() -> str:
    return str(uuid.uuid4())


@dataclass
class CollectionEntryPayload:
    """A collection row ready to be written."""

    position: int  # index of the source record in the batch
    user_id: str
    item_id: str
    status: str
    count: int
    score: str
    price: str
    shop: str
    order_date: str | None
    payment_date: str | None
    shipping_date: str | None
    collection_date: str | None
    shipping_method: str
    notes: str
    order_id: str | None = None
    release_id: str | None = None


@dataclass
class ReconciliationResult:
    ready_to_insert: list[CollectionEntryPayload] = field(default_factory=list)
    orders_to_insert: list[OrderPayload] = field(default_factory=list)
    needs_external_lookup: list[ImportRecord] = field(default_factory=list)
    lookup_positions: list[int] = field(default_factory=list)
    skipped_positions: list[int] = field(default_factory=list)


def normalize_record_dates(record: ImportRecord) -> ImportRecord:
    """Return a copy of ``record`` with every date field sanitized."""
    return record.model_copy(
        update={
            "payment_date": sanitize_date(record.payment_date),
            "shipping_date": sanitize_date(record.shipping_date),
            "collecting_date": sanitize_date(record.collecting_date),
            "order_date": sanitize_date(record.order_date),
        }
    )


class Reconciler:
    """Matches import records against the catalog and a user's collection."""

    def __init__(
        self,
        db: Session,
        source: str = "mfc",
        id_factory: Callable[[], str] = new_id,
    ):
        self.db = db
        self.source = source
        self.id_factory = id_factory

    def reconcile(self, records: Sequence[ImportRecord], user_id: str) -> ReconciliationResult:
        result = ReconciliationResult()
        normalized = [normalize_record_dates(record) for record in records]

        matched = match_catalog_items(
            self.db, [record.item_external_id for record in normalized], self.source
        )
        internal_ids = {item.external_id: item.id for item in matched}
        titles = {item.id: item.title for item in matched}

        unknown = unknown_external_ids((record.item_external_id for record in normalized), matched)
        owned = get_owned_item_ids(self.db, internal_ids.values(), user_id)

        to_insert: list[OrderLine] = []
        for position, record in enumerate(normalized):
            if record.item_external_id in unknown:
                result.needs_external_lookup.append(record)
                result.lookup_positions.append(position)
                continue

            item_id = internal_ids[record.item_external_id]
            if item_id in owned:
                result.skipped_positions.append(position)
            else:
                to_insert.append(OrderLine(position=position, record=record, item_id=item_id))

        releases = resolve_latest_releases(self.db, [line.item_id for line in to_insert])

        synthesized = synthesize_orders(
            to_insert,
            user_id,
            titles,
            releases.release_dates,
            self.id_factory,
        )
        result.orders_to_insert = synthesized.orders

        for line in to_insert:
            record = line.record
            result.ready_to_insert.append(
                CollectionEntryPayload(
                    position=line.position,
                    user_id=user_id,
                    item_id=line.item_id,
                    status=record.status,
                    count=record.count,
                    score=default_score(record.score),
                    price=default_price(record.price),
                    shop=record.shop,
                    order_date=record.order_date,
                    payment_date=record.payment_date,
                    shipping_date=record.shipping_date,
                    collection_date=record.collecting_date,
                    shipping_method=record.shipping_method,
                    notes=record.note,
                    order_id=synthesized.order_ids.get(line.position),
                    release_id=releases.release_ids.get(line.item_id),
                )
            )

        logger.debug(
            "Reconciled import batch",
            extra={
                "extra_fields": {
                    "user_id": user_id,
                    "records": len(records),
                    "ready": len(result.ready_to_insert),
                    "orders": len(result.orders_to_insert),
                    "lookup": len(result.needs_external_lookup),
                    "skipped": len(result.skipped_positions),
                }
            },
        )

        return result
