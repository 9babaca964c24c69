"""
Atomic insert of reconciled collection entries and their orders.

Not idempotent on its own: calling it twice with the same payloads inserts
twice. Callers run reconciliation immediately before, in the same request.
"""

from collections.abc import Sequence
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from figsync.core.logging import get_logger
from figsync.models.collection import CollectionEntry, Order
from figsync.services.dates import to_date
from figsync.services.exceptions import CollectionWriteError
from figsync.services.orders import OrderPayload
from figsync.services.reconciliation import CollectionEntryPayload

logger = get_logger(__name__)


def insert_collection_and_orders(
    db: Session,
    entries: Sequence[CollectionEntryPayload],
    orders: Sequence[OrderPayload] = (),
) -> int:
    """
    Insert orders (if any) and then collection entries in one transaction.

    Returns:
        Number of collection entries inserted.

    Raises:
        CollectionWriteError: if any insert fails; nothing is committed.
    """
    order_rows = [_order_row(order) for order in orders]
    entry_rows = [_entry_row(entry) for entry in entries]

    try:
        if order_rows:
            db.add_all(order_rows)
            # Orders first so collection.order_id resolves
            db.flush()
        db.add_all(entry_rows)
        db.flush()
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(
            "Failed to insert to collection and orders",
            extra={
                "extra_fields": {
                    "orders": len(order_rows),
                    "entries": len(entry_rows),
                    "error": str(e),
                }
            },
        )
        raise CollectionWriteError("Failed to insert to collection and orders") from e

    return len(entry_rows)


def _order_row(order: OrderPayload) -> Order:
    return Order(
        id=order.id,
        user_id=order.user_id,
        title=order.title,
        shop=order.shop,
        status=order.status,
        release_date=to_date(order.release_date),
        order_date=to_date(order.order_date),
        payment_date=to_date(order.payment_date),
        shipping_date=to_date(order.shipping_date),
        collection_date=to_date(order.collection_date),
        shipping_method=order.shipping_method,
    )


def _entry_row(entry: CollectionEntryPayload) -> CollectionEntry:
    return CollectionEntry(
        user_id=entry.user_id,
        item_id=entry.item_id,
        order_id=entry.order_id,
        release_id=entry.release_id,
        status=entry.status,
        count=entry.count,
        score=Decimal(entry.score),
        price=Decimal(entry.price),
        shop=entry.shop,
        order_date=to_date(entry.order_date),
        payment_date=to_date(entry.payment_date),
        shipping_date=to_date(entry.shipping_date),
        collection_date=to_date(entry.collection_date),
        shipping_method=entry.shipping_method,
        notes=entry.notes,
    )
