"""
Order synthesis for imported "Ordered" records.

Export rows that share an order marker belong to one purchase order. Each
distinct marker in a batch becomes exactly one new order; an "Ordered" row
without a marker is an order of its own. Existing orders are never merged
into, even when a marker happens to equal a stored order id.
"""

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field

from figsync.schemas.sync import ORDERED_STATUS, ImportRecord


@dataclass(frozen=True)
class OrderLine:
    """An import record that resolved to a catalog item and will be inserted."""

    position: int  # index of the record in the original batch
    record: ImportRecord
    item_id: str


@dataclass
class OrderPayload:
    """An order row ready to be written."""

    id: str
    user_id: str
    title: str
    shop: str
    release_date: str | None
    order_date: str | None
    payment_date: str | None
    shipping_date: str | None
    collection_date: str | None
    shipping_method: str
    status: str = ORDERED_STATUS
    line_positions: list[int] = field(default_factory=list)


@dataclass
class SynthesizedOrders:
    orders: list[OrderPayload] = field(default_factory=list)
    order_ids: dict[int, str] = field(default_factory=dict)  # batch position -> order id


def synthesize_orders(
    lines: Sequence[OrderLine],
    user_id: str,
    titles: Mapping[str, str],
    release_dates: Mapping[str, str],
    id_factory: Callable[[], str],
) -> SynthesizedOrders:
    """
    Group "Ordered" lines into orders.

    Args:
        lines: Lines destined for insertion; non-"Ordered" lines are ignored.
        user_id: Owner of the new orders.
        titles: Catalog title per item id.
        release_dates: Latest release date per item id.
        id_factory: Generator for new order ids.

    Returns:
        The orders in first-seen order, and the order id for each line position.
    """
    groups: list[tuple[str, str, list[OrderLine]]] = []  # (label, order id, lines)
    by_marker: dict[str, list[OrderLine]] = {}

    for line in lines:
        if line.record.status != ORDERED_STATUS:
            continue

        marker = line.record.order_id
        if marker is None:
            order_id = id_factory()
            groups.append((order_id, order_id, [line]))
        elif marker in by_marker:
            by_marker[marker].append(line)
        else:
            group_lines = [line]
            by_marker[marker] = group_lines
            groups.append((marker, id_factory(), group_lines))

    result = SynthesizedOrders()
    for label, order_id, group_lines in groups:
        first = group_lines[0].record

        title = next(
            (titles[line.item_id] for line in group_lines if titles.get(line.item_id)),
            f"Order {label}",
        )
        release_date = next(
            (release_dates[line.item_id] for line in group_lines if line.item_id in release_dates),
            None,
        )

        result.orders.append(
            OrderPayload(
                id=order_id,
                user_id=user_id,
                title=title,
                shop=first.shop,
                release_date=release_date,
                order_date=first.order_date,
                payment_date=first.payment_date,
                shipping_date=first.shipping_date,
                collection_date=first.collecting_date,
                shipping_method=first.shipping_method,
                line_positions=[line.position for line in group_lines],
            )
        )
        for line in group_lines:
            result.order_ids[line.position] = order_id

    return result
