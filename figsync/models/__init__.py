from figsync.models.collection import CollectionEntry, Order
from figsync.models.item import Item, ItemRelease

__all__ = [
    "Item",
    "ItemRelease",
    "CollectionEntry",
    "Order",
]
