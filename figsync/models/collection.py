import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Date, DateTime, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from figsync.core.database import Base


def _new_id() -> str:
    return str(uuid.uuid4())


class Order(Base):
    """A purchase order grouping one or more collection entries."""

    __tablename__ = "order"
    __table_args__ = (Index("order_user_id_status_idx", "user_id", "status"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String(64), index=True)

    title: Mapped[str] = mapped_column(String(500))
    shop: Mapped[str] = mapped_column(String(255), default="")
    status: Mapped[str] = mapped_column(String(20), default="Ordered")

    # Month/year the order is expected to release (first of month)
    release_date: Mapped[date | None] = mapped_column(Date, index=True)
    order_date: Mapped[date | None] = mapped_column(Date)
    payment_date: Mapped[date | None] = mapped_column(Date)
    shipping_date: Mapped[date | None] = mapped_column(Date)
    collection_date: Mapped[date | None] = mapped_column(Date)
    shipping_method: Mapped[str] = mapped_column(String(20), default="n/a")
    notes: Mapped[str] = mapped_column(Text, default="")

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    entries: Mapped[list["CollectionEntry"]] = relationship(back_populates="order")


class CollectionEntry(Base):
    """One owned, ordered or sold copy of a catalog item in a user's collection.

    (user_id, item_id) is deliberately not unique: a user may own several
    copies. Import de-duplication happens in the reconciliation pass.
    """

    __tablename__ = "collection"
    __table_args__ = (Index("collection_user_id_item_id_idx", "user_id", "item_id"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    item_id: Mapped[str] = mapped_column(ForeignKey("item.id", ondelete="CASCADE"))
    order_id: Mapped[str | None] = mapped_column(ForeignKey("order.id", ondelete="SET NULL"))
    release_id: Mapped[str | None] = mapped_column(
        ForeignKey("item_release.id", ondelete="SET NULL")
    )

    status: Mapped[str] = mapped_column(String(20), default="Owned")
    count: Mapped[int] = mapped_column(Integer, default=1)
    score: Mapped[Decimal] = mapped_column(Numeric(3, 1), default=Decimal("0.0"))
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0.00"))
    shop: Mapped[str] = mapped_column(String(255), default="")

    order_date: Mapped[date | None] = mapped_column(Date)
    payment_date: Mapped[date | None] = mapped_column(Date)
    shipping_date: Mapped[date | None] = mapped_column(Date)
    collection_date: Mapped[date | None] = mapped_column(Date)
    shipping_method: Mapped[str] = mapped_column(String(20), default="n/a")
    notes: Mapped[str] = mapped_column(Text, default="")

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    order: Mapped["Order | None"] = relationship(back_populates="entries")
