import uuid
from datetime import date, datetime

from sqlalchemy import BigInteger, Date, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from figsync.core.database import Base


def _new_id() -> str:
    return str(uuid.uuid4())


class Item(Base):
    """Catalog item - one per external catalog entry, shared by all users.

    Rows are written by the external lookup worker; the import engine only
    reads them.
    """

    __tablename__ = "item"
    __table_args__ = (
        UniqueConstraint("source", "external_id", name="item_source_external_id_idx"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)

    # External catalog identity (unique within its source namespace)
    external_id: Mapped[int | None] = mapped_column(Integer, index=True)
    source: Mapped[str] = mapped_column(String(20), default="mfc")  # mfc, custom

    title: Mapped[str] = mapped_column(String(500), index=True)
    category: Mapped[str | None] = mapped_column(String(100))
    scale: Mapped[str | None] = mapped_column(String(50))
    image: Mapped[str | None] = mapped_column(String(500))

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    releases: Mapped[list["ItemRelease"]] = relationship(
        back_populates="item", cascade="all, delete-orphan"
    )


class ItemRelease(Base):
    """A dated release of a catalog item (original run, rerelease, limited...)."""

    __tablename__ = "item_release"
    __table_args__ = (Index("item_release_item_id_date_idx", "item_id", "date"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    item_id: Mapped[str] = mapped_column(ForeignKey("item.id", ondelete="CASCADE"))

    release_date: Mapped[date] = mapped_column("date", Date)
    type: Mapped[str | None] = mapped_column(String(50))
    price: Mapped[int | None] = mapped_column(BigInteger)  # minor units
    price_currency: Mapped[str | None] = mapped_column(String(3))
    barcode: Mapped[str | None] = mapped_column(String(50))

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    item: Mapped["Item"] = relationship(back_populates="releases")
