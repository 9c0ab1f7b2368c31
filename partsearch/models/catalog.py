"""Catalog models.

Catalog entities are created and mutated by the catalog-management side of
the marketplace. This service only reads them.

- items: sellable parts
- categories: self-referencing forest (parent_id)
- manufacturers / vehicle_models: vehicles a part fits
- item_images: ordered images per item (lowest id is the primary image)
"""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String, Table, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from partsearch.stores.postgres import Base


item_category = Table(
    "item_category",
    Base.metadata,
    Column("item_id", ForeignKey("items.id", ondelete="CASCADE"), primary_key=True),
    Column("category_id", ForeignKey("categories.id", ondelete="CASCADE"), primary_key=True, index=True),
)

item_vehicle_models = Table(
    "item_vehicle_models",
    Base.metadata,
    Column("item_id", ForeignKey("items.id", ondelete="CASCADE"), primary_key=True),
    Column(
        "vehicle_model_id",
        ForeignKey("vehicle_models.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    ),
)


class Manufacturer(Base):
    """Vehicle manufacturer (e.g. Toyota)."""

    __tablename__ = "manufacturers"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(200), index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self) -> str:
        return f"<Manufacturer {self.name}>"


class VehicleModel(Base):
    """A vehicle model (optionally a variant over a year range)."""

    __tablename__ = "vehicle_models"

    id: Mapped[int] = mapped_column(primary_key=True)
    manufacturer_id: Mapped[int] = mapped_column(ForeignKey("manufacturers.id"), index=True)

    model_name: Mapped[str] = mapped_column(String(200))
    variant: Mapped[str | None] = mapped_column(String(200))
    year_from: Mapped[int | None] = mapped_column(Integer)
    year_to: Mapped[int | None] = mapped_column(Integer)

    def __repr__(self) -> str:
        return f"<VehicleModel {self.model_name} {self.variant or ''}>"


class Category(Base):
    """Catalog category. parent_id forms a forest."""

    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(primary_key=True)
    parent_id: Mapped[int | None] = mapped_column(ForeignKey("categories.id"), index=True)

    name: Mapped[str] = mapped_column(String(200))
    slug: Mapped[str | None] = mapped_column(String(200), unique=True)
    sort_order: Mapped[int] = mapped_column(Integer, default=0)

    def __repr__(self) -> str:
        return f"<Category {self.id} {self.name}>"


class Item(Base):
    """Catalog item (a sellable part)."""

    __tablename__ = "items"

    id: Mapped[int] = mapped_column(primary_key=True)

    name: Mapped[str] = mapped_column(String(255), index=True)
    description: Mapped[str | None] = mapped_column(Text)
    sku: Mapped[str | None] = mapped_column(String(100), index=True)

    # Universal parts fit every manufacturer
    is_universal: Mapped[bool] = mapped_column(default=False)

    # Pricing
    price: Mapped[float | None] = mapped_column(Numeric(12, 2, asdecimal=False))
    discount: Mapped[float | None] = mapped_column(Numeric(12, 2, asdecimal=False))
    sale_price: Mapped[float | None] = mapped_column(Numeric(12, 2, asdecimal=False))
    cost_price: Mapped[float | None] = mapped_column(Numeric(12, 2, asdecimal=False))

    lead_time: Mapped[str | None] = mapped_column(String(100))

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    def __repr__(self) -> str:
        return f"<Item {self.id} {self.name}>"


class ItemImage(Base):
    """Image attached to an item."""

    __tablename__ = "item_images"

    id: Mapped[int] = mapped_column(primary_key=True)
    item_id: Mapped[int] = mapped_column(ForeignKey("items.id", ondelete="CASCADE"), index=True)

    src: Mapped[str] = mapped_column(Text)
    alt: Mapped[str | None] = mapped_column(String(255))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
