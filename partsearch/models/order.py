"""Order models (read-only here).

Only used to aggregate historical sales per SKU for recommendation scoring.
Orders in status "draft" never count as sales.
"""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from partsearch.stores.postgres import Base

ORDER_STATUS_DRAFT = "draft"


class Order(Base):
    """Customer order header."""

    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(primary_key=True)
    status: Mapped[str] = mapped_column(String(30), default=ORDER_STATUS_DRAFT, index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class OrderItem(Base):
    """Order line item. Linked to catalog items by SKU, not by id."""

    __tablename__ = "order_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id", ondelete="CASCADE"), index=True)

    sku: Mapped[str] = mapped_column(String(100), index=True)
    quantity: Mapped[int] = mapped_column(Integer, default=1)
