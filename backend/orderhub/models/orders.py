from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from orderhub.core.db import Base
from orderhub.core.time import utcnow
from orderhub.models.mixins import TimestampMixin
from orderhub.models.columns import JSON_TYPE, MONEY


class Order(TimestampMixin, Base):
    __tablename__ = "orders"
    __table_args__ = (
        UniqueConstraint("site_id", "external_order_id", name="uq_orders_site_external_id"),
        Index("ix_orders_site_placed", "site_id", "placed_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    site_id = Column(Integer, ForeignKey("sites.id", ondelete="CASCADE"), nullable=False, index=True)
    external_order_id = Column(String(128), nullable=False)
    status = Column(String(64), nullable=False, default="pending")
    currency = Column(String(8), nullable=False, default="USD")
    order_total = Column(MONEY, nullable=False, default=0)
    subtotal = Column(MONEY, nullable=False, default=0)
    discount_total = Column(MONEY, nullable=False, default=0)
    shipping_total = Column(MONEY, nullable=False, default=0)
    tax_total = Column(MONEY, nullable=False, default=0)
    payment_gateway_code = Column(String(64), nullable=True, index=True)
    customer_name = Column(String, nullable=True)
    customer_email = Column(String, nullable=True)
    customer_phone = Column(String, nullable=True)
    shipping_address = Column(JSON_TYPE, nullable=True)
    billing_address = Column(JSON_TYPE, nullable=True)
    placed_at = Column(DateTime, nullable=True)
    synced_at = Column(DateTime, nullable=False, default=utcnow)

    site = relationship("Site", back_populates="orders", lazy="selectin")
    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
        lazy="selectin",
    )


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(String(64), nullable=True)
    sku = Column(String(128), nullable=True)
    name = Column(String, nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    price = Column(MONEY, nullable=False, default=0)
    subtotal = Column(MONEY, nullable=False, default=0)
    total = Column(MONEY, nullable=False, default=0)

    order = relationship("Order", back_populates="items")
