from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from orderhub.core.db import Base
from orderhub.core.time import utcnow
from orderhub.models.enums import ShipmentStatusEnum
from orderhub.models.mixins import TimestampMixin
from orderhub.models.columns import JSON_TYPE


class Shipment(TimestampMixin, Base):
    __tablename__ = "shipments"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(
        Integer,
        ForeignKey("orders.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
        index=True,
    )
    tracking_number = Column(String(128), nullable=True, index=True)
    carrier = Column(String(64), nullable=True)
    status = Column(String(32), nullable=False, default=ShipmentStatusEnum.PENDING.value)
    tracking_url = Column(String, nullable=True)
    shipped_at = Column(DateTime, nullable=True)
    estimated_delivery = Column(DateTime, nullable=True)
    delivered_at = Column(DateTime, nullable=True)
    status_changed_at = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)

    order = relationship("Order", lazy="selectin")


class ShippingUpdate(Base):
    __tablename__ = "shipping_updates"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(64), nullable=False)
    provider = Column(String(64), nullable=True)
    tracking_number = Column(String(128), nullable=True)
    payload = Column(JSON_TYPE, nullable=True)
    occurred_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
