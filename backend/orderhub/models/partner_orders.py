from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from orderhub.core.db import Base
from orderhub.models.mixins import TimestampMixin
from orderhub.models.columns import MONEY, PERCENTAGE


class PartnerOrder(TimestampMixin, Base):
    __tablename__ = "partner_orders"
    __table_args__ = (
        UniqueConstraint("partner_id", "order_id", name="uq_partner_orders_partner_order"),
    )

    id = Column(Integer, primary_key=True, index=True)
    partner_id = Column(Integer, ForeignKey("partners.id", ondelete="CASCADE"), nullable=False, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    site_partner_id = Column(
        Integer,
        ForeignKey("site_partners.id", ondelete="SET NULL"),
        nullable=True,
    )
    share_amount = Column(MONEY, nullable=False, default=0)
    share_type = Column(String(16), nullable=False)
    share_percentage = Column(PERCENTAGE, nullable=False, default=0)
    is_paid = Column(Boolean, nullable=False, default=False)
    paid_at = Column(DateTime, nullable=True)

    partner = relationship("Partner", lazy="selectin")
    order = relationship("Order", lazy="selectin")
