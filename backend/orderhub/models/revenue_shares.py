from sqlalchemy import Column, ForeignKey, Integer
from sqlalchemy.orm import relationship

from orderhub.core.db import Base
from orderhub.models.mixins import TimestampMixin
from orderhub.models.columns import MONEY


class RevenueShare(TimestampMixin, Base):
    """Simple three-way split kept for older reports."""

    __tablename__ = "revenue_shares"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(
        Integer,
        ForeignKey("orders.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
        index=True,
    )
    partner_id = Column(Integer, ForeignKey("partners.id", ondelete="SET NULL"), nullable=True)
    partner_share_amount = Column(MONEY, nullable=False, default=0)
    website_share_amount = Column(MONEY, nullable=False, default=0)
    gateway_fee_amount = Column(MONEY, nullable=False, default=0)

    order = relationship("Order", lazy="selectin")
