from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from orderhub.core.db import Base
from orderhub.models.enums import PayoutStatusEnum
from orderhub.models.mixins import TimestampMixin
from orderhub.models.columns import MONEY, PERCENTAGE


class OrderProfit(TimestampMixin, Base):
    __tablename__ = "order_profits"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(
        Integer,
        ForeignKey("orders.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
        index=True,
    )
    product_cost = Column(MONEY, nullable=False, default=0)
    gateway_cost_percentage = Column(PERCENTAGE, nullable=False, default=0)
    gateway_cost = Column(MONEY, nullable=False, default=0)
    operational_cost = Column(MONEY, nullable=False, default=0)
    total_costs = Column(MONEY, nullable=False, default=0)
    net_profit = Column(MONEY, nullable=False, default=0)
    # Percent with two decimals; -100 for refunds.
    profit_margin = Column(MONEY, nullable=False, default=0)
    payout_status = Column(String(16), nullable=False, default=PayoutStatusEnum.PROCESSING.value)
    payout_date = Column(DateTime, nullable=True)
    is_calculated = Column(Boolean, nullable=False, default=False)
    notes = Column(Text, nullable=True)

    order = relationship("Order", lazy="selectin")
