from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from orderhub.core.db import Base
from orderhub.models.enums import FeeTypeEnum
from orderhub.models.mixins import TimestampMixin
from orderhub.models.columns import MONEY, PERCENTAGE


class PaymentGateway(TimestampMixin, Base):
    __tablename__ = "payment_gateways"

    id = Column(Integer, primary_key=True, index=True)
    gateway_code = Column(String(64), unique=True, nullable=False, index=True)
    name = Column(String, nullable=False)
    fee_type = Column(String(16), nullable=False, default=FeeTypeEnum.PERCENTAGE.value)
    # Exactly one of these is populated, matching fee_type.
    fees_percentage = Column(PERCENTAGE, nullable=True)
    fees_fixed = Column(MONEY, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    assignments = relationship(
        "GatewayPartnerAssignment",
        back_populates="gateway",
        lazy="selectin",
    )


class GatewayPartnerAssignment(TimestampMixin, Base):
    __tablename__ = "gateway_partner_assignments"
    __table_args__ = (
        UniqueConstraint(
            "partner_id",
            "payment_gateway_id",
            name="uq_gateway_partner_assignments_partner_gateway",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    partner_id = Column(Integer, ForeignKey("partners.id", ondelete="CASCADE"), nullable=False, index=True)
    payment_gateway_id = Column(
        Integer,
        ForeignKey("payment_gateways.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    assignment_percentage = Column(PERCENTAGE, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    gateway = relationship("PaymentGateway", back_populates="assignments")
    partner = relationship("Partner", lazy="selectin")
