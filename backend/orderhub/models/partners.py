from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from orderhub.core.db import Base
from orderhub.models.enums import ShareTypeEnum
from orderhub.models.mixins import TimestampMixin
from orderhub.models.columns import PERCENTAGE


class Partner(TimestampMixin, Base):
    __tablename__ = "partners"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)


class SitePartner(TimestampMixin, Base):
    __tablename__ = "site_partners"
    __table_args__ = (
        UniqueConstraint("site_id", "partner_id", name="uq_site_partners_site_partner"),
    )

    id = Column(Integer, primary_key=True, index=True)
    site_id = Column(Integer, ForeignKey("sites.id", ondelete="CASCADE"), nullable=False, index=True)
    partner_id = Column(Integer, ForeignKey("partners.id", ondelete="CASCADE"), nullable=False, index=True)
    share_type = Column(String(16), nullable=False, default=ShareTypeEnum.REVENUE.value)
    share_percentage = Column(PERCENTAGE, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    site = relationship("Site", back_populates="partner_assignments")
    partner = relationship("Partner", lazy="selectin")
