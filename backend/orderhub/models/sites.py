from sqlalchemy import Boolean, Column, Integer, String, Text
from sqlalchemy.orm import relationship

from orderhub.core.db import Base
from orderhub.models.mixins import TimestampMixin


class Site(TimestampMixin, Base):
    __tablename__ = "sites"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    base_url = Column(String, unique=True, nullable=False)
    api_key = Column(String(64), unique=True, nullable=False, index=True)
    # The secret is kept only as an AES-GCM blob (needed to verify HMACs)
    # plus an independent bcrypt hash; plaintext is returned once at creation.
    api_secret_encrypted = Column(Text, nullable=False)
    api_secret_hash = Column(String, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    orders = relationship("Order", back_populates="site", lazy="select")
    partner_assignments = relationship("SitePartner", back_populates="site", lazy="selectin")
