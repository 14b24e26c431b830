from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint

from orderhub.core.db import Base
from orderhub.core.time import utcnow


class RequestNonce(Base):
    __tablename__ = "request_nonces"
    __table_args__ = (
        UniqueConstraint("site_id", "nonce", name="uq_request_nonces_site_nonce"),
        Index("ix_request_nonces_expires_at", "expires_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    site_id = Column(Integer, ForeignKey("sites.id", ondelete="CASCADE"), nullable=False)
    nonce = Column(String(128), nullable=False)
    issued_at = Column(DateTime, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
