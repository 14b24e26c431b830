from __future__ import annotations

from decimal import Decimal

from sqlalchemy.orm import Session

from orderhub.models.enums import ShareTypeEnum
from orderhub.models.partners import Partner, SitePartner


def create_partner(db: Session, *, name: str, email: str | None = None) -> Partner:
    partner = Partner(name=name, email=email, is_active=True)
    db.add(partner)
    db.commit()
    db.refresh(partner)
    return partner


def get_partner(db: Session, partner_id: int) -> Partner | None:
    return db.query(Partner).filter(Partner.id == partner_id).first()


def assign_site_partner(
    db: Session,
    *,
    site_id: int,
    partner_id: int,
    share_type: ShareTypeEnum | str,
    share_percentage: Decimal,
    is_active: bool = True,
) -> SitePartner:
    share_type = ShareTypeEnum(share_type).value
    if share_percentage < 0 or share_percentage > 100:
        raise ValueError("share_percentage must be between 0 and 100")
    assignment = (
        db.query(SitePartner)
        .filter(SitePartner.site_id == site_id, SitePartner.partner_id == partner_id)
        .first()
    )
    if assignment is None:
        assignment = SitePartner(site_id=site_id, partner_id=partner_id)
        db.add(assignment)
    assignment.share_type = share_type
    assignment.share_percentage = share_percentage
    assignment.is_active = is_active
    db.commit()
    db.refresh(assignment)
    return assignment


def list_active_site_partners(db: Session, site_id: int) -> list[SitePartner]:
    return (
        db.query(SitePartner)
        .join(Partner, Partner.id == SitePartner.partner_id)
        .filter(
            SitePartner.site_id == site_id,
            SitePartner.is_active.is_(True),
            Partner.is_active.is_(True),
        )
        .order_by(SitePartner.id.asc())
        .all()
    )
