from __future__ import annotations

from decimal import Decimal

from sqlalchemy.orm import Session

from orderhub.models.enums import FeeTypeEnum
from orderhub.models.gateways import GatewayPartnerAssignment, PaymentGateway
from orderhub.models.partners import Partner


def create_gateway(
    db: Session,
    *,
    gateway_code: str,
    name: str,
    fee_type: FeeTypeEnum | str,
    fees_percentage: Decimal | None = None,
    fees_fixed: Decimal | None = None,
) -> PaymentGateway:
    fee_type = FeeTypeEnum(fee_type)
    if fee_type == FeeTypeEnum.PERCENTAGE:
        if fees_percentage is None or fees_fixed is not None:
            raise ValueError("percentage gateways need fees_percentage and no fixed fee")
    elif fees_fixed is None or fees_percentage is not None:
        raise ValueError("fixed gateways need fees_fixed and no percentage fee")
    gateway = PaymentGateway(
        gateway_code=gateway_code,
        name=name,
        fee_type=fee_type.value,
        fees_percentage=fees_percentage,
        fees_fixed=fees_fixed,
    )
    db.add(gateway)
    db.commit()
    db.refresh(gateway)
    return gateway


def get_gateway_by_code(db: Session, gateway_code: str | None) -> PaymentGateway | None:
    if not gateway_code:
        return None
    return db.query(PaymentGateway).filter(PaymentGateway.gateway_code == gateway_code).first()


def assign_gateway_partner(
    db: Session,
    *,
    gateway_id: int,
    partner_id: int,
    assignment_percentage: Decimal,
    is_active: bool = True,
) -> GatewayPartnerAssignment:
    if assignment_percentage < 0 or assignment_percentage > 100:
        raise ValueError("assignment_percentage must be between 0 and 100")
    assignment = (
        db.query(GatewayPartnerAssignment)
        .filter(
            GatewayPartnerAssignment.payment_gateway_id == gateway_id,
            GatewayPartnerAssignment.partner_id == partner_id,
        )
        .first()
    )
    if assignment is None:
        assignment = GatewayPartnerAssignment(payment_gateway_id=gateway_id, partner_id=partner_id)
        db.add(assignment)
    assignment.assignment_percentage = assignment_percentage
    assignment.is_active = is_active
    db.commit()
    db.refresh(assignment)
    return assignment


def list_active_gateway_assignments(db: Session, gateway_id: int) -> list[GatewayPartnerAssignment]:
    return (
        db.query(GatewayPartnerAssignment)
        .join(Partner, Partner.id == GatewayPartnerAssignment.partner_id)
        .filter(
            GatewayPartnerAssignment.payment_gateway_id == gateway_id,
            GatewayPartnerAssignment.is_active.is_(True),
            Partner.is_active.is_(True),
        )
        .order_by(GatewayPartnerAssignment.id.asc())
        .all()
    )
