"""Pure money formulas used by allocation and reporting.

Every function takes and returns ``Decimal`` and never touches the database.
Results are rounded half-up to cents only at the end of each formula, so
intermediate products keep full precision.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from orderhub.core.money import HUNDRED, ZERO, percent_of, quantize_money
from orderhub.models.enums import FeeTypeEnum, PayoutStatusEnum, ShareTypeEnum


@dataclass(frozen=True)
class ProfitBreakdown:
    gateway_cost: Decimal
    total_costs: Decimal
    net_profit: Decimal
    profit_margin: Decimal


def compute_order_profit(
    order_total: Decimal,
    product_cost: Decimal,
    gateway_cost_percentage: Decimal,
    operational_cost: Decimal,
    payout_status: str,
) -> ProfitBreakdown:
    """Profit for one order under its payout status.

    paid:       total - (product + gateway + operational), margin = net / total
    refunded:   -(total + gateway + product), margin fixed at -100
    processing: -(gateway + product), margin 0; unknown statuses behave the
                same. Operational cost only counts once the money is paid out.
    """
    gateway_cost = percent_of(order_total, gateway_cost_percentage)
    total_costs = product_cost + gateway_cost + operational_cost
    status = (payout_status or "").strip().lower()

    if status == PayoutStatusEnum.PAID.value:
        net_profit = order_total - total_costs
        margin = net_profit / order_total * HUNDRED if order_total > ZERO else ZERO
    elif status == PayoutStatusEnum.REFUNDED.value:
        net_profit = -(order_total + gateway_cost + product_cost)
        margin = Decimal("-100")
    else:
        net_profit = -(gateway_cost + product_cost)
        margin = ZERO

    return ProfitBreakdown(
        gateway_cost=quantize_money(gateway_cost),
        total_costs=quantize_money(total_costs),
        net_profit=quantize_money(net_profit),
        profit_margin=quantize_money(margin),
    )


def compute_gateway_fee(
    order_total: Decimal,
    fee_type: str,
    fees_percentage: Decimal | None,
    fees_fixed: Decimal | None,
) -> Decimal:
    if fee_type == FeeTypeEnum.PERCENTAGE.value:
        return quantize_money(percent_of(order_total, fees_percentage or ZERO))
    return quantize_money(fees_fixed or ZERO)


def compute_partner_share(
    order_total: Decimal,
    share_type: str,
    share_percentage: Decimal,
    profit_cost_ratio: Decimal,
) -> Decimal:
    """Share owed to a site partner.

    Profit-share partners are paid from an estimated profit that assumes
    ``profit_cost_ratio`` of the order total went to costs.
    """
    if share_type == ShareTypeEnum.PROFIT.value:
        estimated_profit = order_total * (Decimal("1") - profit_cost_ratio)
        return quantize_money(percent_of(estimated_profit, share_percentage))
    if share_type == ShareTypeEnum.REVENUE.value:
        return quantize_money(percent_of(order_total, share_percentage))
    raise ValueError(f"Unknown share type: {share_type}")


def compute_revenue_split(
    order_total: Decimal,
    gateway_fee: Decimal,
    partner_percentage: Decimal,
) -> tuple[Decimal, Decimal]:
    """Return (partner_share, website_share) of the revenue left after fees."""
    net = order_total - gateway_fee
    partner_share = quantize_money(percent_of(net, partner_percentage))
    return partner_share, quantize_money(net - partner_share)
