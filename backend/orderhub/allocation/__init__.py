"Revenue allocation: site-partner shares, gateway splits and order profit."

from .engine import (  # noqa: F401
    AllocationOutcome,
    AllocationWarning,
    GatewayAllocation,
    GatewayPartnerShare,
    allocate_order,
    compute_gateway_allocation,
)
from .formulas import ProfitBreakdown, compute_order_profit  # noqa: F401
from .payouts import OrderNotFoundError, calculate_order_profit, update_payout_status  # noqa: F401
