"Read-only aggregates over orders and allocation results."

from .dashboard import dashboard_stats, profit_statistics  # noqa: F401
from .revenue import gateway_partner_revenue_report, partner_earnings_report  # noqa: F401
