from .sites import Site
from .request_nonces import RequestNonce
from .orders import Order, OrderItem
from .partners import Partner, SitePartner
from .gateways import PaymentGateway, GatewayPartnerAssignment
from .partner_orders import PartnerOrder
from .order_profits import OrderProfit
from .revenue_shares import RevenueShare
from .shipments import Shipment, ShippingUpdate
