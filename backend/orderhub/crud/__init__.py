from .sites import (
    create_site,
    get_site,
    get_site_by_base_url,
    get_active_site_by_api_key,
    list_sites,
    deactivate_site,
)
from .nonces import claim_nonce, purge_expired_nonces
from .orders import (
    get_order,
    get_order_by_external_id,
    upsert_order_row,
    replace_order_items,
    list_orders,
)
from .partners import create_partner, get_partner, assign_site_partner, list_active_site_partners
from .gateways import (
    create_gateway,
    get_gateway_by_code,
    assign_gateway_partner,
    list_active_gateway_assignments,
)
from .shipments import (
    ShipmentAlreadyExists,
    create_shipment,
    get_shipment,
    get_shipment_for_order,
    list_trackable_shipments,
    count_shipments_by_status,
    record_shipping_update,
)
