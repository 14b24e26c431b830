"Order ingestion: idempotent sync and shipping updates from storefronts."

from .shipping import UnknownOrder, apply_shipping_update  # noqa: F401
from .sync import OrderSyncResult, sync_order  # noqa: F401
