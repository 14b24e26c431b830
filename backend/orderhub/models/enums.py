from enum import Enum

# Stored as strings (native enums disabled for easier evolution).


class ShareTypeEnum(str, Enum):
    REVENUE = "Revenue"
    PROFIT = "Profit"


class FeeTypeEnum(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class PayoutStatusEnum(str, Enum):
    PROCESSING = "processing"
    PAID = "paid"
    REFUNDED = "refunded"


class ShipmentStatusEnum(str, Enum):
    PENDING = "pending"
    SHIPPED = "shipped"
    IN_TRANSIT = "in_transit"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    EXCEPTION = "exception"
    RETURNED = "returned"
    UNKNOWN = "unknown"


# Order statuses that imply the parcel has left the warehouse.
SHIPPED_ORDER_STATUSES = frozenset({"shipped", "completed"})
