"Carrier tracking: providers, status normalization and shipment refresh."

from .service import RefreshResult, ShipmentTracker, transition_shipment  # noqa: F401
