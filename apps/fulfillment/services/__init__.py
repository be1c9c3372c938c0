from .discounts import ensure_match_discount
from .orders import cancel_open_order, ensure_order_for_match, mark_fulfilled
from .shipments import ensure_manual_shipment, mark_manual_shipment_shipped
from .steps import FulfillmentOutcome, StepResult, run_fulfillment_steps, run_pending_fulfillment
from .stores import active_store_for_brand

__all__ = [
    "FulfillmentOutcome",
    "StepResult",
    "active_store_for_brand",
    "cancel_open_order",
    "ensure_manual_shipment",
    "ensure_match_discount",
    "ensure_order_for_match",
    "mark_fulfilled",
    "mark_manual_shipment_shipped",
    "run_fulfillment_steps",
    "run_pending_fulfillment",
]
