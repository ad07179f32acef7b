from typing import Iterable

from models.purchase_orders import PurchaseOrderStatus


def derive_status(current: PurchaseOrderStatus, lines: Iterable) -> PurchaseOrderStatus:
    """
    Compute an order's status from the receipt state of its lines.

    CANCELLED is terminal and never derived. Otherwise the status only moves
    towards "more received": FULLY_RECEIVED when every line is covered,
    PARTIALLY_RECEIVED when anything has arrived, and the current status
    (DRAFT, ORDERED, ...) when nothing has.
    """
    if current == PurchaseOrderStatus.CANCELLED:
        return current

    lines = list(lines)
    if lines and all((line.quantity_received or 0) >= line.quantity_ordered for line in lines):
        return PurchaseOrderStatus.FULLY_RECEIVED
    if any((line.quantity_received or 0) > 0 for line in lines):
        return PurchaseOrderStatus.PARTIALLY_RECEIVED
    return current
