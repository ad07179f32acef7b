"""
Receipt processing.

A receipt names lines of one order and, per line, either the new running total
received (Absolute) or the size of a new delivery (Incremental). Both forms are
resolved to one signed whole-unit delta before anything is written.

Processing is two-phase:

1. validate_receipts() checks every requested line against its persisted
   state and sorts it into applicable, skipped (delta 0) or rejected (would
   leave quantity_received outside [0, quantity_ordered]).
2. apply_receipts() writes the applicable lines: the line's
   quantity_received, an atomic +delta on the item's stock, and a stock
   movement ledger row, all inside the caller's unit of work.
"""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation, ROUND_FLOOR
import logging
from typing import Any, Dict, Iterable, List, Optional, Union

from sqlalchemy.orm import Session

from crud import inventory_item_audit as crud_stock_movements
from crud import purchase_orders as crud_purchase_orders
from exceptions import NotFoundError, ValidationError

logger = logging.getLogger("receipt_processor")


@dataclass(frozen=True)
class Absolute:
    """The line's new running total received."""
    total: Any


@dataclass(frozen=True)
class Incremental:
    """Units arriving in this delivery."""
    delta: Any


ReceiptDelta = Union[Absolute, Incremental]


@dataclass
class ReceiptLine:
    line_id: int
    quantity: ReceiptDelta


@dataclass
class ResolvedReceipt:
    line: Any
    delta: int

    @property
    def new_received(self) -> int:
        return (self.line.quantity_received or 0) + self.delta


@dataclass
class ReceiptRejection:
    line_id: int
    reason: str
    current_received: int
    requested_received: int


@dataclass
class ReceiptOutcome:
    applied: List[ResolvedReceipt] = field(default_factory=list)
    skipped: List[int] = field(default_factory=list)
    rejected: List[ReceiptRejection] = field(default_factory=list)

    def summary(self) -> str:
        return f"{len(self.applied)} applied, {len(self.skipped)} unchanged, {len(self.rejected)} rejected"


def receipt_line(line_id: int, quantity_received_total=None, new_delivery=None) -> ReceiptLine:
    """Build a ReceiptLine from the two request fields, exactly one of which is set."""
    if (quantity_received_total is None) == (new_delivery is None):
        raise ValidationError(
            "Provide exactly one of quantity_received_total or new_delivery",
            [{"line_id": line_id, "field": "quantity", "message": "exactly one form is required"}],
        )
    if quantity_received_total is not None:
        return ReceiptLine(line_id=line_id, quantity=Absolute(quantity_received_total))
    return ReceiptLine(line_id=line_id, quantity=Incremental(new_delivery))


def _floor(value: Any) -> Optional[int]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not number.is_finite():
        return None
    return int(number.to_integral_value(rounding=ROUND_FLOOR))


def resolve_delta(quantity: ReceiptDelta, current_received: int) -> int:
    """Signed whole-unit change to quantity_received for either receipt form."""
    if isinstance(quantity, Absolute):
        total = _floor(quantity.total)
        if total is None:
            raise ValueError(f"quantity_received_total is not a number: {quantity.total!r}")
        return total - current_received
    delta = _floor(quantity.delta)
    if delta is None:
        raise ValueError(f"new_delivery is not a number: {quantity.delta!r}")
    return delta


def validate_receipts(receipts: Iterable[ReceiptLine], lines_by_id: Dict[int, Any]) -> ReceiptOutcome:
    """
    Phase one: resolve and check every receipt line without writing anything.

    Raises NotFoundError when a line is not on the order (the whole batch
    fails); per-line range problems are collected as rejections instead.
    """
    outcome = ReceiptOutcome()
    for receipt in receipts:
        line = lines_by_id.get(receipt.line_id)
        if line is None:
            raise NotFoundError("Purchase order line", receipt.line_id)

        current = line.quantity_received or 0
        try:
            delta = resolve_delta(receipt.quantity, current)
        except ValueError as e:
            outcome.rejected.append(ReceiptRejection(receipt.line_id, str(e), current, current))
            continue

        if delta == 0:
            outcome.skipped.append(receipt.line_id)
            continue

        requested = current + delta
        if isinstance(receipt.quantity, Incremental) and delta < 0:
            reason = "new_delivery cannot be negative; correct over-reports with quantity_received_total"
        elif requested < 0:
            reason = "quantity received cannot go below 0"
        elif requested > line.quantity_ordered:
            reason = f"quantity received cannot exceed quantity ordered ({line.quantity_ordered})"
        else:
            outcome.applied.append(ResolvedReceipt(line=line, delta=delta))
            continue
        outcome.rejected.append(ReceiptRejection(receipt.line_id, reason, current, requested))

    return outcome


def apply_receipts(
    db: Session,
    tenant_id: str,
    order_id: int,
    resolved: Iterable[ResolvedReceipt],
    changed_by: Optional[str] = None,
):
    """
    Phase two: write every validated receipt inside the open transaction.

    Stock rows are updated in item id order so that receipts on different
    orders touching the same items always lock them in the same sequence.
    """
    for receipt in sorted(resolved, key=lambda r: (r.line.inventory_item_id, r.line.id)):
        line = receipt.line
        new_received = receipt.new_received
        new_stock = crud_purchase_orders.increment_item_stock(
            db, item_id=line.inventory_item_id, tenant_id=tenant_id, delta=receipt.delta
        )
        line.quantity_received = new_received
        crud_stock_movements.create_inventory_item_audit(
            db,
            inventory_item_id=line.inventory_item_id,
            change_type="purchase_receipt",
            change_amount=receipt.delta,
            old_quantity=new_stock - receipt.delta,
            new_quantity=new_stock,
            tenant_id=tenant_id,
            purchase_order_id=order_id,
            purchase_order_line_id=line.id,
            changed_by=changed_by,
            note=f"Received against PO line #{line.id}: {new_received}/{line.quantity_ordered}",
        )
        logger.debug(f"Line {line.id} received {receipt.delta:+d}, item {line.inventory_item_id} stock now {new_stock}")


def process_receipts(
    db: Session,
    tenant_id: str,
    order,
    receipts: List[ReceiptLine],
    changed_by: Optional[str] = None,
) -> ReceiptOutcome:
    """Validate the whole batch, then apply the lines that passed."""
    line_ids = [r.line_id for r in receipts]
    duplicates = sorted({i for i in line_ids if line_ids.count(i) > 1})
    if duplicates:
        raise ValidationError(
            "Receipt batch names the same line more than once",
            [{"line_id": i, "field": "line_id", "message": "duplicate line in receipt batch"} for i in duplicates],
        )

    lines = crud_purchase_orders.get_lines_for_update(db, order_id=order.id, tenant_id=tenant_id, line_ids=line_ids)
    lines_by_id = {line.id: line for line in lines}
    crud_purchase_orders.require_items(db, tenant_id, {line.inventory_item_id for line in lines})

    outcome = validate_receipts(receipts, lines_by_id)
    apply_receipts(db, tenant_id, order.id, outcome.applied, changed_by=changed_by)
    return outcome
