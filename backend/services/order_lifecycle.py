"""
Order lifecycle service.

Public entry point for every purchase order operation. Each mutating call runs
as one unit of work: load the order under lock, plan, validate, apply, derive,
commit. The audit event is emitted after the commit; a failing sink only adds a
warning to the result.
"""

from dataclasses import dataclass, field
import logging
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from crud import inventory_item_audit as crud_stock_movements
from crud import materials_to_order as crud_mto
from crud import purchase_orders as crud_purchase_orders
from database import unit_of_work
from exceptions import ConflictError, LoggingFailure, ValidationError
from models.purchase_orders import PurchaseOrder, PurchaseOrderStatus
from services.audit_sink import DatabaseAuditSink
from services.line_reconciler import LineSpec, plan_line_changes
from services.receipt_processor import ReceiptLine, ReceiptOutcome, process_receipts, receipt_line
from services.status_deriver import derive_status
from utils import sqlalchemy_to_dict

logger = logging.getLogger("purchase_orders")

# Non-line attributes the caller may set on create / change through update_fields
ORDER_FIELDS = (
    "notes",
    "total_amount",
    "delivery_charge",
    "ordered_at",
    "invoice_date",
    "invoice_url",
    "supplier_id",
    "ordered_by",
)
CREATE_ONLY_FIELDS = ("mto_id",)

# Moving to a lower rank through force_status is a demotion
_STATUS_RANK = {
    PurchaseOrderStatus.DRAFT: 0,
    PurchaseOrderStatus.ORDERED: 1,
    PurchaseOrderStatus.PARTIALLY_RECEIVED: 2,
    PurchaseOrderStatus.FULLY_RECEIVED: 3,
    PurchaseOrderStatus.CANCELLED: 4,
}


@dataclass
class OrderResult:
    order: PurchaseOrder
    warnings: List[str] = field(default_factory=list)
    receipt: Optional[ReceiptOutcome] = None


@dataclass
class DeletedOrder:
    id: int
    order_number: str
    warnings: List[str] = field(default_factory=list)


def _line_specs(lines: Iterable) -> List[LineSpec]:
    return [LineSpec(**spec) if isinstance(spec, dict) else spec for spec in lines]


def _receipt_lines(receipts: Iterable) -> List[ReceiptLine]:
    return [receipt_line(**r) if isinstance(r, dict) else r for r in receipts]


def _lines_snapshot(lines) -> List[Dict[str, Any]]:
    return [sqlalchemy_to_dict(line) for line in lines]


def coerce_status(value: Any) -> PurchaseOrderStatus:
    """Accept an enum member or its name; anything else is rejected."""
    if isinstance(value, PurchaseOrderStatus):
        return value
    if isinstance(value, str):
        candidate = value.strip().upper()
        if candidate in PurchaseOrderStatus.__members__:
            return PurchaseOrderStatus[candidate]
    allowed = ", ".join(s.value for s in PurchaseOrderStatus)
    raise ValidationError(
        f"Unknown status {value!r}",
        [{"field": "status", "message": f"must be one of {allowed}"}],
    )


def is_demotion(old: PurchaseOrderStatus, new: PurchaseOrderStatus) -> bool:
    return _STATUS_RANK[new] < _STATUS_RANK[old]


def _reject_unknown_fields(fields: Dict[str, Any], allowed: Iterable[str], operation: str):
    unknown = sorted(set(fields) - set(allowed))
    if unknown:
        raise ValidationError(
            f"{operation} cannot change: {', '.join(unknown)}",
            [{"field": key, "message": "not changeable through this operation"} for key in unknown],
        )


class PurchaseOrderService:
    """
    Create, edit, receive against, re-status and delete purchase orders.

    Args:
        db: Request-scoped session; the service owns its transaction boundaries.
        audit_sink: Object with a ``record(tenant_id, action, record_id, ...)``
            method. Defaults to writing audit_log rows through the same session.
    """

    def __init__(self, db: Session, audit_sink=None):
        self.db = db
        self.audit_sink = audit_sink if audit_sink is not None else DatabaseAuditSink(db)

    # --- Reads ---

    def get(self, tenant_id: str, order_id: int) -> PurchaseOrder:
        return crud_purchase_orders.require_purchase_order(self.db, order_id, tenant_id)

    def list(
        self,
        tenant_id: str,
        supplier_id: Optional[int] = None,
        status: Optional[Any] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[PurchaseOrder]:
        if status is not None:
            status = coerce_status(status)
        return crud_purchase_orders.get_purchase_orders(
            self.db, tenant_id, supplier_id=supplier_id, status=status, skip=skip, limit=limit
        )

    def stock_movements(self, tenant_id: str, item_id: int, start_date=None, end_date=None):
        crud_purchase_orders.require_items(self.db, tenant_id, [item_id])
        return crud_stock_movements.get_inventory_item_audits(
            self.db, item_id, tenant_id, start_date=start_date, end_date=end_date
        )

    # --- Mutations ---

    def create(
        self,
        tenant_id: str,
        order_number: str,
        lines: Iterable = (),
        user_id: Optional[str] = None,
        **fields,
    ) -> OrderResult:
        """Create an order in DRAFT with its initial lines."""
        _reject_unknown_fields(fields, ORDER_FIELDS + CREATE_ONLY_FIELDS, "create")
        order_number = (order_number or "").strip()
        if not order_number:
            raise ValidationError("order_number is required", [{"field": "order_number", "message": "must not be empty"}])
        specs = _line_specs(lines)

        with unit_of_work(self.db) as db:
            plan = plan_line_changes([], specs)
            crud_purchase_orders.require_items(db, tenant_id, [c.item_id for c in plan.creates])
            if crud_purchase_orders.order_number_exists(db, tenant_id, order_number):
                raise ConflictError(f"Order number {order_number} already exists", "Purchase order", order_number)
            if fields.get("supplier_id") is not None:
                crud_purchase_orders.require_supplier(db, tenant_id, fields["supplier_id"])
            mto = None
            if fields.get("mto_id") is not None:
                mto = crud_mto.require_materials_to_order(db, fields["mto_id"], tenant_id)

            db_po = PurchaseOrder(
                tenant_id=tenant_id,
                order_number=order_number,
                status=PurchaseOrderStatus.DRAFT,
                created_by=user_id,
                **fields,
            )
            db.add(db_po)
            created = crud_purchase_orders.apply_line_plan(db, db_po, plan, tenant_id)
            if mto is not None:
                mto_status = crud_mto.record_ordered_quantities(mto, created)
                logger.info(f"Materials to order (ID: {mto.id}) now {mto_status.value} for tenant {tenant_id}")
            db.flush()
            new_values = sqlalchemy_to_dict(db_po)
            new_values["lines"] = _lines_snapshot(db_po.lines)

        result = OrderResult(order=db_po)
        self._audit(result, tenant_id, "CREATE", db_po.id, user_id,
                    f"Created with {plan.summary()}", new_values=new_values)
        logger.info(f"Purchase Order (ID: {db_po.id}, number {order_number}) created by user {user_id} for tenant {tenant_id}")
        return result

    def update_lines(self, tenant_id: str, order_id: int, lines: Iterable, user_id: Optional[str] = None) -> OrderResult:
        """Reconcile the order's lines to the given set; status is left alone."""
        specs = _line_specs(lines)

        with unit_of_work(self.db) as db:
            db_po = crud_purchase_orders.require_purchase_order(db, order_id, tenant_id, for_update=True)
            existing = crud_purchase_orders.get_lines_for_update(db, order_id=db_po.id, tenant_id=tenant_id)
            plan = plan_line_changes(existing, specs)
            crud_purchase_orders.require_items(db, tenant_id, [c.item_id for c in plan.creates])
            old_lines = _lines_snapshot(existing)

            crud_purchase_orders.apply_line_plan(db, db_po, plan, tenant_id)
            crud_purchase_orders.touch(db_po, user_id)
            db.flush()
            new_lines = _lines_snapshot(db_po.lines)

        result = OrderResult(order=db_po)
        self._audit(result, tenant_id, "UPDATE_LINES", order_id, user_id, plan.summary(),
                    old_values={"lines": old_lines}, new_values={"lines": new_lines})
        logger.info(f"Purchase Order (ID: {order_id}) lines reconciled ({plan.summary()}) by user {user_id} for tenant {tenant_id}")
        return result

    def record_receipt(self, tenant_id: str, order_id: int, receipts: Iterable, user_id: Optional[str] = None) -> OrderResult:
        """Apply delivered quantities, bump stock and re-derive the order status."""
        receipts = _receipt_lines(receipts)
        if not receipts:
            raise ValidationError("A receipt must name at least one line", [{"field": "receipts", "message": "empty"}])

        with unit_of_work(self.db) as db:
            db_po = crud_purchase_orders.require_purchase_order(db, order_id, tenant_id, for_update=True)
            old_status = db_po.status
            outcome = process_receipts(db, tenant_id, db_po, receipts, changed_by=user_id)

            new_status = derive_status(db_po.status, db_po.lines)
            if new_status != db_po.status:
                db_po.status = new_status
            if outcome.applied:
                crud_purchase_orders.touch(db_po, user_id)
            db.flush()
            applied = {r.line.id: r.delta for r in outcome.applied}

        result = OrderResult(order=db_po, receipt=outcome)
        self._audit(
            result, tenant_id, "RECEIPT", order_id, user_id, outcome.summary(),
            old_values={"status": old_status.value},
            new_values={
                "status": new_status.value,
                "applied": applied,
                "skipped": outcome.skipped,
                "rejected": [r.line_id for r in outcome.rejected],
            },
        )
        if outcome.rejected:
            logger.warning(f"Purchase Order (ID: {order_id}) receipt rejected {len(outcome.rejected)} line(s) for tenant {tenant_id}")
        logger.info(f"Purchase Order (ID: {order_id}) receipt recorded ({outcome.summary()}, status {new_status.value}) by user {user_id} for tenant {tenant_id}")
        return result

    def update_fields(self, tenant_id: str, order_id: int, fields: Dict[str, Any], user_id: Optional[str] = None) -> OrderResult:
        """Change non-line attributes. A status in the payload goes through force_status."""
        fields = dict(fields)
        status = fields.pop("status", None)
        reason = fields.pop("reason", None)
        _reject_unknown_fields(fields, ORDER_FIELDS, "update_fields")
        new_status = coerce_status(status) if status is not None else None

        with unit_of_work(self.db) as db:
            db_po = crud_purchase_orders.require_purchase_order(db, order_id, tenant_id, for_update=True)
            old_values = sqlalchemy_to_dict(db_po)
            if fields.get("supplier_id") is not None:
                crud_purchase_orders.require_supplier(db, tenant_id, fields["supplier_id"])

            for key, value in fields.items():
                setattr(db_po, key, value)
            old_status = db_po.status
            if new_status is not None:
                db_po.status = new_status
            crud_purchase_orders.touch(db_po, user_id)
            db.flush()
            new_values = sqlalchemy_to_dict(db_po)

        result = OrderResult(order=db_po)
        if fields:
            self._audit(result, tenant_id, "UPDATE", order_id, user_id,
                        f"Updated {', '.join(sorted(fields))}", old_values=old_values, new_values=new_values)
        if new_status is not None and new_status != old_status:
            self._status_forced(result, tenant_id, order_id, old_status, new_status, reason, user_id)
        logger.info(f"Purchase Order (ID: {order_id}) updated by user {user_id} for tenant {tenant_id}")
        return result

    def force_status(
        self,
        tenant_id: str,
        order_id: int,
        status: Any,
        reason: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> OrderResult:
        """Set the status directly, bypassing derivation. Always audited."""
        new_status = coerce_status(status)

        with unit_of_work(self.db) as db:
            db_po = crud_purchase_orders.require_purchase_order(db, order_id, tenant_id, for_update=True)
            old_status = db_po.status
            if new_status != old_status:
                db_po.status = new_status
                crud_purchase_orders.touch(db_po, user_id)

        result = OrderResult(order=db_po)
        self._status_forced(result, tenant_id, order_id, old_status, new_status, reason, user_id)
        return result

    def cancel(self, tenant_id: str, order_id: int, reason: Optional[str] = None, user_id: Optional[str] = None) -> OrderResult:
        with unit_of_work(self.db) as db:
            db_po = crud_purchase_orders.require_purchase_order(db, order_id, tenant_id, for_update=True)
            old_status = db_po.status
            if old_status != PurchaseOrderStatus.CANCELLED:
                db_po.status = PurchaseOrderStatus.CANCELLED
                crud_purchase_orders.touch(db_po, user_id)

        result = OrderResult(order=db_po)
        if old_status != PurchaseOrderStatus.CANCELLED:
            self._audit(result, tenant_id, "CANCEL", order_id, user_id,
                        reason or f"Cancelled from {old_status.value}",
                        old_values={"status": old_status.value},
                        new_values={"status": PurchaseOrderStatus.CANCELLED.value})
        logger.info(f"Purchase Order (ID: {order_id}) cancelled by user {user_id} for tenant {tenant_id}")
        return result

    def delete(self, tenant_id: str, order_id: int, user_id: Optional[str] = None) -> DeletedOrder:
        """
        Hard-delete an order and its lines.

        Stock already received stays where it is; the stock movement ledger
        keeps the receipts that produced it.
        """
        with unit_of_work(self.db) as db:
            db_po = crud_purchase_orders.require_purchase_order(db, order_id, tenant_id, for_update=True)
            old_values = sqlalchemy_to_dict(db_po)
            old_values["lines"] = _lines_snapshot(db_po.lines)
            deleted = DeletedOrder(id=db_po.id, order_number=db_po.order_number)
            crud_purchase_orders.delete_purchase_order(db, db_po)

        self._audit(deleted, tenant_id, "DELETE", order_id, user_id,
                    f"Deleted order {deleted.order_number}", old_values=old_values)
        logger.info(f"Purchase Order (ID: {order_id}) deleted by user {user_id} for tenant {tenant_id}")
        return deleted

    # --- Helpers ---

    def _status_forced(self, result, tenant_id, order_id, old_status, new_status, reason, user_id):
        if is_demotion(old_status, new_status):
            logger.warning(
                f"Purchase Order (ID: {order_id}) status demoted {old_status.value} -> {new_status.value} "
                f"by user {user_id} for tenant {tenant_id}"
            )
        self._audit(result, tenant_id, "FORCE_STATUS", order_id, user_id,
                    reason or f"Status forced {old_status.value} -> {new_status.value}",
                    old_values={"status": old_status.value}, new_values={"status": new_status.value})
        logger.info(f"Purchase Order (ID: {order_id}) status forced to {new_status.value} by user {user_id} for tenant {tenant_id}")

    def _audit(self, result, tenant_id, action, record_id, user_id, description=None, old_values=None, new_values=None):
        try:
            self.audit_sink.record(
                tenant_id=tenant_id,
                action=action,
                record_id=record_id,
                changed_by=user_id,
                description=description,
                old_values=old_values,
                new_values=new_values,
            )
        except LoggingFailure as e:
            logger.warning(f"Audit log failed for Purchase Order (ID: {record_id}), tenant {tenant_id}: {e.reason}")
            result.warnings.append(f"{action} succeeded but could not be written to the audit log")
