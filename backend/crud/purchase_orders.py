"""
Tenant-scoped persistence for purchase orders and their lines.

Every query filters on tenant_id; a row owned by another tenant is reported
exactly like a missing one. Functions here never commit: the caller's
unit_of_work owns the transaction boundary.
"""

from typing import Iterable, List, Optional

from sqlalchemy.orm import Session, selectinload

from exceptions import NotFoundError
from models.audit_mixin import now_local
from models.business_partners import BusinessPartner, PartnerStatus
from models.inventory_items import InventoryItem
from models.purchase_order_lines import PurchaseOrderLine
from models.purchase_orders import PurchaseOrder, PurchaseOrderStatus


def get_purchase_order(db: Session, order_id: int, tenant_id: str, for_update: bool = False) -> Optional[PurchaseOrder]:
    query = db.query(PurchaseOrder).filter(PurchaseOrder.id == order_id, PurchaseOrder.tenant_id == tenant_id)
    if for_update:
        query = query.with_for_update()
    return query.options(selectinload(PurchaseOrder.lines)).first()


def require_purchase_order(db: Session, order_id: int, tenant_id: str, for_update: bool = False) -> PurchaseOrder:
    db_po = get_purchase_order(db, order_id, tenant_id, for_update=for_update)
    if db_po is None:
        raise NotFoundError("Purchase order", order_id)
    return db_po


def get_purchase_orders(
    db: Session,
    tenant_id: str,
    supplier_id: Optional[int] = None,
    status: Optional[PurchaseOrderStatus] = None,
    skip: int = 0,
    limit: int = 100,
) -> List[PurchaseOrder]:
    query = db.query(PurchaseOrder).filter(PurchaseOrder.tenant_id == tenant_id)
    if supplier_id:
        query = query.filter(PurchaseOrder.supplier_id == supplier_id)
    if status:
        query = query.filter(PurchaseOrder.status == status)
    return (
        query.order_by(PurchaseOrder.created_at.desc(), PurchaseOrder.id.desc())
        .options(selectinload(PurchaseOrder.lines))
        .offset(skip)
        .limit(limit)
        .all()
    )


def order_number_exists(db: Session, tenant_id: str, order_number: str) -> bool:
    return db.query(PurchaseOrder.id).filter(
        PurchaseOrder.tenant_id == tenant_id,
        PurchaseOrder.order_number == order_number,
    ).first() is not None


def require_supplier(db: Session, tenant_id: str, supplier_id: int) -> BusinessPartner:
    supplier = db.query(BusinessPartner).filter(
        BusinessPartner.id == supplier_id,
        BusinessPartner.tenant_id == tenant_id,
        BusinessPartner.status == PartnerStatus.ACTIVE,
        BusinessPartner.is_vendor.is_(True),
    ).first()
    if supplier is None:
        raise NotFoundError("Supplier", supplier_id)
    return supplier


def require_items(db: Session, tenant_id: str, item_ids: Iterable[int]):
    """Raise NotFoundError unless every item id belongs to the tenant."""
    item_ids = set(item_ids)
    if not item_ids:
        return
    owned = {
        row.id for row in db.query(InventoryItem.id).filter(
            InventoryItem.id.in_(item_ids),
            InventoryItem.tenant_id == tenant_id,
        )
    }
    missing = sorted(item_ids - owned)
    if missing:
        raise NotFoundError("Inventory item", missing[0] if len(missing) == 1 else missing)


def get_lines_for_update(
    db: Session,
    order_id: int,
    tenant_id: str,
    line_ids: Optional[Iterable[int]] = None,
) -> List[PurchaseOrderLine]:
    query = db.query(PurchaseOrderLine).filter(
        PurchaseOrderLine.purchase_order_id == order_id,
        PurchaseOrderLine.tenant_id == tenant_id,
    )
    if line_ids is not None:
        query = query.filter(PurchaseOrderLine.id.in_(list(line_ids)))
    return query.order_by(PurchaseOrderLine.id).with_for_update().all()


def apply_line_plan(db: Session, db_po: PurchaseOrder, plan, tenant_id: str) -> List[PurchaseOrderLine]:
    """Write a reconciliation plan onto the order's lines; returns the created lines."""
    for update in plan.updates:
        line = update.line
        line.quantity_ordered = update.quantity_ordered
        line.unit_price = update.unit_price
        line.notes = update.notes
        line.quantity_received = update.quantity_received

    for line in plan.deletes:
        # delete-orphan cascade removes the row on flush
        db_po.lines.remove(line)

    created = []
    for create in plan.creates:
        line = PurchaseOrderLine(
            inventory_item_id=create.item_id,
            quantity_ordered=create.quantity_ordered,
            quantity_received=create.quantity_received,
            unit_price=create.unit_price,
            notes=create.notes,
            tenant_id=tenant_id,
        )
        db_po.lines.append(line)
        created.append(line)
    return created


def increment_item_stock(db: Session, item_id: int, tenant_id: str, delta: int) -> int:
    """
    Add delta to an item's stock in a single UPDATE and return the new level.

    The increment is computed by the database (current_stock + delta), so
    concurrent receipts against the same item compose instead of overwriting
    each other.
    """
    updated = (
        db.query(InventoryItem)
        .filter(InventoryItem.id == item_id, InventoryItem.tenant_id == tenant_id)
        .update({InventoryItem.current_stock: InventoryItem.current_stock + delta}, synchronize_session=False)
    )
    if not updated:
        raise NotFoundError("Inventory item", item_id)
    return db.query(InventoryItem.current_stock).filter(
        InventoryItem.id == item_id, InventoryItem.tenant_id == tenant_id
    ).scalar()


def touch(db_po: PurchaseOrder, user_id: Optional[str]):
    """Mark the order modified; this also bumps its version for the optimistic check."""
    db_po.updated_at = now_local()
    db_po.updated_by = user_id


def delete_purchase_order(db: Session, db_po: PurchaseOrder):
    db.delete(db_po)
