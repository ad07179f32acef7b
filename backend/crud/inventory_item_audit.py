from sqlalchemy.orm import Session
from models.inventory_item_audit import InventoryItemAudit
from typing import Optional
from datetime import date
from models.audit_mixin import now_local


def get_inventory_item_audits(
    db: Session,
    inventory_item_id: int,
    tenant_id: str,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None
):
    query = db.query(InventoryItemAudit).filter(
        InventoryItemAudit.inventory_item_id == inventory_item_id,
        InventoryItemAudit.tenant_id == tenant_id
    )

    if start_date:
        query = query.filter(InventoryItemAudit.timestamp >= start_date)
    if end_date:
        query = query.filter(InventoryItemAudit.timestamp <= end_date)

    return query.order_by(InventoryItemAudit.id.desc()).all()


def create_inventory_item_audit(
    db: Session,
    inventory_item_id: int,
    change_type: str,
    change_amount: int,
    old_quantity: int,
    new_quantity: int,
    tenant_id: str,
    purchase_order_id: Optional[int] = None,
    purchase_order_line_id: Optional[int] = None,
    changed_by: Optional[str] = None,
    note: Optional[str] = None
):
    """Append a stock movement row; committed with the caller's transaction."""
    audit = InventoryItemAudit(
        inventory_item_id=inventory_item_id,
        change_type=change_type,
        change_amount=change_amount,
        old_quantity=old_quantity,
        new_quantity=new_quantity,
        tenant_id=tenant_id,
        purchase_order_id=purchase_order_id,
        purchase_order_line_id=purchase_order_line_id,
        changed_by=changed_by,
        note=note,
        timestamp=now_local()
    )
    db.add(audit)
    return audit
