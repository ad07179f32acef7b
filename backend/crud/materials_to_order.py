from typing import Iterable
from sqlalchemy.orm import Session, selectinload

from exceptions import NotFoundError
from models.materials_to_order import MaterialsToOrder, MaterialsToOrderStatus


def require_materials_to_order(db: Session, mto_id: int, tenant_id: str) -> MaterialsToOrder:
    mto = (
        db.query(MaterialsToOrder)
        .filter(MaterialsToOrder.id == mto_id, MaterialsToOrder.tenant_id == tenant_id)
        .options(selectinload(MaterialsToOrder.items))
        .with_for_update()
        .first()
    )
    if mto is None:
        raise NotFoundError("Materials to order", mto_id)
    return mto


def record_ordered_quantities(mto: MaterialsToOrder, lines: Iterable) -> MaterialsToOrderStatus:
    """
    Count newly ordered purchase order lines against a materials-to-order request.

    Each matching MTO item's quantity_ordered_po grows by the line quantity,
    capped at the requested quantity. The MTO becomes FULLY_ORDERED once every
    item is covered, otherwise PARTIALLY_ORDERED.
    """
    by_item = {item.inventory_item_id: item for item in mto.items}
    for line in lines:
        mto_item = by_item.get(line.inventory_item_id)
        if mto_item is None:
            continue
        already = mto_item.quantity_ordered_po or 0
        capped = min(mto_item.quantity, already + line.quantity_ordered)
        if capped != already:
            mto_item.quantity_ordered_po = capped

    fully_ordered = bool(mto.items) and all(
        (item.quantity_ordered_po or 0) == item.quantity for item in mto.items
    )
    mto.status = MaterialsToOrderStatus.FULLY_ORDERED if fully_ordered else MaterialsToOrderStatus.PARTIALLY_ORDERED
    return mto.status
