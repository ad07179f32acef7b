from datetime import date
from fastapi import APIRouter, Depends, Query
from typing import List, Optional

from routers.purchase_orders import get_purchase_order_service
from schemas.inventory_item_audit import InventoryItemAudit
from services.order_lifecycle import PurchaseOrderService
from utils.tenancy import get_tenant_id

router = APIRouter(prefix="/inventory-items", tags=["Inventory Items"])


@router.get("/{item_id}/stock-movements", response_model=List[InventoryItemAudit])
def get_inventory_item_stock_movements(
    item_id: int,
    service: PurchaseOrderService = Depends(get_purchase_order_service),
    tenant_id: str = Depends(get_tenant_id),
    start_date: Optional[date] = Query(None, description="Start date for filtering stock movements"),
    end_date: Optional[date] = Query(None, description="End date for filtering stock movements")
):
    """
    Retrieve the stock movement ledger for a specific inventory item, newest first.
    """
    return service.stock_movements(tenant_id, item_id, start_date=start_date, end_date=end_date)
