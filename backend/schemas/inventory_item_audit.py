from pydantic import BaseModel
from datetime import datetime
from typing import Optional


class InventoryItemAudit(BaseModel):
    id: int
    inventory_item_id: int
    change_type: str
    change_amount: int
    old_quantity: int
    new_quantity: int
    purchase_order_id: Optional[int] = None
    purchase_order_line_id: Optional[int] = None
    changed_by: Optional[str] = None
    note: Optional[str] = None
    timestamp: datetime

    class Config:
        from_attributes = True
