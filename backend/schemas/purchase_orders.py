from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import date, datetime
from decimal import Decimal
from models.purchase_orders import PurchaseOrderStatus # Import the enum
from schemas.purchase_order_lines import PurchaseOrderLine, PurchaseOrderLineSpec, ReceiptRejection


class PurchaseOrderFields(BaseModel):
    notes: Optional[str] = None
    total_amount: Optional[Decimal] = None
    delivery_charge: Optional[Decimal] = None
    ordered_at: Optional[datetime] = None
    invoice_date: Optional[date] = None
    invoice_url: Optional[str] = None


class PurchaseOrderCreate(PurchaseOrderFields):
    order_number: str = Field(min_length=1, max_length=64)
    supplier_id: Optional[int] = None
    mto_id: Optional[int] = None
    ordered_by: Optional[str] = None
    # Lines are reconciled into the new order in the same transaction
    lines: List[PurchaseOrderLineSpec] = []


class PurchaseOrderUpdate(PurchaseOrderFields):
    # Only fields that are explicitly sent are applied (exclude_unset), so
    # sending invoice_url: null clears the invoice reference.
    # status here is a direct, audited override of the derived status.
    status: Optional[PurchaseOrderStatus] = None
    # Recorded in the audit log alongside a status override
    reason: Optional[str] = None


class PurchaseOrderLinesReplace(BaseModel):
    # An empty list clears every line of the order
    lines: List[PurchaseOrderLineSpec]


class PurchaseOrder(PurchaseOrderFields):
    id: int
    order_number: str
    status: PurchaseOrderStatus
    supplier_id: Optional[int] = None
    mto_id: Optional[int] = None
    ordered_by: Optional[str] = None
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    lines: List[PurchaseOrderLine] = []

    class Config:
        from_attributes = True


class PurchaseOrderResult(BaseModel):
    data: PurchaseOrder
    warning: Optional[str] = None
    rejected: List[ReceiptRejection] = []
    skipped: List[int] = []


class PurchaseOrderDeleted(BaseModel):
    id: int
    order_number: str
    warning: Optional[str] = None
