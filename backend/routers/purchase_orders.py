# backend/routers/purchase_orders.py

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from database import get_db
from models.purchase_orders import PurchaseOrderStatus
from schemas.purchase_orders import (
    PurchaseOrder as PurchaseOrderSchema,
    PurchaseOrderCreate,
    PurchaseOrderDeleted,
    PurchaseOrderLinesReplace,
    PurchaseOrderResult,
    PurchaseOrderUpdate,
)
from schemas.purchase_order_lines import ReceiptRejection, ReceiptRequest
from services.line_reconciler import LineSpec
from services.order_lifecycle import OrderResult, PurchaseOrderService
from services.receipt_processor import receipt_line
from utils.auth_utils import get_current_user, get_user_identifier
from utils.tenancy import get_tenant_id

router = APIRouter(prefix="/purchase-orders", tags=["Purchase Orders"])
logger = logging.getLogger("purchase_orders")


def get_purchase_order_service(db: Session = Depends(get_db)) -> PurchaseOrderService:
    return PurchaseOrderService(db)


def _to_response(result: OrderResult) -> PurchaseOrderResult:
    """Render a service result as the response envelope."""
    receipt = result.receipt
    return PurchaseOrderResult(
        data=PurchaseOrderSchema.model_validate(result.order),
        warning="; ".join(result.warnings) or None,
        rejected=[ReceiptRejection.model_validate(r) for r in receipt.rejected] if receipt else [],
        skipped=list(receipt.skipped) if receipt else [],
    )


def _line_specs(lines) -> List[LineSpec]:
    return [LineSpec(**line.model_dump()) for line in lines]


@router.post("/", response_model=PurchaseOrderResult, status_code=status.HTTP_201_CREATED)
def create_purchase_order(
    po: PurchaseOrderCreate,
    service: PurchaseOrderService = Depends(get_purchase_order_service),
    user: dict = Depends(get_current_user),
    tenant_id: str = Depends(get_tenant_id)
):
    """Create a new purchase order in DRAFT with its initial lines."""
    fields = po.model_dump(exclude={"order_number", "lines"}, exclude_unset=True)
    result = service.create(
        tenant_id,
        po.order_number,
        lines=_line_specs(po.lines),
        user_id=get_user_identifier(user),
        **fields,
    )
    return _to_response(result)


@router.get("/", response_model=List[PurchaseOrderSchema])
def read_purchase_orders(
    skip: int = 0,
    limit: int = 100,
    supplier_id: Optional[int] = None,
    status: Optional[PurchaseOrderStatus] = None,
    service: PurchaseOrderService = Depends(get_purchase_order_service),
    tenant_id: str = Depends(get_tenant_id)
):
    """Retrieve a list of purchase orders, optionally filtered by supplier and status."""
    return service.list(tenant_id, supplier_id=supplier_id, status=status, skip=skip, limit=limit)


@router.get("/{po_id}", response_model=PurchaseOrderSchema)
def read_purchase_order(
    po_id: int,
    service: PurchaseOrderService = Depends(get_purchase_order_service),
    tenant_id: str = Depends(get_tenant_id)
):
    """Retrieve a single purchase order with its lines."""
    return service.get(tenant_id, po_id)


@router.patch("/{po_id}", response_model=PurchaseOrderResult)
def update_purchase_order(
    po_id: int,
    po_update: PurchaseOrderUpdate,
    service: PurchaseOrderService = Depends(get_purchase_order_service),
    user: dict = Depends(get_current_user),
    tenant_id: str = Depends(get_tenant_id)
):
    """Update non-line attributes (partial update).
    Lines are changed through PUT /{po_id}/lines, quantities received through receipts."""
    fields = po_update.model_dump(exclude_unset=True)
    result = service.update_fields(tenant_id, po_id, fields, user_id=get_user_identifier(user))
    return _to_response(result)


@router.put("/{po_id}/lines", response_model=PurchaseOrderResult)
def replace_purchase_order_lines(
    po_id: int,
    body: PurchaseOrderLinesReplace,
    service: PurchaseOrderService = Depends(get_purchase_order_service),
    user: dict = Depends(get_current_user),
    tenant_id: str = Depends(get_tenant_id)
):
    """Reconcile the order's lines to exactly the given set. Received quantities are kept."""
    result = service.update_lines(tenant_id, po_id, _line_specs(body.lines), user_id=get_user_identifier(user))
    return _to_response(result)


@router.post("/{po_id}/receipts", response_model=PurchaseOrderResult)
def record_purchase_order_receipt(
    po_id: int,
    body: ReceiptRequest,
    service: PurchaseOrderService = Depends(get_purchase_order_service),
    user: dict = Depends(get_current_user),
    tenant_id: str = Depends(get_tenant_id)
):
    """Record delivered quantities against the order's lines and update stock."""
    receipts = [
        receipt_line(r.line_id, quantity_received_total=r.quantity_received_total, new_delivery=r.new_delivery)
        for r in body.receipts
    ]
    result = service.record_receipt(tenant_id, po_id, receipts, user_id=get_user_identifier(user))
    return _to_response(result)


@router.post("/{po_id}/cancel", response_model=PurchaseOrderResult)
def cancel_purchase_order(
    po_id: int,
    service: PurchaseOrderService = Depends(get_purchase_order_service),
    user: dict = Depends(get_current_user),
    tenant_id: str = Depends(get_tenant_id)
):
    """Move the order to CANCELLED. Receipts already recorded are kept."""
    result = service.cancel(tenant_id, po_id, user_id=get_user_identifier(user))
    return _to_response(result)


@router.delete("/{po_id}", response_model=PurchaseOrderDeleted)
def delete_purchase_order(
    po_id: int,
    service: PurchaseOrderService = Depends(get_purchase_order_service),
    user: dict = Depends(get_current_user),
    tenant_id: str = Depends(get_tenant_id)
):
    """Delete a purchase order and its lines. Stock already received is not reversed."""
    deleted = service.delete(tenant_id, po_id, user_id=get_user_identifier(user))
    return PurchaseOrderDeleted(
        id=deleted.id,
        order_number=deleted.order_number,
        warning="; ".join(deleted.warnings) or None,
    )
