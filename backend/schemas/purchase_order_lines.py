from pydantic import BaseModel, Field, model_validator
from typing import List, Optional, Union
from decimal import Decimal


class PurchaseOrderLineSpec(BaseModel):
    # One desired line in a create / replace-lines request.
    # quantity_received is intentionally absent: it is only changed by receipts.
    item_id: int
    quantity_ordered: int
    unit_price: Optional[Decimal] = None
    notes: Optional[str] = None
    line_id: Optional[int] = None


class ReceiptLineRequest(BaseModel):
    """
    Either the new running total received, or the size of a new delivery.

    Quantities that are not numbers pass through as strings and are rejected
    for their own line when the receipt is processed.
    """
    line_id: int
    quantity_received_total: Optional[Union[Decimal, str]] = None
    new_delivery: Optional[Union[Decimal, str]] = None

    @model_validator(mode="after")
    def exactly_one_quantity(self):
        given = [v for v in (self.quantity_received_total, self.new_delivery) if v is not None]
        if len(given) != 1:
            raise ValueError("Provide exactly one of quantity_received_total or new_delivery")
        return self


class PurchaseOrderLine(BaseModel):
    id: int
    purchase_order_id: int
    inventory_item_id: int
    quantity_ordered: int
    quantity_received: int
    unit_price: Optional[Decimal] = None
    notes: Optional[str] = None

    class Config:
        from_attributes = True


class ReceiptRejection(BaseModel):
    line_id: int
    reason: str
    current_received: int
    requested_received: int

    class Config:
        from_attributes = True


class ReceiptRequest(BaseModel):
    receipts: List[ReceiptLineRequest] = Field(min_length=1)
