from sqlalchemy import Column, Integer, Numeric, ForeignKey, String, Text, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship
from database import Base


class PurchaseOrderLine(Base):
    __tablename__ = "purchase_order_lines"
    __table_args__ = (
        UniqueConstraint('purchase_order_id', 'inventory_item_id', name='_po_line_item_uc'),
        CheckConstraint('quantity_ordered >= 0', name='ck_po_line_qty_ordered_nonneg'),
        CheckConstraint('quantity_received >= 0', name='ck_po_line_qty_received_nonneg'),
    )

    id = Column(Integer, primary_key=True, index=True)
    purchase_order_id = Column(Integer, ForeignKey("purchase_orders.id", ondelete="CASCADE"), nullable=False, index=True)
    inventory_item_id = Column(Integer, ForeignKey("inventory_items.id"), nullable=False)
    quantity_ordered = Column(Integer, nullable=False)
    quantity_received = Column(Integer, default=0, nullable=False)  # Written only by receipt processing
    unit_price = Column(Numeric(12, 3), nullable=True)
    notes = Column(Text, nullable=True)
    tenant_id = Column(String, index=True, nullable=False)

    # Relationships
    purchase_order = relationship("PurchaseOrder", back_populates="lines")
    inventory_item = relationship("InventoryItem", back_populates="purchase_order_lines")
