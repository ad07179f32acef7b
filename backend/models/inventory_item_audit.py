from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from database import Base
from models.audit_mixin import now_local


class InventoryItemAudit(Base):
    """Append-only stock movement ledger; one row per applied stock delta."""
    __tablename__ = "inventory_item_audit"

    id = Column(Integer, primary_key=True, index=True)
    inventory_item_id = Column(Integer, ForeignKey("inventory_items.id"), nullable=False, index=True)
    tenant_id = Column(String, index=True, nullable=False)
    change_type = Column(String, nullable=False)  # "purchase_receipt"
    change_amount = Column(Integer, nullable=False)  # Positive or negative
    old_quantity = Column(Integer, nullable=False)
    new_quantity = Column(Integer, nullable=False)
    # Plain ids: history outlives an explicit order delete
    purchase_order_id = Column(Integer, nullable=True, index=True)
    purchase_order_line_id = Column(Integer, nullable=True)
    changed_by = Column(String, nullable=True)
    timestamp = Column(DateTime(timezone=True), default=now_local)
    note = Column(String, nullable=True)

    inventory_item = relationship("InventoryItem", back_populates="audits")
