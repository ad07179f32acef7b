from sqlalchemy import Column, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from database import Base
from models.audit_mixin import TimestampMixin


class InventoryItem(Base, TimestampMixin):
    __tablename__ = "inventory_items"
    __table_args__ = (UniqueConstraint('name', 'tenant_id', name='_inventory_items_name_tenant_uc'),)

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(String, index=True, nullable=False)
    name = Column(String, nullable=False)
    unit = Column(String, nullable=False, default="units")
    category = Column(String, nullable=True)
    # Only ever changed by atomic +delta updates, never assigned absolutely
    current_stock = Column(Integer, default=0, nullable=False)
    description = Column(Text, nullable=True)

    # Relationships
    purchase_order_lines = relationship("PurchaseOrderLine", back_populates="inventory_item")
    audits = relationship("InventoryItemAudit", back_populates="inventory_item")
