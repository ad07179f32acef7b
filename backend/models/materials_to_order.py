from sqlalchemy import Column, Integer, String, Text, Enum, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from database import Base
import enum
from models.audit_mixin import TimestampMixin


class MaterialsToOrderStatus(enum.Enum):
    PENDING = "PENDING"
    PARTIALLY_ORDERED = "PARTIALLY_ORDERED"
    FULLY_ORDERED = "FULLY_ORDERED"


class MaterialsToOrder(Base, TimestampMixin):
    """A request listing the materials a project needs ordered."""
    __tablename__ = "materials_to_order"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(String, index=True, nullable=False)
    project_name = Column(String, nullable=True)
    status = Column(Enum(MaterialsToOrderStatus), default=MaterialsToOrderStatus.PENDING, nullable=False)
    notes = Column(Text, nullable=True)

    items = relationship("MaterialsToOrderItem", back_populates="materials_to_order", cascade="all, delete-orphan")


class MaterialsToOrderItem(Base):
    __tablename__ = "materials_to_order_items"
    __table_args__ = (UniqueConstraint('mto_id', 'inventory_item_id', name='_mto_item_uc'),)

    id = Column(Integer, primary_key=True, index=True)
    mto_id = Column(Integer, ForeignKey("materials_to_order.id", ondelete="CASCADE"), nullable=False, index=True)
    inventory_item_id = Column(Integer, ForeignKey("inventory_items.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    quantity_ordered_po = Column(Integer, default=0, nullable=False)  # Cumulative, capped at quantity
    tenant_id = Column(String, index=True, nullable=False)

    materials_to_order = relationship("MaterialsToOrder", back_populates="items")
