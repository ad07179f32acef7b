from sqlalchemy import Column, Integer, String, Text, Numeric, Date, DateTime, ForeignKey, Enum, UniqueConstraint
from sqlalchemy.orm import relationship
from database import Base
import enum
from models.audit_mixin import TimestampMixin


class PurchaseOrderStatus(enum.Enum):
    DRAFT = "DRAFT"
    ORDERED = "ORDERED"
    PARTIALLY_RECEIVED = "PARTIALLY_RECEIVED"
    FULLY_RECEIVED = "FULLY_RECEIVED"
    CANCELLED = "CANCELLED"


class PurchaseOrder(Base, TimestampMixin):
    __tablename__ = "purchase_orders"
    __table_args__ = (UniqueConstraint('tenant_id', 'order_number', name='_tenant_order_number_uc'),)

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(String, index=True, nullable=False)
    order_number = Column(String(64), nullable=False)  # Immutable once assigned
    status = Column(Enum(PurchaseOrderStatus), default=PurchaseOrderStatus.DRAFT, nullable=False)
    notes = Column(Text, nullable=True)
    total_amount = Column(Numeric(12, 3), nullable=True)
    delivery_charge = Column(Numeric(12, 3), nullable=True)
    ordered_at = Column(DateTime(timezone=True), nullable=True)
    invoice_date = Column(Date, nullable=True)
    invoice_url = Column(String(500), nullable=True)  # Reference into external file storage
    supplier_id = Column(Integer, ForeignKey("business_partners.id"), nullable=True)
    mto_id = Column(Integer, ForeignKey("materials_to_order.id", ondelete="SET NULL"), nullable=True)
    ordered_by = Column(String, nullable=True)
    version_id = Column(Integer, nullable=False)

    # Relationships
    supplier = relationship("BusinessPartner", back_populates="purchase_orders", foreign_keys=[supplier_id])
    lines = relationship(
        "PurchaseOrderLine",
        back_populates="purchase_order",
        cascade="all, delete-orphan",
        order_by="PurchaseOrderLine.id",
    )

    # Every write checks and bumps version_id; a stale write raises StaleDataError
    __mapper_args__ = {"version_id_col": version_id}
