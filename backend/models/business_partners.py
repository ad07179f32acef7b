from sqlalchemy import Column, Integer, String, Text, Enum, Boolean
from sqlalchemy.orm import relationship
from database import Base
import enum
from models.audit_mixin import TimestampMixin


class PartnerStatus(enum.Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"
    BLOCKED = "Blocked"


class BusinessPartner(Base, TimestampMixin):
    __tablename__ = "business_partners"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(String, index=True, nullable=False)
    name = Column(String, nullable=False)
    contact_name = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    address = Column(Text, nullable=True)
    email = Column(String, nullable=True)
    status = Column(Enum(PartnerStatus), default=PartnerStatus.ACTIVE, nullable=False)
    is_vendor = Column(Boolean, default=True, nullable=False)

    # Relationships
    purchase_orders = relationship("PurchaseOrder", back_populates="supplier", foreign_keys="PurchaseOrder.supplier_id")
