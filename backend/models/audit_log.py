from sqlalchemy import Column, Integer, String, DateTime, JSON, Text
from database import Base
from models.audit_mixin import now_local


class AuditLog(Base):
    __tablename__ = "audit_log"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(String, index=True, nullable=False)
    table_name = Column(String, nullable=False)
    record_id = Column(Integer, nullable=False)
    changed_at = Column(DateTime(timezone=True), default=now_local)
    changed_by = Column(String, nullable=True)
    action = Column(String, nullable=False)  # e.g., 'CREATE', 'UPDATE', 'RECEIPT', 'FORCE_STATUS', 'DELETE'
    description = Column(Text, nullable=True)
    old_values = Column(JSON)
    new_values = Column(JSON)
