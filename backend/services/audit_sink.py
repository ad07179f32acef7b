"""
Activity-history sink.

The lifecycle service reports every completed operation here after its main
transaction has committed. A sink failure never undoes the operation: it
raises LoggingFailure, which the service turns into a warning on the result.
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from crud.audit_log import create_audit_log
from exceptions import LoggingFailure
from schemas.audit_log import AuditLogCreate

logger = logging.getLogger("audit")


class DatabaseAuditSink:
    """Writes one audit_log row per event through the request's session."""

    table_name = "purchase_orders"

    def __init__(self, db: Session):
        self.db = db

    def record(
        self,
        tenant_id: str,
        action: str,
        record_id: int,
        changed_by: Optional[str] = None,
        description: Optional[str] = None,
        old_values: Optional[Dict[str, Any]] = None,
        new_values: Optional[Dict[str, Any]] = None,
    ):
        log_entry = AuditLogCreate(
            tenant_id=tenant_id,
            table_name=self.table_name,
            record_id=record_id,
            changed_by=changed_by,
            action=action,
            description=description,
            old_values=old_values,
            new_values=new_values,
        )
        try:
            return create_audit_log(db=self.db, log_entry=log_entry)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise LoggingFailure(action, record_id, f"{e.__class__.__name__}: {e}") from e
