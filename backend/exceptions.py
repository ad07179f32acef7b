"""
Typed exceptions for the purchase order engine.

Every error carries a class-level ``code`` so callers and the HTTP layer can
branch on type instead of parsing messages:

    PurchaseOrderError
    +-- NotFoundError      order, line, item, supplier or MTO missing / foreign tenant
    +-- ValidationError    malformed or out-of-range input, carries ``details``
    +-- ConflictError      concurrent modification or duplicate key, retry the call
    +-- StorageError       transaction / commit failure, nothing was written
    +-- LoggingFailure     audit sink failed; never fatal to the operation
"""

from typing import Any, Dict, List, Optional


class PurchaseOrderError(Exception):
    """Base exception for all purchase order engine errors."""

    code: str = "PURCHASE_ORDER_ERROR"


class NotFoundError(PurchaseOrderError):
    """Entity does not exist or is not owned by the caller's tenant."""

    code: str = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: Any):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found: {entity_id}")


class ValidationError(PurchaseOrderError):
    """Input rejected before anything was written.

    ``details`` holds one dict per offending input, e.g.
    ``{"index": 2, "field": "quantity_ordered", "message": "must be > 0"}``.
    """

    code: str = "VALIDATION_ERROR"

    def __init__(self, message: str, details: Optional[List[Dict[str, Any]]] = None):
        self.details = details or []
        super().__init__(message)


class ConflictError(PurchaseOrderError):
    """Concurrent modification or uniqueness violation detected at commit."""

    code: str = "CONFLICT"

    def __init__(self, message: str, entity: Optional[str] = None, entity_id: Any = None):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(message)


class StorageError(PurchaseOrderError):
    """The transaction could not be committed; no partial writes are visible."""

    code: str = "STORAGE_ERROR"


class LoggingFailure(PurchaseOrderError):
    """The audit sink could not record an event."""

    code: str = "LOGGING_FAILURE"

    def __init__(self, action: str, record_id: Any, reason: str):
        self.action = action
        self.record_id = record_id
        self.reason = reason
        super().__init__(f"Failed to log {action} for {record_id}: {reason}")
