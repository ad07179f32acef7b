from sqlalchemy import Column, DateTime, String
from datetime import datetime
import os
import pytz

APP_TIMEZONE = os.getenv("APP_TIMEZONE", "Asia/Kolkata")


def now_local():
    """Timezone-aware 'now' in the application timezone."""
    return datetime.now(pytz.timezone(APP_TIMEZONE))


class TimestampMixin:
    """Mixin that provides created/updated timestamps and user info.

    Purchase orders and their lines are hard-deleted by the explicit delete
    operation; there is no soft-delete column.
    """
    # DateTime(timezone=True) ensures the timezone info is persisted in the database.
    created_at = Column(DateTime(timezone=True), default=now_local)
    updated_at = Column(DateTime(timezone=True), onupdate=now_local)
    created_by = Column(String, nullable=True)
    updated_by = Column(String, nullable=True)
