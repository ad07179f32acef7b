"""
Pytest configuration and shared fixtures for the purchase order engine.

Each test gets its own SQLite database file so committed data never leaks
between tests and several sessions can share one database.
"""
import os
import tempfile

# Must be set before database.py / main.py are imported
_BOOTSTRAP_DIR = tempfile.mkdtemp(prefix="po_engine_test_")
os.environ.setdefault("DATABASE_URL", f"sqlite:///{os.path.join(_BOOTSTRAP_DIR, 'bootstrap.db')}")
os.environ.setdefault("LOG_DIR", os.path.join(_BOOTSTRAP_DIR, "logs"))
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")
os.environ.setdefault("LOCK_TIMEOUT_MS", "2000")

import pytest
from sqlalchemy.orm import Session, sessionmaker

import models  # noqa: F401  registers every table on Base.metadata
from database import Base, build_engine
from models.business_partners import BusinessPartner, PartnerStatus
from models.inventory_items import InventoryItem
from models.materials_to_order import MaterialsToOrder, MaterialsToOrderItem

TENANT = "tenant-a"
OTHER_TENANT = "tenant-b"
USER = "buyer@example.com"


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'engine.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory) -> Session:
    """Session on a fresh database; closed after the test."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def items(db_session):
    """
    Inventory items X, Y, Z for TENANT (stock 0) and item W for OTHER_TENANT.

    Returns a dict of name -> id.
    """
    rows = {
        "X": InventoryItem(tenant_id=TENANT, name="Bolts", unit="box", current_stock=0),
        "Y": InventoryItem(tenant_id=TENANT, name="Nuts", unit="box", current_stock=0),
        "Z": InventoryItem(tenant_id=TENANT, name="Washers", unit="box", current_stock=0),
        "W": InventoryItem(tenant_id=OTHER_TENANT, name="Bolts", unit="box", current_stock=0),
    }
    db_session.add_all(rows.values())
    db_session.commit()
    return {name: row.id for name, row in rows.items()}


@pytest.fixture
def suppliers(db_session):
    """An active vendor, an inactive vendor and a customer-only partner for TENANT."""
    rows = {
        "active": BusinessPartner(tenant_id=TENANT, name="Acme Supplies", status=PartnerStatus.ACTIVE, is_vendor=True),
        "inactive": BusinessPartner(tenant_id=TENANT, name="Old Supplies", status=PartnerStatus.INACTIVE, is_vendor=True),
        "customer": BusinessPartner(tenant_id=TENANT, name="Retail Customer", status=PartnerStatus.ACTIVE, is_vendor=False),
        "foreign": BusinessPartner(tenant_id=OTHER_TENANT, name="Acme Supplies", status=PartnerStatus.ACTIVE, is_vendor=True),
    }
    db_session.add_all(rows.values())
    db_session.commit()
    return {name: row.id for name, row in rows.items()}


@pytest.fixture
def mto(db_session, items):
    """A materials-to-order request for 10 of X and 4 of Y."""
    request = MaterialsToOrder(tenant_id=TENANT, project_name="Warehouse fit-out")
    request.items = [
        MaterialsToOrderItem(inventory_item_id=items["X"], quantity=10, quantity_ordered_po=0, tenant_id=TENANT),
        MaterialsToOrderItem(inventory_item_id=items["Y"], quantity=4, quantity_ordered_po=0, tenant_id=TENANT),
    ]
    db_session.add(request)
    db_session.commit()
    return request.id


class RecordingSink:
    """Audit sink that keeps events in memory."""

    def __init__(self):
        self.events = []

    def record(self, tenant_id, action, record_id, **kwargs):
        self.events.append({"tenant_id": tenant_id, "action": action, "record_id": record_id, **kwargs})


class FailingSink:
    """Audit sink whose backend is down."""

    def record(self, tenant_id, action, record_id, **kwargs):
        from exceptions import LoggingFailure
        raise LoggingFailure(action, record_id, "audit backend unavailable")


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def service(db_session, sink):
    from services.order_lifecycle import PurchaseOrderService
    return PurchaseOrderService(db_session, audit_sink=sink)


def stock_of(session_factory, item_id):
    """Read an item's stock through a brand new session."""
    with session_factory() as session:
        return session.get(InventoryItem, item_id).current_stock
