import sqlite3
import time
from types import SimpleNamespace

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

import database
from conftest import TENANT, RecordingSink, stock_of
from crud import purchase_orders as crud_purchase_orders
from database import Base, build_engine, unit_of_work
from exceptions import StorageError
from models.inventory_item_audit import InventoryItemAudit
from models.inventory_items import InventoryItem
from models.purchase_order_lines import PurchaseOrderLine
from models.purchase_orders import PurchaseOrder, PurchaseOrderStatus
from services.order_lifecycle import PurchaseOrderService


class StubSession:
    """Just enough of a Session for unit_of_work to drive."""

    def __init__(self, dialect):
        self.bind = SimpleNamespace(dialect=SimpleNamespace(name=dialect))
        self.statements = []
        self.committed = False
        self.rolled_back = False

    def get_bind(self):
        return self.bind

    def execute(self, statement):
        self.statements.append(str(statement))

    def commit(self):
        self.committed = True

    def rollback(self):
        self.rolled_back = True


def _create_order(service, items):
    order = service.create(TENANT, "PO-1001", lines=[
        {"item_id": items["X"], "quantity_ordered": 10},
        {"item_id": items["Y"], "quantity_ordered": 5},
    ]).order
    return order.id, [(line.id, line.inventory_item_id) for line in order.lines]


def test_postgres_transactions_set_a_lock_timeout():
    db = StubSession("postgresql")

    with unit_of_work(db):
        pass

    assert db.statements == [f"SET LOCAL lock_timeout = '{database.LOCK_TIMEOUT_MS}ms'"]
    assert db.committed


def test_sqlite_transactions_rely_on_the_driver_timeout():
    db = StubSession("sqlite")

    with unit_of_work(db):
        pass

    assert db.statements == []
    assert db.committed


def test_database_errors_become_storage_errors():
    db = StubSession("sqlite")

    with pytest.raises(StorageError):
        with unit_of_work(db):
            raise OperationalError("UPDATE inventory_items", {}, Exception("disk I/O error"))

    assert db.rolled_back
    assert not db.committed


def test_storage_failure_mid_receipt_aborts_the_whole_batch(db_session, items, session_factory, monkeypatch):
    sink = RecordingSink()
    service = PurchaseOrderService(db_session, audit_sink=sink)
    order_id, lines = _create_order(service, items)

    increment = crud_purchase_orders.increment_item_stock
    calls = []

    def failing_on_second_line(db, item_id, tenant_id, delta):
        calls.append(item_id)
        if len(calls) == 2:
            raise OperationalError("UPDATE inventory_items", {}, Exception("disk I/O error"))
        return increment(db, item_id=item_id, tenant_id=tenant_id, delta=delta)

    monkeypatch.setattr(crud_purchase_orders, "increment_item_stock", failing_on_second_line)

    with pytest.raises(StorageError):
        service.record_receipt(TENANT, order_id, [{"line_id": line_id, "new_delivery": 2} for line_id, _ in lines])

    assert len(calls) == 2
    assert [e["action"] for e in sink.events] == ["CREATE"]
    with session_factory() as fresh:
        received = fresh.query(PurchaseOrderLine.quantity_received).filter(PurchaseOrderLine.purchase_order_id == order_id)
        assert [q for (q,) in received] == [0, 0]
        assert fresh.get(PurchaseOrder, order_id).status == PurchaseOrderStatus.DRAFT
        assert fresh.query(InventoryItemAudit).count() == 0
    assert stock_of(session_factory, items["X"]) == 0
    assert stock_of(session_factory, items["Y"]) == 0


def test_lock_wait_is_bounded(tmp_path, monkeypatch):
    monkeypatch.setattr(database, "LOCK_TIMEOUT_MS", 200)
    path = tmp_path / "locked.db"
    engine = build_engine(f"sqlite:///{path}")
    Base.metadata.create_all(bind=engine)
    session_factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    with session_factory() as setup:
        item = InventoryItem(tenant_id=TENANT, name="Bolts", unit="box", current_stock=0)
        setup.add(item)
        setup.commit()
        item_id = item.id

    db = session_factory()
    blocker = sqlite3.connect(str(path), isolation_level=None)
    try:
        service = PurchaseOrderService(db, audit_sink=RecordingSink())
        order = service.create(TENANT, "PO-1001", lines=[{"item_id": item_id, "quantity_ordered": 10}]).order
        order_id, line_id = order.id, order.lines[0].id

        blocker.execute("BEGIN IMMEDIATE")
        started = time.monotonic()
        with pytest.raises(StorageError):
            service.record_receipt(TENANT, order_id, [{"line_id": line_id, "new_delivery": 4}])
        assert time.monotonic() - started < 5
    finally:
        blocker.rollback()
        blocker.close()
        db.close()

    assert stock_of(session_factory, item_id) == 0
    engine.dispose()
