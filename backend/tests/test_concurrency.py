"""
Unit-of-work tests.

- Two requests racing for the same stock serialize: exactly one 6-unit
  order succeeds against 10 in stock and the other is rejected, leaving 4.
- A store failure part-way through an order leaves nothing behind.
- Lock errors are retried; exhausted retries surface as StoreError.
"""

import threading

import pytest
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from casastock import create_app
from casastock.errors import InsufficientStockError, StoreError, ValidationError
from casastock.extensions import db
from casastock.models import CapitalEntry, Order, OrderLine, Product
from casastock.models.ledger import ENTRY_ORDER
from casastock.services import concurrency, inventory_service, ledger_service, order_service

from conftest import TEST_CONFIG, current_balance, make_owner


@pytest.fixture
def file_app(tmp_path):
    config = dict(TEST_CONFIG)
    config["SQLALCHEMY_DATABASE_URI"] = f"sqlite:///{tmp_path / 'race.sqlite3'}"
    config["UPLOAD_FOLDER"] = str(tmp_path / "uploads")
    app = create_app(config)

    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


def test_concurrent_orders_never_oversell(file_app):
    with file_app.app_context():
        owner = make_owner(db.session, "racer")
        ledger_service.adjust_capital(owner.id, 10_000)
        batch = inventory_service.create_batch(owner.id, "Race")
        product = inventory_service.record_stock_purchase(
            owner.id,
            batch_id=batch.id,
            name="Limited",
            buying_price_cents=10,
            selling_price_cents=50,
            quantity=10,
        )
        owner_id, product_id = owner.id, product.id
        start_balance = ledger_service.get_current_capital(owner_id).balance_cents

    barrier = threading.Barrier(2)
    outcomes = []
    lock = threading.Lock()

    def worker():
        with file_app.app_context():
            barrier.wait()
            try:
                order_service.place_order(
                    owner_id,
                    address="Race St",
                    lines=[{"product_id": product_id, "quantity": 6, "selling_price_cents": 50}],
                )
                result = "ok"
            except InsufficientStockError:
                result = "insufficient"
            finally:
                db.session.remove()
            with lock:
                outcomes.append(result)

    threads = [threading.Thread(target=worker) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    assert sorted(outcomes) == ["insufficient", "ok"]

    with file_app.app_context():
        assert db.session.get(Product, product_id).current_quantity == 4
        assert db.session.query(Order).count() == 1
        assert ledger_service.get_current_capital(owner_id).balance_cents == start_balance + 300


# =============================================================================
# ROLLBACK AND RETRY
# =============================================================================

def _order_lines(product_id, quantity=4):
    return [{"product_id": product_id, "quantity": quantity, "selling_price_cents": 100}]


def test_store_failure_mid_order_leaves_nothing(owner, stock_product, db_session, monkeypatch):
    product_id = stock_product.id
    before = current_balance(owner.id)

    def broken_entry(**kwargs):
        raise SQLAlchemyError("disk I/O error")

    monkeypatch.setattr(order_service, "append_capital_entry", broken_entry)

    with pytest.raises(StoreError):
        order_service.place_order(owner.id, address="A", lines=_order_lines(product_id))

    db_session.expire_all()
    assert db_session.get(Product, product_id).current_quantity == 10
    assert db_session.query(Order).count() == 0
    assert db_session.query(OrderLine).count() == 0
    assert current_balance(owner.id) == before


def test_lock_error_is_retried_once_then_succeeds(owner, stock_product, db_session, monkeypatch):
    product_id = stock_product.id
    before = current_balance(owner.id)
    real_entry = order_service.append_capital_entry
    attempts = []

    def flaky_entry(**kwargs):
        attempts.append(kwargs["entry_type"])
        if len(attempts) == 1:
            raise OperationalError("INSERT INTO capital_entries", {}, Exception("database is locked"))
        return real_entry(**kwargs)

    monkeypatch.setattr(order_service, "append_capital_entry", flaky_entry)
    monkeypatch.setattr(concurrency.time, "sleep", lambda seconds: None)

    order = order_service.place_order(owner.id, address="A", lines=_order_lines(product_id))

    db_session.expire_all()
    assert attempts == [ENTRY_ORDER, ENTRY_ORDER]
    assert db_session.query(Order).count() == 1
    assert db_session.get(Order, order.id) is not None
    assert db_session.get(Product, product_id).current_quantity == 6
    assert db_session.query(CapitalEntry).filter_by(entry_type=ENTRY_ORDER).count() == 1
    assert current_balance(owner.id) == before + 400


def test_exhausted_retries_surface_as_store_error(db_session):
    attempts = []

    def always_stale():
        attempts.append(1)
        raise StaleDataError("version mismatch")

    with pytest.raises(StoreError) as exc:
        concurrency.run_with_retry(always_stale, backoff_base=0)

    assert len(attempts) == 3
    assert exc.value.status_code == 500


def test_domain_errors_are_not_retried(db_session):
    attempts = []

    def invalid():
        attempts.append(1)
        raise ValidationError("bad input")

    with pytest.raises(ValidationError):
        concurrency.run_with_retry(invalid, backoff_base=0)

    assert attempts == [1]
