"""
Order placement tests.

Covers the aggregate-demand stock check, all-or-nothing effects and the
revenue credited to capital.
"""

import pytest

from casastock.errors import InsufficientStockError, NotFoundError, PreconditionError, ValidationError
from casastock.models import CapitalEntry, Order, OrderLine, Product
from casastock.models.ledger import ENTRY_ORDER
from casastock.services import inventory_service, ledger_service, order_service

from conftest import current_balance


def _line(product, quantity, price=100):
    return {"product_id": product.id, "quantity": quantity, "selling_price_cents": price}


def _product(owner, batch, name, quantity, buying=10):
    return inventory_service.record_stock_purchase(
        owner.id,
        batch_id=batch.id,
        name=name,
        buying_price_cents=buying,
        selling_price_cents=100,
        quantity=quantity,
    )


def test_order_credits_line_totals_plus_shipping(owner, batch, capital):
    a = _product(owner, batch, "Mug", 5)
    b = _product(owner, batch, "Plate", 5)
    before = current_balance(owner.id)

    order = order_service.place_order(
        owner.id,
        address="12 Baker St",
        shipping_charge_cents=20,
        lines=[_line(a, 2, 100), _line(b, 1, 50)],
    )

    assert current_balance(owner.id) - before == 270
    assert order.total_cents == 270
    assert order.items_total_cents == 250


def test_order_decrements_stock_and_records_entry(owner, stock_product, db_session):
    order = order_service.place_order(owner.id, address="A", lines=[_line(stock_product, 4)])

    assert db_session.get(Product, stock_product.id).current_quantity == 6

    entry = (
        db_session.query(CapitalEntry)
        .filter_by(owner_id=owner.id)
        .order_by(CapitalEntry.id.desc())
        .first()
    )
    assert entry.entry_type == ENTRY_ORDER
    assert entry.reference_type == "order"
    assert entry.reference_id == order.id


def test_aggregate_demand_rejected_even_when_each_line_fits(owner, batch, capital, db_session):
    product = _product(owner, batch, "Candle", 5)
    before = current_balance(owner.id)

    with pytest.raises(InsufficientStockError) as exc:
        order_service.place_order(
            owner.id,
            address="A",
            lines=[_line(product, 3), _line(product, 3)],
        )

    assert exc.value.items == [{
        "product_id": product.id,
        "name": "Candle",
        "requested_quantity": 6,
        "available_quantity": 5,
    }]
    assert db_session.get(Product, product.id).current_quantity == 5
    assert current_balance(owner.id) == before
    assert db_session.query(Order).count() == 0
    assert db_session.query(OrderLine).count() == 0


def test_rejection_lists_every_overdrawn_product(owner, batch, capital, db_session):
    ok = _product(owner, batch, "Plenty", 50)
    short_a = _product(owner, batch, "Short A", 1)
    short_b = _product(owner, batch, "Short B", 2)

    with pytest.raises(InsufficientStockError) as exc:
        order_service.place_order(
            owner.id,
            address="A",
            lines=[_line(ok, 5), _line(short_a, 2), _line(short_b, 3)],
        )

    assert sorted(item["product_id"] for item in exc.value.items) == sorted([short_a.id, short_b.id])
    assert exc.value.details == {"items": exc.value.items}
    # No partial decrement on the product that had enough
    assert db_session.get(Product, ok.id).current_quantity == 50


def test_order_exactly_draining_stock_succeeds(owner, stock_product, db_session):
    order_service.place_order(owner.id, address="A", lines=[_line(stock_product, 6), _line(stock_product, 4)])
    assert db_session.get(Product, stock_product.id).current_quantity == 0


def test_order_requires_capital(owner, db_session):
    product = Product(
        owner_id=owner.id,
        name="Orphan",
        buying_price_cents=1,
        selling_price_cents=1,
        initial_quantity=3,
        current_quantity=3,
    )
    db_session.add(product)
    db_session.commit()

    with pytest.raises(PreconditionError):
        order_service.place_order(owner.id, address="A", lines=[_line(product, 1)])
    assert db_session.get(Product, product.id).current_quantity == 3


def test_order_with_foreign_product_is_not_found(owner, other_owner, stock_product):
    ledger_service.adjust_capital(other_owner.id, 1000)
    with pytest.raises(NotFoundError) as exc:
        order_service.place_order(other_owner.id, address="A", lines=[_line(stock_product, 1)])
    assert "Product not found" in str(exc.value)


@pytest.mark.parametrize("kwargs", [
    {"address": "", "lines": None},
    {"address": "A", "lines": []},
    {"address": "A", "lines": [{"product_id": 1, "quantity": 0, "selling_price_cents": 1}]},
    {"address": "A", "lines": [{"product_id": 1, "quantity": 1.5, "selling_price_cents": 1}]},
    {"address": "A", "lines": [{"product_id": 1, "quantity": 1, "selling_price_cents": -1}]},
    {"address": "A", "lines": [{"quantity": 1, "selling_price_cents": 1}]},
    {"address": "A", "lines": ["nope"]},
    {"address": "A", "lines": [{"product_id": 1, "quantity": 1, "selling_price_cents": 1}],
     "shipping_charge_cents": -5},
    {"address": "A", "lines": [{"product_id": 1, "quantity": 1_000_001, "selling_price_cents": 1}]},
    {"address": "A", "lines": [{"product_id": 10 ** 19, "quantity": 1, "selling_price_cents": 1}]},
])
def test_order_validation(owner, capital, kwargs):
    with pytest.raises(ValidationError):
        order_service.place_order(owner.id, **kwargs)


def test_list_orders_newest_first_with_search(owner, batch, capital):
    mug = _product(owner, batch, "Mug", 10)
    lamp = _product(owner, batch, "Desk Lamp", 10)

    first = order_service.place_order(owner.id, address="A", lines=[_line(mug, 1)])
    second = order_service.place_order(owner.id, address="B", lines=[_line(lamp, 1), _line(mug, 1)])

    assert [o.id for o in order_service.list_orders(owner.id)] == [second.id, first.id]
    assert [o.id for o in order_service.list_orders(owner.id, search="lamp")] == [second.id]


def test_get_order_is_owner_scoped(owner, other_owner, stock_product):
    order = order_service.place_order(owner.id, address="A", lines=[_line(stock_product, 1)])

    assert order_service.get_order(owner.id, order.id).id == order.id
    with pytest.raises(NotFoundError):
        order_service.get_order(other_owner.id, order.id)


def test_order_lines_snapshot_name(owner, stock_product):
    order = order_service.place_order(owner.id, address="A", lines=[_line(stock_product, 2, 90)])
    inventory_service.update_product(owner.id, stock_product.id, {"name": "Renamed"})

    data = order_service.get_order(owner.id, order.id).to_dict()
    assert data["lines"][0]["product_name"] == "Blue Shirt"
    assert data["lines"][0]["line_total_cents"] == 180
