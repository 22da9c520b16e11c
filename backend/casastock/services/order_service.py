"""
Order Service - multi-item order placement

WHY: An order is the only path that takes stock out. Placing one must check
availability against the whole order, decrement stock and credit capital as
a single unit, or do nothing at all.
"""

from __future__ import annotations

import logging

from ..extensions import db
from ..models import Order, OrderLine, Product
from ..models.ledger import ENTRY_ORDER
from ..errors import InsufficientStockError, NotFoundError, ValidationError
from ..validation import coerce_int, require_price_cents, require_quantity, require_text
from .concurrency import acquire_owner_lock, lock_for_update, run_with_retry
from .ledger_service import append_capital_entry, require_capital

logger = logging.getLogger(__name__)


def _normalize_lines(lines) -> list[dict]:
    if not isinstance(lines, list) or not lines:
        raise ValidationError("At least one order line is required")

    normalized = []
    for i, raw in enumerate(lines, start=1):
        if not isinstance(raw, dict):
            raise ValidationError(f"Line {i} must be an object")
        if raw.get("product_id") in (None, ""):
            raise ValidationError(f"Line {i}: product_id is required")
        normalized.append({
            "product_id": coerce_int(raw.get("product_id"), f"lines[{i}].product_id"),
            "quantity": require_quantity(raw.get("quantity"), f"lines[{i}].quantity", positive=True),
            "selling_price_cents": require_price_cents(
                raw.get("selling_price_cents"), f"lines[{i}].selling_price_cents"
            ),
        })
    return normalized


def aggregate_demand(lines: list[dict]) -> dict[int, int]:
    """Summed requested quantity per product across all lines of one order."""
    totals: dict[int, int] = {}
    for line in lines:
        totals[line["product_id"]] = totals.get(line["product_id"], 0) + line["quantity"]
    return totals


def _validate_stock(products: dict[int, Product], demand: dict[int, int]) -> None:
    insufficient = []
    for product_id, qty in demand.items():
        product = products[product_id]
        if product.current_quantity < qty:
            insufficient.append({
                "product_id": product_id,
                "name": product.name,
                "requested_quantity": qty,
                "available_quantity": product.current_quantity,
            })

    if insufficient:
        raise InsufficientStockError(insufficient)


def place_order(owner_id: int, *, address, lines, shipping_charge_cents=0) -> Order:
    """
    Place an order atomically.

    - Capital must exist (PreconditionError).
    - Every product must belong to the owner (NotFoundError).
    - Demand is aggregated per product before checking availability; the
      rejection lists every overdrawn product (InsufficientStockError).
    - On success: order + lines created, stock decremented by aggregate
      demand, capital credited with line totals + shipping.
    """
    address = require_text(address, "address")
    if shipping_charge_cents is None or shipping_charge_cents == "":
        shipping_charge_cents = 0
    shipping = require_price_cents(shipping_charge_cents, "shipping_charge_cents")
    normalized = _normalize_lines(lines)
    demand = aggregate_demand(normalized)

    def _op():
        acquire_owner_lock(owner_id)

        capital = require_capital(owner_id, "placing orders")

        rows = (
            lock_for_update(
                db.session.query(Product).filter(
                    Product.owner_id == owner_id,
                    Product.id.in_(list(demand.keys())),
                )
            )
            .all()
        )
        products = {p.id: p for p in rows}

        missing = sorted(pid for pid in demand if pid not in products)
        if missing:
            raise NotFoundError(
                "Product not found",
                details={"product_ids": missing},
            )

        _validate_stock(products, demand)

        order = Order(owner_id=owner_id, address=address, shipping_charge_cents=shipping)
        db.session.add(order)
        db.session.flush()

        revenue = shipping
        for line in normalized:
            product = products[line["product_id"]]
            db.session.add(OrderLine(
                order_id=order.id,
                product_id=product.id,
                product_name=product.name,
                quantity=line["quantity"],
                selling_price_cents=line["selling_price_cents"],
            ))
            revenue += line["quantity"] * line["selling_price_cents"]

        for product_id, qty in demand.items():
            products[product_id].current_quantity -= qty

        append_capital_entry(
            owner_id=owner_id,
            entry_type=ENTRY_ORDER,
            delta_cents=revenue,
            previous=capital,
            reference_type="order",
            reference_id=order.id,
            note=f"Order {order.id}",
        )

        db.session.commit()
        logger.info("Order %s placed for owner %s: revenue=%s", order.id, owner_id, revenue)
        return order

    return run_with_retry(_op)


def get_order(owner_id: int, order_id: int) -> Order:
    order = db.session.query(Order).filter_by(id=order_id, owner_id=owner_id).first()
    if order is None:
        raise NotFoundError("Order not found")
    return order


def list_orders(owner_id: int, search: str | None = None) -> list[Order]:
    """Orders newest first; `search` matches any line's product name."""
    query = db.session.query(Order).filter(Order.owner_id == owner_id)
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        query = query.filter(
            Order.lines.any(OrderLine.product_name.ilike(pattern))
        )
    return query.order_by(Order.created_at.desc(), Order.id.desc()).all()
