# Overview: Service-layer operations for batches and products; encapsulates business logic and database work.

# backend/casastock/services/inventory_service.py

from __future__ import annotations

import logging

from sqlalchemy import func

from ..extensions import db
from ..models import Batch, Product, OrderLine
from ..models.ledger import ENTRY_STOCK_PURCHASE
from ..errors import NotFoundError, ValidationError
from ..validation import (
    coerce_int,
    optional_text,
    require_price_cents,
    require_quantity,
    require_text,
)
from .concurrency import acquire_owner_lock, run_with_retry
from .ledger_service import append_capital_entry, require_capital
"""
CasaStock Stock Invariants (authoritative)

- A stock purchase creates a Product with initial_quantity = current_quantity
  and debits capital by buying_price_cents * quantity, in one transaction.
- Stock purchases are rejected entirely when the owner has no capital row.
- current_quantity is decreased only by order placement (order_service) and
  may be corrected by a direct edit within [0, initial_quantity - ordered].
- Batches are labels only: deleting one nulls batch_id on its products.
- Every lookup is owner-scoped; another owner's row is reported as not found.
"""

logger = logging.getLogger(__name__)

PRODUCT_MUTABLE_FIELDS = {
    "name",
    "description",
    "image_url",
    "batch_id",
    "buying_price_cents",
    "selling_price_cents",
    "current_quantity",
}


# =============================================================================
# BATCHES
# =============================================================================

def get_batch(owner_id: int, batch_id: int) -> Batch:
    batch = db.session.query(Batch).filter_by(id=batch_id, owner_id=owner_id).first()
    if batch is None:
        raise NotFoundError("Batch not found")
    return batch


def list_batches(owner_id: int) -> list[dict]:
    """Batches newest first, each with the number of products still tagged with it."""
    counts = dict(
        db.session.query(Product.batch_id, func.count(Product.id))
        .filter(Product.owner_id == owner_id, Product.batch_id.isnot(None))
        .group_by(Product.batch_id)
        .all()
    )
    batches = (
        db.session.query(Batch)
        .filter(Batch.owner_id == owner_id)
        .order_by(Batch.created_at.desc(), Batch.id.desc())
        .all()
    )
    items = []
    for batch in batches:
        data = batch.to_dict()
        data["product_count"] = counts.get(batch.id, 0)
        items.append(data)
    return items


def create_batch(owner_id: int, name) -> Batch:
    name = require_text(name, "name", max_length=120)
    batch = Batch(owner_id=owner_id, name=name)
    db.session.add(batch)
    db.session.commit()
    return batch


def rename_batch(owner_id: int, batch_id: int, name) -> Batch:
    name = require_text(name, "name", max_length=120)
    batch = get_batch(owner_id, batch_id)
    batch.name = name
    db.session.commit()
    return batch


def delete_batch(owner_id: int, batch_id: int) -> None:
    """Delete a batch label; its products stay, untagged."""
    def _op():
        batch = get_batch(owner_id, batch_id)
        (
            db.session.query(Product)
            .filter(Product.owner_id == owner_id, Product.batch_id == batch.id)
            .update({Product.batch_id: None}, synchronize_session="fetch")
        )
        db.session.delete(batch)
        db.session.commit()

    run_with_retry(_op)


# =============================================================================
# PRODUCTS
# =============================================================================

def get_product(owner_id: int, product_id: int) -> Product:
    product = db.session.query(Product).filter_by(id=product_id, owner_id=owner_id).first()
    if product is None:
        raise NotFoundError("Product not found")
    return product


def list_products(owner_id: int, search: str | None = None) -> list[Product]:
    query = db.session.query(Product).filter(Product.owner_id == owner_id)
    if search:
        query = query.filter(Product.name.ilike(f"%{search.strip()}%"))
    return query.order_by(Product.created_at.desc(), Product.id.desc()).all()


def _ordered_quantity(product_id: int) -> int:
    total = (
        db.session.query(func.coalesce(func.sum(OrderLine.quantity), 0))
        .filter(OrderLine.product_id == product_id)
        .scalar()
    )
    return int(total or 0)


def record_stock_purchase(
    owner_id: int,
    *,
    batch_id,
    name,
    buying_price_cents,
    selling_price_cents,
    quantity,
    image_url=None,
    description=None,
) -> Product:
    """
    Register new stock: create the product and debit capital by its wholesale cost.

    Raises:
        ValidationError: malformed input or unknown batch
        PreconditionError: no capital row yet (nothing is written)
    """
    if batch_id is None or batch_id == "":
        raise ValidationError("batch_id is required")
    batch_id = coerce_int(batch_id, "batch_id")
    name = require_text(name, "name", max_length=255)
    buying = require_price_cents(buying_price_cents, "buying_price_cents")
    selling = require_price_cents(selling_price_cents, "selling_price_cents")
    qty = require_quantity(quantity, "quantity")
    image_url = optional_text(image_url, "image_url", max_length=1024)
    description = optional_text(description, "description")

    def _op():
        acquire_owner_lock(owner_id)

        batch = db.session.query(Batch).filter_by(id=batch_id, owner_id=owner_id).first()
        if batch is None:
            raise ValidationError("batch_id must reference an existing batch")

        capital = require_capital(owner_id, "adding stock")

        product = Product(
            owner_id=owner_id,
            batch_id=batch.id,
            name=name,
            description=description,
            image_url=image_url,
            buying_price_cents=buying,
            selling_price_cents=selling,
            initial_quantity=qty,
            current_quantity=qty,
        )
        db.session.add(product)
        db.session.flush()  # ensure product.id exists before the capital entry

        append_capital_entry(
            owner_id=owner_id,
            entry_type=ENTRY_STOCK_PURCHASE,
            delta_cents=-(buying * qty),
            previous=capital,
            reference_type="product",
            reference_id=product.id,
            note=f"Stock purchase: {qty} x {name}",
        )

        db.session.commit()
        return product

    return run_with_retry(_op)


def update_product(owner_id: int, product_id: int, patch: dict) -> Product:
    """
    Edit a product's details or correct its stock level. No capital effect.

    current_quantity may not exceed initial_quantity minus what orders have
    already taken, otherwise ordered totals could exceed the purchased stock.
    """
    def _op():
        acquire_owner_lock(owner_id)
        product = get_product(owner_id, product_id)

        if "batch_id" in patch and patch["batch_id"] is not None:
            batch = db.session.query(Batch).filter_by(id=patch["batch_id"], owner_id=owner_id).first()
            if batch is None:
                raise ValidationError("batch_id must reference an existing batch")

        if "current_quantity" in patch:
            ceiling = product.initial_quantity - _ordered_quantity(product.id)
            if patch["current_quantity"] > ceiling:
                raise ValidationError(
                    f"current_quantity cannot exceed {ceiling} "
                    f"(initial quantity minus quantities already ordered)"
                )

        for k, v in patch.items():
            if k in PRODUCT_MUTABLE_FIELDS:
                setattr(product, k, v)

        db.session.commit()
        return product

    return run_with_retry(_op)


def delete_product(owner_id: int, product_id: int) -> None:
    """Delete a product; past order lines keep their name snapshot."""
    def _op():
        acquire_owner_lock(owner_id)
        product = get_product(owner_id, product_id)
        (
            db.session.query(OrderLine)
            .filter(OrderLine.product_id == product.id)
            .update({OrderLine.product_id: None}, synchronize_session="fetch")
        )
        db.session.delete(product)
        db.session.commit()

    run_with_retry(_op)


def stock_summary(owner_id: int, low_stock_percent: int = 25) -> dict:
    """
    Aggregate stock level across all products, for the restock reminder.

    remaining_percent is 100 when nothing was ever stocked.
    """
    initial_total, current_total = (
        db.session.query(
            func.coalesce(func.sum(Product.initial_quantity), 0),
            func.coalesce(func.sum(Product.current_quantity), 0),
        )
        .filter(Product.owner_id == owner_id)
        .one()
    )
    initial_total = int(initial_total or 0)
    current_total = int(current_total or 0)

    if initial_total == 0:
        remaining_percent = 100.0
    else:
        remaining_percent = round(current_total * 100.0 / initial_total, 1)

    return {
        "initial_quantity": initial_total,
        "current_quantity": current_total,
        "remaining_percent": remaining_percent,
        "low_stock_percent": low_stock_percent,
        "should_restock": remaining_percent < low_stock_percent,
    }
