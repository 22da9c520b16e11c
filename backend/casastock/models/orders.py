from __future__ import annotations

from ..extensions import db
from casastock.time_utils import to_utc_z, utcnow

class Order(db.Model):
    """
    Customer order document.

    An order is created atomically with its lines and is immutable
    afterwards: there is no edit or delete path.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.CheckConstraint("shipping_charge_cents >= 0", name="ck_orders_shipping_nonneg"),
        db.Index("ix_orders_owner_created", "owner_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    address = db.Column(db.Text, nullable=False)
    shipping_charge_cents = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())

    lines = db.relationship(
        "OrderLine",
        backref="order",
        lazy="selectin",
        order_by="OrderLine.id",
    )

    @property
    def items_total_cents(self) -> int:
        return sum(line.line_total_cents for line in self.lines)

    @property
    def total_cents(self) -> int:
        return self.items_total_cents + self.shipping_charge_cents

    def to_dict(self, include_lines: bool = True) -> dict:
        data = {
            "id": self.id,
            "owner_id": self.owner_id,
            "address": self.address,
            "shipping_charge_cents": self.shipping_charge_cents,
            "items_total_cents": self.items_total_cents,
            "total_cents": self.total_cents,
            "created_at": to_utc_z(self.created_at),
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class OrderLine(db.Model):
    """
    Individual line item on an order.

    product_name is a snapshot taken at order time so the line stays
    readable after the product is deleted (product_id becomes NULL).
    """
    __tablename__ = "order_lines"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_order_lines_quantity_positive"),
        db.CheckConstraint("selling_price_cents >= 0", name="ck_order_lines_price_nonneg"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)

    product_name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    selling_price_cents = db.Column(db.Integer, nullable=False)

    product = db.relationship("Product")

    @property
    def line_total_cents(self) -> int:
        return self.quantity * self.selling_price_cents

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "selling_price_cents": self.selling_price_cents,
            "line_total_cents": self.line_total_cents,
        }
