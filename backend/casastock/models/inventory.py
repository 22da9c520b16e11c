from __future__ import annotations

from ..extensions import db
from casastock.time_utils import to_utc_z, utcnow

class Batch(db.Model):
    """
    A user-defined label grouping products that arrived together.

    No stock semantics of its own: deleting a batch leaves its products in
    place with batch_id set to NULL.
    """
    __tablename__ = "batches"
    __table_args__ = (
        db.Index("ix_batches_owner_created", "owner_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    name = db.Column(db.String(120), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Batch id={self.id} name={self.name!r} owner_id={self.owner_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "name": self.name,
            "created_at": to_utc_z(self.created_at),
        }


class Product(db.Model):
    """
    Product stock record.

    STOCK INVARIANTS:
    - current_quantity starts equal to initial_quantity (the stock purchase).
    - Only order placement decreases current_quantity; a direct edit may
      correct it within [0, initial_quantity - already ordered].
    - current_quantity is never negative.

    Prices are authoritative in cents (frontend may only format for display).
    version_id enables optimistic locking on concurrent stock updates.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("current_quantity >= 0", name="ck_products_current_quantity_nonneg"),
        db.CheckConstraint("initial_quantity >= 0", name="ck_products_initial_quantity_nonneg"),
        db.Index("ix_products_owner_name", "owner_id", "name"),
        db.Index("ix_products_owner_created", "owner_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    batch_id = db.Column(db.Integer, db.ForeignKey("batches.id", ondelete="SET NULL"), nullable=True, index=True)

    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    image_url = db.Column(db.String(1024), nullable=True)

    buying_price_cents = db.Column(db.Integer, nullable=False, default=0)
    selling_price_cents = db.Column(db.Integer, nullable=False, default=0)

    initial_quantity = db.Column(db.Integer, nullable=False, default=0)
    current_quantity = db.Column(db.Integer, nullable=False, default=0)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    batch = db.relationship("Batch", backref=db.backref("products", lazy=True, passive_deletes=True))
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} owner_id={self.owner_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "batch_id": self.batch_id,
            "batch_name": self.batch.name if self.batch is not None else None,
            "name": self.name,
            "description": self.description,
            "image_url": self.image_url,
            "buying_price_cents": self.buying_price_cents,
            "selling_price_cents": self.selling_price_cents,
            "initial_quantity": self.initial_quantity,
            "current_quantity": self.current_quantity,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
