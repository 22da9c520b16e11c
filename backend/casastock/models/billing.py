from __future__ import annotations

from ..extensions import db
from casastock.time_utils import to_utc_z, utcnow


SUBSCRIPTION_PENDING = "pending"
SUBSCRIPTION_ACTIVE = "active"
SUBSCRIPTION_CANCELLED = "cancelled"


class Subscription(db.Model):
    """
    Monthly plan subscription backed by a Razorpay subscription object.

    The owner's most recent row (created_at, then id) decides access:
    only status='active' unlocks the functional routes.
    """
    __tablename__ = "subscriptions"
    __table_args__ = (
        db.Index("ix_subscriptions_owner_created", "owner_id", "created_at", "id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    plan_name = db.Column(db.String(120), nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)
    currency = db.Column(db.String(8), nullable=False, default="INR")

    status = db.Column(db.String(16), nullable=False, default=SUBSCRIPTION_PENDING, index=True)

    gateway_subscription_id = db.Column(db.String(64), nullable=True, unique=True, index=True)
    gateway_payment_id = db.Column(db.String(64), nullable=True)
    gateway_signature = db.Column(db.String(128), nullable=True)
    checkout_url = db.Column(db.String(1024), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    @property
    def is_active(self) -> bool:
        return self.status == SUBSCRIPTION_ACTIVE

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "plan_name": self.plan_name,
            "amount_cents": self.amount_cents,
            "currency": self.currency,
            "status": self.status,
            "gateway_subscription_id": self.gateway_subscription_id,
            "gateway_payment_id": self.gateway_payment_id,
            "checkout_url": self.checkout_url,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
