from __future__ import annotations

from ..extensions import db
from casastock.time_utils import to_utc_z, utcnow


# Capital entry types
ENTRY_INITIAL = "initial"
ENTRY_ADJUSTMENT = "adjustment"
ENTRY_STOCK_PURCHASE = "stock_purchase"
ENTRY_ORDER = "order"
ENTRY_EXPENSE = "expense"
ENTRY_EXPENSE_UPDATE = "expense_update"
ENTRY_EXPENSE_DELETE = "expense_delete"


class CapitalEntry(db.Model):
    """
    Append-only capital snapshot.

    The current capital of an owner is the balance_cents of the most recent
    row (created_at, then id). Each row records the signed delta that produced
    it, so balance_cents == sum(delta_cents) over the owner's history.
    Rows are never updated or deleted.
    """
    __tablename__ = "capital_entries"
    __table_args__ = (
        db.Index("ix_capital_entries_owner_created", "owner_id", "created_at", "id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    entry_type = db.Column(db.String(32), nullable=False)
    delta_cents = db.Column(db.BigInteger, nullable=False)
    balance_cents = db.Column(db.BigInteger, nullable=False)

    # What caused the entry (product / order / expense), if anything
    reference_type = db.Column(db.String(32), nullable=True)
    reference_id = db.Column(db.Integer, nullable=True)
    note = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<CapitalEntry id={self.id} owner_id={self.owner_id} balance_cents={self.balance_cents}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "entry_type": self.entry_type,
            "delta_cents": self.delta_cents,
            "balance_cents": self.balance_cents,
            "amount_cents": self.balance_cents,
            "reference_type": self.reference_type,
            "reference_id": self.reference_id,
            "note": self.note,
            "created_at": to_utc_z(self.created_at),
        }


class Expense(db.Model):
    """Business expense. Each one debits capital; edits and deletes reverse exactly."""
    __tablename__ = "expenses"
    __table_args__ = (
        db.CheckConstraint("amount_cents > 0", name="ck_expenses_amount_positive"),
        db.Index("ix_expenses_owner_created", "owner_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    expense_type = db.Column(db.String(120), nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "expense_type": self.expense_type,
            "amount_cents": self.amount_cents,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
