# Overview: Service-layer operations for expenses; every change moves capital by an exact, reversible delta.

from __future__ import annotations

from ..extensions import db
from ..models import Expense
from ..models.ledger import ENTRY_EXPENSE, ENTRY_EXPENSE_DELETE, ENTRY_EXPENSE_UPDATE
from ..errors import NotFoundError
from ..validation import require_positive_amount_cents, require_text
from .concurrency import acquire_owner_lock, run_with_retry
from .ledger_service import append_capital_entry, require_capital


def _get_owned_expense(owner_id: int, expense_id: int) -> Expense:
    expense = db.session.query(Expense).filter_by(id=expense_id, owner_id=owner_id).first()
    if expense is None:
        raise NotFoundError("Expense not found")
    return expense


def list_expenses(owner_id: int) -> list[Expense]:
    return (
        db.session.query(Expense)
        .filter(Expense.owner_id == owner_id)
        .order_by(Expense.created_at.desc(), Expense.id.desc())
        .all()
    )


def record_expense(owner_id: int, expense_type, amount_cents) -> Expense:
    """Record an expense and debit capital by its amount."""
    expense_type = require_text(expense_type, "expense_type", max_length=120)
    amount = require_positive_amount_cents(amount_cents)

    def _op():
        acquire_owner_lock(owner_id)
        capital = require_capital(owner_id, "adding expenses")

        expense = Expense(owner_id=owner_id, expense_type=expense_type, amount_cents=amount)
        db.session.add(expense)
        db.session.flush()

        append_capital_entry(
            owner_id=owner_id,
            entry_type=ENTRY_EXPENSE,
            delta_cents=-amount,
            previous=capital,
            reference_type="expense",
            reference_id=expense.id,
            note=expense_type,
        )
        db.session.commit()
        return expense

    return run_with_retry(_op)


def update_expense(owner_id: int, expense_id: int, expense_type, amount_cents) -> Expense:
    """
    Edit an expense.

    Capital moves by -(new - old): raising the expense spends more, lowering
    it gives the difference back. Recording A then editing to B leaves the
    same capital as recording B directly.
    """
    expense_type = require_text(expense_type, "expense_type", max_length=120)
    amount = require_positive_amount_cents(amount_cents)

    def _op():
        acquire_owner_lock(owner_id)
        expense = _get_owned_expense(owner_id, expense_id)
        capital = require_capital(owner_id, "editing expenses")

        delta = amount - expense.amount_cents
        expense.expense_type = expense_type
        expense.amount_cents = amount

        if delta != 0:
            append_capital_entry(
                owner_id=owner_id,
                entry_type=ENTRY_EXPENSE_UPDATE,
                delta_cents=-delta,
                previous=capital,
                reference_type="expense",
                reference_id=expense.id,
                note=expense_type,
            )
        db.session.commit()
        return expense

    return run_with_retry(_op)


def delete_expense(owner_id: int, expense_id: int) -> None:
    """Delete an expense and credit its full amount back to capital."""
    def _op():
        acquire_owner_lock(owner_id)
        expense = _get_owned_expense(owner_id, expense_id)
        capital = require_capital(owner_id, "deleting expenses")

        append_capital_entry(
            owner_id=owner_id,
            entry_type=ENTRY_EXPENSE_DELETE,
            delta_cents=expense.amount_cents,
            previous=capital,
            reference_type="expense",
            reference_id=expense.id,
            note=expense.expense_type,
        )
        db.session.delete(expense)
        db.session.commit()

    run_with_retry(_op)
