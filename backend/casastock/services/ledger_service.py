# Overview: Service-layer operations for the capital ledger; encapsulates business logic and database work.

from __future__ import annotations

import logging

from ..extensions import db
from ..models import CapitalEntry
from ..models.ledger import ENTRY_ADJUSTMENT, ENTRY_INITIAL
from ..errors import PreconditionError, ValidationError
from ..validation import MAX_LEDGER_CENTS, optional_text, require_ledger_amount_cents
from .concurrency import acquire_owner_lock, run_with_retry
"""
CasaStock Capital Ledger Invariants (authoritative)

- Capital is an append-only sequence of snapshot rows per owner.
- The current balance is the most recent row (created_at, then id).
- Each row stores the signed delta that produced it:
    balance(n) = balance(n-1) + delta(n), balance(0) = delta(0)
  so the balance is always the initial capital plus every delta ever applied.
- No floor is enforced: the balance may go negative (over-spending is surfaced,
  not blocked).
- Stock purchases, orders and expenses require an existing capital row.
- Entries are written inside the same DB transaction as the domain change
  they record; callers own the transaction (no commit here except in
  adjust_capital, which is its own unit of work).
"""

logger = logging.getLogger(__name__)


def get_current_capital(owner_id: int) -> CapitalEntry | None:
    return (
        db.session.query(CapitalEntry)
        .filter(CapitalEntry.owner_id == owner_id)
        .order_by(CapitalEntry.created_at.desc(), CapitalEntry.id.desc())
        .first()
    )


def require_capital(owner_id: int, action: str) -> CapitalEntry:
    """Return the current capital snapshot or raise PreconditionError."""
    capital = get_current_capital(owner_id)
    if capital is None:
        raise PreconditionError(f"Set initial capital before {action}.")
    return capital


def append_capital_entry(
    *,
    owner_id: int,
    entry_type: str,
    delta_cents: int,
    previous: CapitalEntry | None,
    reference_type: str | None = None,
    reference_id: int | None = None,
    note: str | None = None,
) -> CapitalEntry:
    """
    Append a capital snapshot derived from `previous`.

    - No updates of existing entries.
    - Does not commit; the caller's transaction decides.
    - Rejects a balance beyond MAX_LEDGER_CENTS (ValidationError).
    """
    balance = delta_cents if previous is None else previous.balance_cents + delta_cents
    if abs(balance) > MAX_LEDGER_CENTS:
        raise ValidationError(f"Capital balance cannot exceed {MAX_LEDGER_CENTS} cents in either direction")

    entry = CapitalEntry(
        owner_id=owner_id,
        entry_type=entry_type,
        delta_cents=delta_cents,
        balance_cents=balance,
        reference_type=reference_type,
        reference_id=reference_id,
        note=note[:255] if note else None,
    )
    db.session.add(entry)
    db.session.flush()  # ensures entry.id is assigned without committing

    logger.info(
        "Capital %s for owner %s: delta=%s balance=%s",
        entry_type, owner_id, delta_cents, balance,
    )
    return entry


def adjust_capital(owner_id: int, amount_cents, note: str | None = None) -> CapitalEntry:
    """
    Add (or withdraw, when negative) capital.

    Creates the owner's first capital row when none exists; otherwise appends
    a snapshot with previous + amount.
    """
    amount = require_ledger_amount_cents(amount_cents, "amount_cents")
    note = optional_text(note, "note", max_length=255)

    def _op():
        acquire_owner_lock(owner_id)
        previous = get_current_capital(owner_id)
        entry = append_capital_entry(
            owner_id=owner_id,
            entry_type=ENTRY_INITIAL if previous is None else ENTRY_ADJUSTMENT,
            delta_cents=amount,
            previous=previous,
            note=note,
        )
        db.session.commit()
        return entry

    return run_with_retry(_op)


def list_capital_history(owner_id: int, limit: int = 50) -> list[CapitalEntry]:
    limit = max(1, min(limit, 500))
    return (
        db.session.query(CapitalEntry)
        .filter(CapitalEntry.owner_id == owner_id)
        .order_by(CapitalEntry.created_at.desc(), CapitalEntry.id.desc())
        .limit(limit)
        .all()
    )
