"""
Capital ledger tests.

- First adjustment creates the initial row; later ones append snapshots.
- The balance always equals the sum of applied deltas (may go negative).
- Integer amounts only.
"""

import pytest

from casastock.errors import ValidationError
from casastock.models import CapitalEntry
from casastock.models.ledger import ENTRY_ADJUSTMENT, ENTRY_INITIAL
from casastock.services import ledger_service
from casastock.validation import MAX_LEDGER_CENTS

from conftest import current_balance


def test_get_capital_is_none_before_initialization(owner):
    assert ledger_service.get_current_capital(owner.id) is None


def test_first_adjustment_sets_initial_capital(owner):
    entry = ledger_service.adjust_capital(owner.id, 5000)

    assert entry.entry_type == ENTRY_INITIAL
    assert entry.balance_cents == 5000
    assert entry.delta_cents == 5000


def test_adjustments_accumulate_and_may_go_negative(owner):
    ledger_service.adjust_capital(owner.id, 5000)
    second = ledger_service.adjust_capital(owner.id, -7000)

    assert second.entry_type == ENTRY_ADJUSTMENT
    assert current_balance(owner.id) == -2000


def test_zero_adjustment_appends_snapshot(owner, db_session):
    ledger_service.adjust_capital(owner.id, 100)
    ledger_service.adjust_capital(owner.id, 0)

    assert current_balance(owner.id) == 100
    assert db_session.query(CapitalEntry).filter_by(owner_id=owner.id).count() == 2


@pytest.mark.parametrize("bad", [True, 1.5, "1.5", "1e3", "abc", None])
def test_non_integer_amounts_rejected(owner, db_session, bad):
    with pytest.raises(ValidationError):
        ledger_service.adjust_capital(owner.id, bad)
    assert db_session.query(CapitalEntry).count() == 0


def test_digit_strings_accepted(owner):
    entry = ledger_service.adjust_capital(owner.id, " 250 ")
    assert entry.balance_cents == 250


def test_balance_equals_sum_of_deltas(owner, db_session):
    for amount in (1000, -300, 45, 0, -5000):
        ledger_service.adjust_capital(owner.id, amount)

    deltas = [e.delta_cents for e in db_session.query(CapitalEntry).filter_by(owner_id=owner.id)]
    assert current_balance(owner.id) == sum(deltas) == 1000 - 300 + 45 - 5000


def test_history_newest_first_and_owner_scoped(owner, other_owner):
    ledger_service.adjust_capital(owner.id, 10)
    ledger_service.adjust_capital(owner.id, 20)
    ledger_service.adjust_capital(other_owner.id, 999)

    history = ledger_service.list_capital_history(owner.id)
    assert [e.balance_cents for e in history] == [30, 10]

    assert len(ledger_service.list_capital_history(owner.id, limit=1)) == 1


def test_capital_is_isolated_per_owner(owner, other_owner):
    ledger_service.adjust_capital(owner.id, 100)
    assert ledger_service.get_current_capital(other_owner.id) is None


@pytest.mark.parametrize("bad", [MAX_LEDGER_CENTS + 1, -(MAX_LEDGER_CENTS + 1), 10 ** 19, str(10 ** 19)])
def test_out_of_range_amounts_rejected(owner, db_session, bad):
    with pytest.raises(ValidationError):
        ledger_service.adjust_capital(owner.id, bad)
    assert db_session.query(CapitalEntry).count() == 0


def test_running_balance_is_bounded(owner, db_session):
    ledger_service.adjust_capital(owner.id, MAX_LEDGER_CENTS)

    with pytest.raises(ValidationError):
        ledger_service.adjust_capital(owner.id, 1)

    assert current_balance(owner.id) == MAX_LEDGER_CENTS
    assert db_session.query(CapitalEntry).count() == 1


def test_balance_past_32_bits(owner, db_session):
    ledger_service.adjust_capital(owner.id, 2_147_483_647)
    ledger_service.adjust_capital(owner.id, 2_147_483_647)
    db_session.expire_all()

    assert current_balance(owner.id) == 4_294_967_294
