import pytest

from casastock.errors import NotFoundError, PreconditionError, ValidationError
from casastock.models import CapitalEntry, Expense
from casastock.services import expense_service, ledger_service

from conftest import current_balance


def test_record_expense_debits_capital(owner, capital):
    expense = expense_service.record_expense(owner.id, "Rent", 2500)

    assert expense.amount_cents == 2500
    assert current_balance(owner.id) == 100_000 - 2500


def test_record_then_delete_restores_capital(owner, capital, db_session):
    expense = expense_service.record_expense(owner.id, "Packaging", 799)
    expense_service.delete_expense(owner.id, expense.id)

    assert current_balance(owner.id) == 100_000
    assert db_session.query(Expense).count() == 0


@pytest.mark.parametrize("first,second", [(500, 800), (800, 500), (300, 300)])
def test_record_then_update_equals_recording_final_amount(owner, other_owner, first, second):
    ledger_service.adjust_capital(owner.id, 10_000)
    ledger_service.adjust_capital(other_owner.id, 10_000)

    expense = expense_service.record_expense(owner.id, "Ads", first)
    expense_service.update_expense(owner.id, expense.id, "Ads", second)

    expense_service.record_expense(other_owner.id, "Ads", second)

    assert current_balance(owner.id) == current_balance(other_owner.id) == 10_000 - second


def test_update_without_amount_change_writes_no_entry(owner, capital, db_session):
    expense = expense_service.record_expense(owner.id, "Ads", 100)
    count = db_session.query(CapitalEntry).count()

    updated = expense_service.update_expense(owner.id, expense.id, "Marketing", 100)

    assert updated.expense_type == "Marketing"
    assert db_session.query(CapitalEntry).count() == count


def test_expense_requires_capital(owner, db_session):
    with pytest.raises(PreconditionError) as exc:
        expense_service.record_expense(owner.id, "Rent", 100)
    assert str(exc.value) == "Set initial capital before adding expenses."
    assert db_session.query(Expense).count() == 0


@pytest.mark.parametrize("expense_type,amount", [
    ("", 100),
    ("Rent", 0),
    ("Rent", -5),
    ("Rent", 10.25),
    ("Rent", True),
])
def test_expense_validation(owner, capital, expense_type, amount):
    with pytest.raises(ValidationError):
        expense_service.record_expense(owner.id, expense_type, amount)
    assert current_balance(owner.id) == 100_000


def test_expense_is_owner_scoped(owner, other_owner, capital):
    ledger_service.adjust_capital(other_owner.id, 1000)
    expense = expense_service.record_expense(owner.id, "Rent", 100)

    with pytest.raises(NotFoundError):
        expense_service.update_expense(other_owner.id, expense.id, "Rent", 200)
    with pytest.raises(NotFoundError):
        expense_service.delete_expense(other_owner.id, expense.id)

    assert current_balance(owner.id) == 100_000 - 100
    assert current_balance(other_owner.id) == 1000


def test_list_expenses_newest_first(owner, capital):
    a = expense_service.record_expense(owner.id, "A", 1)
    b = expense_service.record_expense(owner.id, "B", 2)

    assert [e.id for e in expense_service.list_expenses(owner.id)] == [b.id, a.id]
