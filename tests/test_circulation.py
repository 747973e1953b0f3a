from datetime import datetime, timedelta

import pytest

from circulation import (
    calculate_fine, issue_book, return_book, pay_fine, transaction_state,
    get_transaction_by_id, get_book_transactions, get_member_transactions,
    open_transactions, overdue_transactions,
)
from errors import NOT_FOUND, PRECONDITION_FAILED, VALIDATION_FAILED
from membership import add_member
from my_models import TransactionState


def _active_member(store, number="M20001"):
    outcome = add_member(store, {
        "name": "Ada Reader", "email": "ada@example.com", "phone": "555-0100",
        "address": "1 Library Way", "membership_number": number, "membership_type": "1year",
    })
    assert outcome.success
    return outcome.entity


def _issue(store, member, book_id="1", days=7):
    return issue_book(store, book_id, member.id, store.now() + timedelta(days=days), "test loan")


# ------------------------- calculate_fine -------------------------
def test_fine_is_zero_when_on_time_or_early():
    due = datetime(2025, 1, 10)
    assert calculate_fine(due, due) == 0
    assert calculate_fine(due, due - timedelta(days=9)) == 0


def test_fine_counts_whole_days_late():
    due = datetime(2025, 1, 10)
    assert calculate_fine(due, due + timedelta(days=3)) == 15


def test_partial_day_rounds_up():
    due = datetime(2025, 1, 10)
    assert calculate_fine(due, due + timedelta(days=2, hours=12)) == 15
    assert calculate_fine(due, due + timedelta(minutes=1)) == 5


def test_fine_has_no_cap():
    due = datetime(2025, 1, 10)
    assert calculate_fine(due, due + timedelta(days=365)) == 365 * 5


# ------------------------- issue_book -------------------------
def test_issue_marks_book_unavailable_and_opens_one_transaction(store):
    member = _active_member(store)
    before = len(store.transactions())

    outcome = _issue(store, member)

    assert outcome.success
    assert len(store.transactions()) == before + 1
    assert store.get_book("1").available is False
    open_for_book = [t for t in get_book_transactions(store, "1") if t.is_open]
    assert len(open_for_book) == 1
    tr = outcome.entity
    assert tr.issue_date == store.now()
    assert tr.fine == 0
    assert tr.fine_paid is False
    assert tr.remarks == "test loan"
    assert tr.state is TransactionState.OPEN


def test_issue_unavailable_book_fails(store):
    member = _active_member(store)
    before = len(store.transactions())

    outcome = _issue(store, member, book_id="3")

    assert not outcome.success
    assert outcome.error == PRECONDITION_FAILED
    assert len(store.transactions()) == before


def test_issue_same_book_twice_fails(store):
    member = _active_member(store)
    assert _issue(store, member).success
    second = _issue(store, member)
    assert not second.success
    assert len(get_book_transactions(store, "1")) == 1


def test_issue_to_inactive_member_fails_without_side_effects(store):
    before = len(store.transactions())

    # seed member 2 is inactive
    outcome = issue_book(store, "1", "2", store.now() + timedelta(days=5))

    assert not outcome.success
    assert outcome.error == PRECONDITION_FAILED
    assert "not active" in outcome.message
    assert len(store.transactions()) == before
    assert store.get_book("1").available is True


@pytest.mark.parametrize("book_id, member_id", [("999", "1"), ("1", "999"), (None, "1")])
def test_issue_with_unknown_ids_is_not_found(store, book_id, member_id):
    outcome = issue_book(store, book_id, member_id, store.now() + timedelta(days=5))
    assert not outcome.success
    assert outcome.error == NOT_FOUND
    assert store.get_book("1").available is True


def test_issue_rejects_return_date_outside_loan_window(store):
    member = _active_member(store)
    too_late = _issue(store, member, days=16)
    too_early = _issue(store, member, days=-1)

    assert too_late.error == VALIDATION_FAILED
    assert too_early.error == VALIDATION_FAILED
    assert store.get_book("1").available is True


def test_issue_accepts_fifteen_day_loan_and_plain_dates(store):
    member = _active_member(store)
    assert _issue(store, member, days=15).success
    outcome = issue_book(store, "2", member.id, (store.now() + timedelta(days=3)).date())
    assert outcome.success
    assert outcome.entity.return_date == datetime.combine(
        (store.now() + timedelta(days=3)).date(), datetime.min.time()
    )


# ------------------------- return_book -------------------------
def test_return_on_time_has_no_fine_and_frees_book(store):
    member = _active_member(store)
    tr = _issue(store, member).entity

    result = return_book(store, tr.id, tr.return_date)

    assert result.success
    assert result.fine == 0
    assert result.transaction_id == tr.id
    assert store.get_book("1").available is True
    assert transaction_state(tr) is TransactionState.RETURNED_NO_FINE


def test_return_early_has_no_fine(store):
    member = _active_member(store)
    tr = _issue(store, member, days=10).entity
    result = return_book(store, tr.id, tr.issue_date + timedelta(days=1))
    assert result.fine == 0


def test_return_three_days_late(store):
    member = _active_member(store)
    tr = _issue(store, member).entity

    result = return_book(store, tr.id, tr.return_date + timedelta(days=3))

    assert result.success
    assert result.fine == 15
    assert result.category == "warning"
    assert store.get_book("1").available is False
    assert tr.state is TransactionState.RETURNED_WITH_FINE_UNPAID


def test_return_two_and_a_half_days_late_rounds_up(store):
    member = _active_member(store)
    tr = _issue(store, member).entity
    result = return_book(store, tr.id, tr.return_date + timedelta(days=2, hours=12))
    assert result.fine == 15


def test_return_twice_is_rejected_and_fine_is_kept(store):
    member = _active_member(store)
    tr = _issue(store, member).entity
    return_book(store, tr.id, tr.return_date + timedelta(days=2))

    again = return_book(store, tr.id, tr.return_date + timedelta(days=30))

    assert not again.success
    assert again.error == PRECONDITION_FAILED
    assert again.fine == 0
    assert get_transaction_by_id(store, tr.id).fine == 10


@pytest.mark.parametrize("actual", [None, "2025-03-12"])
def test_return_without_a_usable_date_is_rejected(store, actual):
    result = return_book(store, "1", actual)

    assert not result.success
    assert result.error == VALIDATION_FAILED
    tr = get_transaction_by_id(store, "1")
    assert tr.is_open
    assert tr.fine == 0


def test_return_unknown_transaction(store):
    result = return_book(store, "nope", store.now())
    assert not result.success
    assert result.error == NOT_FOUND
    assert result.transaction_id == "nope"


# ------------------------- pay_fine -------------------------
def test_pay_fine_marks_paid_and_frees_book(store):
    member = _active_member(store)
    tr = _issue(store, member).entity
    return_book(store, tr.id, tr.return_date + timedelta(days=4))

    outcome = pay_fine(store, tr.id)

    assert outcome.success
    assert tr.fine_paid is True
    assert tr.fine == 20
    assert store.get_book("1").available is True
    assert tr.state is TransactionState.RETURNED_WITH_FINE_PAID
    assert tr.state.is_terminal


def test_pay_fine_on_zero_fine_transaction(store):
    member = _active_member(store)
    tr = _issue(store, member).entity
    return_book(store, tr.id, tr.return_date)

    assert pay_fine(store, tr.id).success
    assert tr.fine_paid is True
    assert tr.fine == 0
    assert store.get_book("1").available is True


def test_pay_fine_is_idempotent(store):
    member = _active_member(store)
    tr = _issue(store, member).entity
    return_book(store, tr.id, tr.return_date + timedelta(days=1))
    pay_fine(store, tr.id)

    assert pay_fine(store, tr.id).success
    assert tr.fine_paid is True
    assert store.get_book("1").available is True


def test_pay_fine_on_open_transaction_frees_book(store, caplog):
    member = _active_member(store)
    tr = _issue(store, member).entity

    with caplog.at_level("WARNING", logger="circulation"):
        outcome = pay_fine(store, tr.id)

    assert outcome.success
    assert tr.fine_paid is True
    assert store.get_book("1").available is True
    assert tr.state is TransactionState.OPEN
    assert "pay_fine on open transaction" in caplog.text


def test_pay_fine_unknown_transaction(store):
    outcome = pay_fine(store, "missing")
    assert not outcome.success
    assert outcome.error == NOT_FOUND


# ------------------------- seed scenario -------------------------
def test_seed_book_held_until_fine_paid(store):
    assert store.get_book("3").available is False
    assert not issue_book(store, "3", "1", store.now() + timedelta(days=5)).success

    seed_tr = get_transaction_by_id(store, "1")
    result = return_book(store, "1", seed_tr.return_date + timedelta(days=20))

    assert result.success
    assert result.fine == 100
    assert store.get_book("3").available is False
    assert not issue_book(store, "3", "1", store.now() + timedelta(days=5)).success

    pay_fine(store, "1")

    assert store.get_book("3").available is True
    assert issue_book(store, "3", "1", store.now() + timedelta(days=5)).success


# ------------------------- lookups -------------------------
def test_transaction_filters(store):
    member = _active_member(store)
    _issue(store, member, book_id="1")
    _issue(store, member, book_id="2")

    assert [t.book_id for t in get_member_transactions(store, member.id)] == ["1", "2"]
    assert [t.id for t in get_member_transactions(store, "1")] == ["1"]
    assert [t.book_id for t in open_transactions(store)] == ["3", "1", "2"]
    assert get_transaction_by_id(store, "unknown") is None


def test_overdue_transactions(store, clock):
    member = _active_member(store)
    tr = _issue(store, member, days=2).entity

    # only the seeded 2023 loan is overdue today
    assert [t.id for t in overdue_transactions(store)] == ["1"]

    clock.now = clock.now + timedelta(days=3)
    assert [t.id for t in overdue_transactions(store)] == ["1", tr.id]
