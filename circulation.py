"""Issue / return / fine workflow.

Every public operation checks all of its preconditions before touching the
store and commits once, so a rejected call leaves no partial changes behind.
Rejections come back as failed outcomes rather than exceptions.
"""
import logging
import math
from datetime import date, datetime, time, timedelta

from config import Config
from errors import (
    LibraryError,
    BookNotFoundError,
    MemberNotFoundError,
    TransactionNotFoundError,
    BookUnavailableError,
    MembershipInactiveError,
    AlreadyReturnedError,
    ValidationFailedError,
)
from my_models import BookTransaction
from outcomes import Outcome, ReturnOutcome


logger = logging.getLogger(__name__)

FINE_PER_DAY = Config.FINE_PER_DAY
MAX_LOAN_DAYS = Config.MAX_LOAN_DAYS

SECONDS_PER_DAY = 24 * 60 * 60


def calculate_fine(scheduled_return, actual_return, rate=FINE_PER_DAY):
    """Fine for returning at ``actual_return``; partial days count as whole days."""
    if actual_return <= scheduled_return:
        return 0.0
    days_late = math.ceil((actual_return - scheduled_return).total_seconds() / SECONDS_PER_DAY)
    return days_late * rate


def as_datetime(value):
    """Accept plain dates from forms; they mean midnight of that day."""
    if isinstance(value, datetime) or value is None:
        return value
    if isinstance(value, date):
        return datetime.combine(value, time())
    return value


def transaction_state(transaction):
    return transaction.state


def _check_loan_window(issue_date, return_date):
    if return_date is None:
        raise ValidationFailedError("Return date is required")
    if return_date.date() < issue_date.date():
        raise ValidationFailedError("Return date cannot be earlier than issue date")
    if return_date > issue_date + timedelta(days=MAX_LOAN_DAYS):
        raise ValidationFailedError(f"Return date cannot be more than {MAX_LOAN_DAYS} days from issue date")


def issue_book(store, book_id, member_id, return_date, remarks=""):
    return_date = as_datetime(return_date)
    try:
        book = store.get_book(book_id)
        member = store.get_member(member_id)
        if book is None:
            raise BookNotFoundError("Book or member not found")
        if member is None:
            raise MemberNotFoundError("Book or member not found")
        if not book.available:
            raise BookUnavailableError("This book is not available for borrowing")
        if not member.active:
            raise MembershipInactiveError("This member's membership is not active")
        issue_date = store.now()
        _check_loan_window(issue_date, return_date)
    except LibraryError as e:
        logger.warning("issue_book rejected | book=%s member=%s reason=%s", book_id, member_id, e)
        return Outcome.failed(e)

    transaction = BookTransaction(
        book_id=book.id,
        member_id=member.id,
        issue_date=issue_date,
        return_date=return_date,
        actual_return_date=None,
        fine=0.0,
        fine_paid=False,
        remarks=remarks or "",
    )
    store.add(transaction)
    book.available = False
    store.commit()
    logger.info("Book issued | transaction=%s book=%s member=%s", transaction.id, book.id, member.id)
    return Outcome.ok("Book issued successfully", entity=transaction)


def return_book(store, transaction_id, actual_return_date):
    actual_return_date = as_datetime(actual_return_date)
    try:
        transaction = store.get_transaction(transaction_id)
        if transaction is None:
            raise TransactionNotFoundError("Transaction not found")
        if not transaction.is_open:
            raise AlreadyReturnedError("This book has already been returned")
        if not isinstance(actual_return_date, datetime):
            raise ValidationFailedError("Actual return date is required")
    except LibraryError as e:
        logger.warning("return_book rejected | transaction=%s reason=%s", transaction_id, e)
        return ReturnOutcome(False, str(e), category=e.category, error=e.kind,
                             fine=0.0, transaction_id=transaction_id)

    fine = calculate_fine(transaction.return_date, actual_return_date)
    transaction.actual_return_date = actual_return_date
    transaction.fine = fine
    if fine == 0:
        transaction.book.available = True
        message, category = "Book returned successfully", "success"
    else:
        # an unpaid fine keeps the book out of circulation
        message, category = f"Book returned with a fine of ${fine:.2f}", "warning"
    store.commit()
    logger.info("Book returned | transaction=%s fine=%s", transaction.id, fine)
    return ReturnOutcome(True, message, category=category, entity=transaction,
                         fine=fine, transaction_id=transaction.id)


def pay_fine(store, transaction_id):
    """Mark the fine paid and put the book back into circulation.

    Applies unconditionally, including to zero-fine and already-paid
    transactions.
    """
    transaction = store.get_transaction(transaction_id)
    if transaction is None:
        e = TransactionNotFoundError("Transaction not found")
        logger.warning("pay_fine rejected | transaction=%s reason=%s", transaction_id, e)
        return Outcome.failed(e)

    if transaction.is_open:
        logger.warning("pay_fine on open transaction | transaction=%s", transaction.id)
    transaction.fine_paid = True
    transaction.book.available = True
    store.commit()
    logger.info("Fine paid | transaction=%s amount=%s", transaction.id, transaction.fine)
    return Outcome.ok("Fine paid and book returned successfully", entity=transaction)


def get_transaction_by_id(store, transaction_id):
    return store.get_transaction(transaction_id)


def get_book_transactions(store, book_id):
    return [t for t in store.transactions() if t.book_id == book_id]


def get_member_transactions(store, member_id):
    return [t for t in store.transactions() if t.member_id == member_id]


def open_transactions(store):
    return [t for t in store.transactions() if t.is_open]


def overdue_transactions(store, now=None):
    now = now or store.now()
    return [t for t in open_transactions(store) if t.return_date < now]
