import re
from datetime import datetime, timedelta

from my_models import BOOK_KINDS, MEMBERSHIP_TYPES


EMAIL_RE = re.compile(r"\S+@\S+\.\S+")
DATE_FORMAT = "%Y-%m-%d"


def clean(form, name):
    return (form.get(name) or "").strip()


def parse_date(value):
    """Parse an HTML date input (YYYY-MM-DD); ``None`` when blank or malformed."""
    try:
        return datetime.strptime((value or "").strip(), DATE_FORMAT)
    except ValueError:
        return None


def _require(form, errors, *names):
    for name in names:
        if not clean(form, name):
            errors[name] = f"{name.replace('_', ' ').capitalize()} is required"


def validate_book_form(form):
    errors = {}
    _require(form, errors, "title", "author", "serial_number")
    kind = clean(form, "kind") or "book"
    if kind not in BOOK_KINDS:
        errors["kind"] = "Type must be book or movie"
    return errors


def validate_member_form(form):
    errors = {}
    _require(form, errors, "name", "email", "phone", "address", "membership_number")
    email = clean(form, "email")
    if email and not EMAIL_RE.fullmatch(email):
        errors["email"] = "Email is invalid"
    if clean(form, "membership_type") not in MEMBERSHIP_TYPES:
        errors["membership_type"] = "Select a membership type"
    return errors


def validate_issue_form(form, today, max_days):
    errors = {}
    if not clean(form, "book_id"):
        errors["book_id"] = "Book selection is required"
    if not clean(form, "member_id"):
        errors["member_id"] = "Member selection is required"
    return_date = parse_date(form.get("return_date"))
    if return_date is None:
        errors["return_date"] = "Return date is required"
    elif return_date.date() < today.date():
        errors["return_date"] = "Return date cannot be earlier than issue date"
    elif return_date.date() > (today + timedelta(days=max_days)).date():
        errors["return_date"] = f"Return date cannot be more than {max_days} days from issue date"
    return errors


def validate_return_form(form):
    errors = {}
    if not clean(form, "transaction_id"):
        errors["transaction_id"] = "You must select a book to return"
    if parse_date(form.get("actual_return_date")) is None:
        errors["actual_return_date"] = "Return date is required"
    return errors
