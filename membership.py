import calendar
import logging
import random
from dataclasses import dataclass, fields
from datetime import datetime, timedelta
from typing import Optional

from errors import (
    LibraryError,
    MemberNotFoundError,
    ActiveLoansError,
    DuplicateMembershipNumberError,
    ValidationFailedError,
)
from my_models import Member, BookTransaction, MEMBERSHIP_TYPES
from outcomes import Outcome


logger = logging.getLogger(__name__)

SIX_MONTHS_DAYS = 182


# ------------------------- Update requests -------------------------
@dataclass
class MemberDetailsUpdate:
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None

    def apply(self, member):
        for f in fields(self):
            value = getattr(self, f.name)
            if value is not None:
                setattr(member, f.name, value)


@dataclass
class ExtendMembership:
    expiry_date: datetime

    def apply(self, member):
        member.expiry_date = self.expiry_date
        member.active = True


@dataclass
class CancelMembership:
    def apply(self, member):
        member.active = False


# ------------------------- Date arithmetic -------------------------
def add_years(when, years):
    try:
        return when.replace(year=when.year + years)
    except ValueError:
        # Feb 29 into a non-leap year rolls over to Mar 1
        return when.replace(year=when.year + years, month=3, day=1)


def add_months(when, months):
    month_index = when.month - 1 + months
    year = when.year + month_index // 12
    month = month_index % 12 + 1
    day = min(when.day, calendar.monthrange(year, month)[1])
    return when.replace(year=year, month=month, day=day)


def compute_expiry_date(join_date, membership_type):
    """Expiry for a brand-new membership."""
    if membership_type == "1year":
        return add_years(join_date, 1)
    if membership_type == "2years":
        return add_years(join_date, 2)
    return join_date + timedelta(days=SIX_MONTHS_DAYS)


def extended_expiry_date(current_expiry, membership_type):
    """Expiry after extending an existing membership by one more term."""
    if membership_type == "1year":
        return add_years(current_expiry, 1)
    if membership_type == "2years":
        return add_years(current_expiry, 2)
    return add_months(current_expiry, 6)


# ------------------------- Operations -------------------------
def add_member(store, data):
    try:
        membership_type = data.get("membership_type") or "6months"
        if membership_type not in MEMBERSHIP_TYPES:
            raise ValidationFailedError(f"Unknown membership type '{membership_type}'.")
        number = data["membership_number"]
        if find_member_by_number(store, number) is not None:
            raise DuplicateMembershipNumberError(f"Membership number {number} is already in use.")
    except LibraryError as e:
        logger.warning("add_member rejected | number=%s reason=%s", data.get("membership_number"), e)
        return Outcome.failed(e)

    join_date = store.now()
    member = Member(
        membership_number=number,
        name=data["name"],
        email=data.get("email"),
        phone=data.get("phone"),
        address=data.get("address"),
        membership_type=membership_type,
        join_date=join_date,
        expiry_date=compute_expiry_date(join_date, membership_type),
        active=True,
    )
    store.add(member)
    store.commit()
    logger.info("Member added | id=%s number=%s", member.id, member.membership_number)
    return Outcome.ok(f'Member "{member.name}" added successfully', entity=member)


def update_member(store, member_id, update):
    member = store.get_member(member_id)
    if member is None:
        return None
    update.apply(member)
    store.commit()
    logger.info("Member updated | id=%s change=%s", member.id, type(update).__name__)
    return member


def extend_membership(store, member_id, membership_type):
    member = store.get_member(member_id)
    if member is None:
        return None
    new_expiry = extended_expiry_date(member.expiry_date, membership_type)
    return update_member(store, member_id, ExtendMembership(new_expiry))


def cancel_membership(store, member_id):
    return update_member(store, member_id, CancelMembership())


def delete_member(store, member_id):
    try:
        member = store.get_member(member_id)
        if member is None:
            raise MemberNotFoundError("Member not found")
        open_loans = store.session.query(BookTransaction).filter(
            BookTransaction.member_id == member.id,
            BookTransaction.actual_return_date.is_(None),
        ).count()
        if open_loans:
            raise ActiveLoansError("Cannot delete member with active transactions")
    except LibraryError as e:
        logger.warning("delete_member rejected | id=%s reason=%s", member_id, e)
        return Outcome.failed(e)

    store.delete(member)
    store.commit()
    logger.info("Member deleted | id=%s", member_id)
    return Outcome.ok("Member deleted successfully")


def find_member_by_number(store, membership_number):
    for member in store.members():
        if member.membership_number == membership_number:
            return member
    return None


def get_member_by_id(store, member_id):
    return store.get_member(member_id)


def generate_membership_number(store, rng=random):
    while True:
        number = f"M{rng.randint(10000, 99999)}"
        if find_member_by_number(store, number) is None:
            return number


def expire_lapsed_memberships(store):
    """Deactivate every active member whose expiry date has passed."""
    now = store.now()
    lapsed = [m for m in store.members() if m.active and m.is_expired(now)]
    if not lapsed:
        return []
    for member in lapsed:
        member.active = False
    store.commit()
    logger.info("Expired %d lapsed memberships", len(lapsed))
    return lapsed
