NOT_FOUND = "not_found"
PRECONDITION_FAILED = "precondition_failed"
VALIDATION_FAILED = "validation_failed"


class LibraryError(Exception):
    """Base exception for library rule violations."""

    kind = PRECONDITION_FAILED
    category = "danger"


class BookNotFoundError(LibraryError):
    """Requested book id does not exist."""

    kind = NOT_FOUND


class MemberNotFoundError(LibraryError):
    """Requested member id does not exist."""

    kind = NOT_FOUND


class TransactionNotFoundError(LibraryError):
    """Requested transaction id does not exist."""

    kind = NOT_FOUND


class BookUnavailableError(LibraryError):
    """Book is already out on loan or held for an unpaid fine."""


class MembershipInactiveError(LibraryError):
    """Member's membership has expired or was cancelled."""


class AlreadyReturnedError(LibraryError):
    """Transaction already has an actual return date."""


class ActiveLoansError(LibraryError):
    """Member still has open transactions."""


class DuplicateMembershipNumberError(LibraryError):
    """Membership number is already taken."""


class ValidationFailedError(LibraryError):
    """Submitted values break a field-level rule."""

    kind = VALIDATION_FAILED
    category = "warning"
