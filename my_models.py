import enum

from extensions import db


BOOK_KINDS = ("book", "movie")

MEMBERSHIP_TYPES = {
    "6months": "6 Months",
    "1year": "1 Year",
    "2years": "2 Years",
}


class TransactionState(enum.Enum):
    OPEN = "open"
    RETURNED_NO_FINE = "returned_no_fine"
    RETURNED_WITH_FINE_UNPAID = "returned_with_fine_unpaid"
    RETURNED_WITH_FINE_PAID = "returned_with_fine_paid"

    @property
    def is_terminal(self):
        return self in (TransactionState.RETURNED_NO_FINE, TransactionState.RETURNED_WITH_FINE_PAID)


class Book(db.Model):
    __tablename__ = "book"
    id = db.Column(db.String(32), primary_key=True)
    seq = db.Column(db.Integer, nullable=False, index=True)
    title = db.Column(db.String(150), nullable=False)
    author = db.Column(db.String(100), nullable=False)
    kind = db.Column(db.String(10), nullable=False, default="book")  # "book" or "movie"
    serial_number = db.Column(db.String(30), nullable=False)
    available = db.Column(db.Boolean, nullable=False, default=True)
    shelf_location = db.Column(db.String(30))
    publication_year = db.Column(db.String(10))

    def __repr__(self):
        return f"<Book {self.id} {self.serial_number!r}>"


class Member(db.Model):
    __tablename__ = "member"
    id = db.Column(db.String(32), primary_key=True)
    seq = db.Column(db.Integer, nullable=False, index=True)
    membership_number = db.Column(db.String(20), unique=True, nullable=False)
    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(120))
    phone = db.Column(db.String(40))
    address = db.Column(db.String(255))
    membership_type = db.Column(db.String(10), nullable=False, default="6months")
    join_date = db.Column(db.DateTime, nullable=False)
    expiry_date = db.Column(db.DateTime, nullable=False)
    active = db.Column(db.Boolean, nullable=False, default=True)

    @property
    def membership_label(self):
        return MEMBERSHIP_TYPES.get(self.membership_type, self.membership_type)

    def is_expired(self, now):
        return self.expiry_date < now

    def __repr__(self):
        return f"<Member {self.id} {self.membership_number!r}>"


class BookTransaction(db.Model):
    __tablename__ = "transactions"
    id = db.Column(db.String(32), primary_key=True)
    seq = db.Column(db.Integer, nullable=False, index=True)
    book_id = db.Column(db.String(32), db.ForeignKey("book.id"), nullable=False)
    member_id = db.Column(db.String(32), db.ForeignKey("member.id"), nullable=False)
    issue_date = db.Column(db.DateTime, nullable=False)
    return_date = db.Column(db.DateTime, nullable=False)  # scheduled
    actual_return_date = db.Column(db.DateTime, nullable=True)
    fine = db.Column(db.Float, nullable=False, default=0.0)
    fine_paid = db.Column(db.Boolean, nullable=False, default=False)
    remarks = db.Column(db.String(255), default="")

    # many-to-one only: closed history outlives a deleted member
    book = db.relationship("Book")
    member = db.relationship("Member")

    @property
    def is_open(self):
        return self.actual_return_date is None

    @property
    def state(self):
        if self.actual_return_date is None:
            return TransactionState.OPEN
        if not self.fine:
            return TransactionState.RETURNED_NO_FINE
        if self.fine_paid:
            return TransactionState.RETURNED_WITH_FINE_PAID
        return TransactionState.RETURNED_WITH_FINE_UNPAID

    def __repr__(self):
        return f"<BookTransaction {self.id} book={self.book_id} member={self.member_id}>"
