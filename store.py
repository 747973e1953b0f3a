import itertools
import logging
from datetime import datetime

from sqlalchemy import func

from my_models import Book, Member, BookTransaction
from seed_data import SEED_BOOKS, SEED_MEMBERS, SEED_TRANSACTIONS


logger = logging.getLogger(__name__)


class SequentialIdGenerator:
    """Monotonic string ids. Starts well above the seed ids."""

    def __init__(self, start=1000):
        self._counter = itertools.count(start)

    def __call__(self):
        return str(next(self._counter))


class LibraryStore:
    """Owns the book, member and transaction collections.

    Collections are returned in insertion ("store") order. Ids come from the
    injected ``id_factory`` and the current time from ``clock``, so callers
    and tests can make both deterministic.
    """

    def __init__(self, session, id_factory=None, clock=None):
        self.session = session
        self.id_factory = id_factory or SequentialIdGenerator()
        self.clock = clock or datetime.now

    def now(self):
        return self.clock()

    # ------------------------- Collections -------------------------
    def books(self):
        return self.session.query(Book).order_by(Book.seq).all()

    def members(self):
        return self.session.query(Member).order_by(Member.seq).all()

    def transactions(self):
        return self.session.query(BookTransaction).order_by(BookTransaction.seq).all()

    def get_book(self, book_id):
        if not book_id:
            return None
        return self.session.get(Book, str(book_id))

    def get_member(self, member_id):
        if not member_id:
            return None
        return self.session.get(Member, str(member_id))

    def get_transaction(self, transaction_id):
        if not transaction_id:
            return None
        return self.session.get(BookTransaction, str(transaction_id))

    # ------------------------- Mutation -------------------------
    def new_id(self, model):
        new_id = self.id_factory()
        while self.session.get(model, new_id) is not None:
            new_id = self.id_factory()
        return new_id

    def _next_seq(self, model):
        current = self.session.query(func.max(model.seq)).scalar()
        return (current or 0) + 1

    def add(self, entity):
        model = type(entity)
        if not entity.id:
            entity.id = self.new_id(model)
        entity.seq = self._next_seq(model)
        self.session.add(entity)
        return entity

    def delete(self, entity):
        self.session.delete(entity)

    def commit(self):
        self.session.commit()

    def rollback(self):
        self.session.rollback()

    # ------------------------- Seeding -------------------------
    def is_empty(self):
        return not any(
            self.session.query(model).count() for model in (Book, Member, BookTransaction)
        )

    def seed(self):
        if not self.is_empty():
            return False
        for row in SEED_BOOKS:
            self.add(Book(**row))
        for row in SEED_MEMBERS:
            self.add(Member(**row))
        for row in SEED_TRANSACTIONS:
            self.add(BookTransaction(**row))
        self.commit()
        logger.info(
            "Seeded store with %d books, %d members, %d transactions",
            len(SEED_BOOKS), len(SEED_MEMBERS), len(SEED_TRANSACTIONS),
        )
        return True

    def reset(self):
        self.rollback()
        for model in (BookTransaction, Member, Book):
            self.session.query(model).delete()
        self.commit()
        self.session.expunge_all()
        self.seed()
