from datetime import datetime

from catalog import add_book
from my_models import Book
from store import LibraryStore, SequentialIdGenerator


def test_seed_data_loaded(store):
    assert [b.id for b in store.books()] == ["1", "2", "3", "4"]
    assert [m.membership_number for m in store.members()] == ["M10001", "M10002"]
    tr = store.get_transaction("1")
    assert tr.book_id == "3"
    assert tr.member_id == "1"
    assert tr.return_date == datetime(2023, 11, 16)
    assert tr.is_open


def test_seed_is_skipped_when_not_empty(store):
    assert store.seed() is False
    assert len(store.books()) == 4


def test_reset_restores_seed(store):
    add_book(store, {"title": "Extra", "author": "Someone", "serial_number": "X-1"})
    store.get_book("1").available = False
    store.commit()

    store.reset()

    assert len(store.books()) == 4
    assert store.get_book("1").available is True


def test_sequential_ids_are_monotonic():
    ids = SequentialIdGenerator(5)
    assert [ids(), ids(), ids()] == ["5", "6", "7"]


def test_generated_ids_skip_existing_rows(store):
    local = LibraryStore(store.session, id_factory=SequentialIdGenerator(1), clock=store.clock)
    book = local.add(Book(title="T", author="A", serial_number="S"))
    assert book.id == "5"
    assert book.seq == 5


def test_lookups_tolerate_missing_ids(store):
    assert store.get_book(None) is None
    assert store.get_member("") is None
    assert store.get_transaction("zzz") is None
