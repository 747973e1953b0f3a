import logging
from dataclasses import dataclass, fields
from typing import Optional

from my_models import Book


logger = logging.getLogger(__name__)


@dataclass
class BookUpdate:
    """Field-level edit of a book. ``None`` leaves a field unchanged."""

    title: Optional[str] = None
    author: Optional[str] = None
    kind: Optional[str] = None
    serial_number: Optional[str] = None
    shelf_location: Optional[str] = None
    publication_year: Optional[str] = None
    available: Optional[bool] = None

    def changes(self):
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}


def add_book(store, data):
    """Append a new book. Serial numbers are not checked for uniqueness."""
    book = Book(
        title=data["title"],
        author=data["author"],
        kind=data.get("kind") or "book",
        serial_number=data["serial_number"],
        available=data.get("available", True),
        shelf_location=data.get("shelf_location"),
        publication_year=data.get("publication_year"),
    )
    store.add(book)
    store.commit()
    logger.info("Book added | id=%s title=%s", book.id, book.title)
    return book


def update_book(store, book_id, update):
    book = store.get_book(book_id)
    if book is None:
        return None
    for name, value in update.changes().items():
        setattr(book, name, value)
    store.commit()
    logger.info("Book updated | id=%s", book.id)
    return book


def search_books(store, query):
    q = (query or "").lower()
    return [
        b for b in store.books()
        if q in b.title.lower() or q in b.author.lower() or q in b.serial_number.lower()
    ]


def get_available_books(store):
    return [b for b in store.books() if b.available]


def get_book_by_id(store, book_id):
    return store.get_book(book_id)


def list_books(store):
    return store.books()
