from datetime import datetime


SEED_BOOKS = [
    {"id": "1", "title": "To Kill a Mockingbird", "author": "Harper Lee", "kind": "book",
     "serial_number": "BK-1001", "available": True, "shelf_location": "A1", "publication_year": "1960"},
    {"id": "2", "title": "1984", "author": "George Orwell", "kind": "book",
     "serial_number": "BK-1002", "available": True, "shelf_location": "A2", "publication_year": "1949"},
    {"id": "3", "title": "The Great Gatsby", "author": "F. Scott Fitzgerald", "kind": "book",
     "serial_number": "BK-1003", "available": False, "shelf_location": "A3", "publication_year": "1925"},
    {"id": "4", "title": "Inception", "author": "Christopher Nolan", "kind": "movie",
     "serial_number": "MV-101", "available": True, "shelf_location": "M1", "publication_year": "2010"},
]

SEED_MEMBERS = [
    {"id": "1", "membership_number": "M10001", "name": "John Doe", "email": "john@example.com",
     "phone": "123-456-7890", "address": "123 Main St", "membership_type": "1year",
     "join_date": datetime(2023, 1, 1), "expiry_date": datetime(2024, 1, 1), "active": True},
    {"id": "2", "membership_number": "M10002", "name": "Jane Smith", "email": "jane@example.com",
     "phone": "123-456-7891", "address": "456 Elm St", "membership_type": "6months",
     "join_date": datetime(2023, 6, 1), "expiry_date": datetime(2023, 12, 1), "active": False},
]

# Book 3 is out on this loan, which is why it starts unavailable
SEED_TRANSACTIONS = [
    {"id": "1", "book_id": "3", "member_id": "1", "issue_date": datetime(2023, 11, 1),
     "return_date": datetime(2023, 11, 16), "actual_return_date": None, "fine": 0.0,
     "fine_paid": False, "remarks": "First borrowing"},
]
