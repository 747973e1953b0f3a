import csv
import io
import math
from collections import Counter

from circulation import SECONDS_PER_DAY, open_transactions, overdue_transactions
from my_models import MEMBERSHIP_TYPES, TransactionState


RECENT_BOOKS = 5


def dashboard_stats(store):
    books = store.books()
    members = store.members()
    return {
        "total_books": len(books),
        "available_books": sum(1 for b in books if b.available),
        "total_members": len(members),
        "active_members": sum(1 for m in members if m.active),
        "open_transactions": len(open_transactions(store)),
        "overdue_transactions": len(overdue_transactions(store)),
        "recent_books": books[:RECENT_BOOKS],
    }


def days_overdue(transaction, now):
    late = (now - transaction.return_date).total_seconds() / SECONDS_PER_DAY
    return max(0, math.ceil(late))


def overdue_report(store):
    now = store.now()
    rows = [
        {
            "transaction": t,
            "book": t.book,
            "member": t.member,
            "days_overdue": days_overdue(t, now),
        }
        for t in overdue_transactions(store, now)
    ]
    rows.sort(key=lambda r: r["days_overdue"], reverse=True)
    return rows


def fines_summary(store):
    fined = [t for t in store.transactions() if t.fine > 0]
    collected = sum(t.fine for t in fined if t.fine_paid)
    assessed = sum(t.fine for t in fined)
    return {
        "assessed": assessed,
        "collected": collected,
        "outstanding": assessed - collected,
        "unpaid": [t for t in fined if t.state is TransactionState.RETURNED_WITH_FINE_UNPAID],
    }


def popular_books(store, limit=5):
    counts = Counter(t.book_id for t in store.transactions())
    ranked = []
    for book in store.books():
        if counts[book.id]:
            ranked.append((book, counts[book.id]))
    # stable sort keeps store order among ties
    ranked.sort(key=lambda pair: pair[1], reverse=True)
    return ranked[:limit]


def membership_breakdown(store):
    members = store.members()
    by_type = {code: 0 for code in MEMBERSHIP_TYPES}
    for m in members:
        by_type[m.membership_type] = by_type.get(m.membership_type, 0) + 1
    return {
        "by_type": by_type,
        "active": sum(1 for m in members if m.active),
        "inactive": sum(1 for m in members if not m.active),
    }


def _fmt(when):
    return when.strftime("%Y-%m-%d") if when else ""


def export_transactions_csv(store):
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow([
        "transaction_id", "book_title", "membership_number", "issue_date",
        "return_date", "actual_return_date", "fine", "fine_paid", "state",
    ])
    for t in store.transactions():
        writer.writerow([
            t.id,
            t.book.title if t.book else "",
            t.member.membership_number if t.member else "",
            _fmt(t.issue_date),
            _fmt(t.return_date),
            _fmt(t.actual_return_date),
            f"{t.fine:.2f}",
            "yes" if t.fine_paid else "no",
            t.state.value,
        ])
    return buf.getvalue()
