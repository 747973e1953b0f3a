import logging
from datetime import timedelta
from urllib.parse import urlsplit

from flask import Flask, Response, render_template, request, redirect, url_for, flash, abort, current_app
from flask_login import login_user, logout_user, login_required, current_user

from auth import admin_required, authenticate, get_user
from catalog import BookUpdate, add_book, update_book, search_books, get_available_books, get_book_by_id, list_books
from circulation import (
    issue_book, return_book, pay_fine, get_transaction_by_id,
    get_book_transactions, get_member_transactions, open_transactions,
)
from config import Config
from extensions import db, login_manager
from membership import (
    MemberDetailsUpdate, add_member, update_member, extend_membership, cancel_membership,
    delete_member, find_member_by_number, get_member_by_id, generate_membership_number,
    expire_lapsed_memberships,
)
from my_models import BOOK_KINDS, MEMBERSHIP_TYPES
from reports import dashboard_stats, overdue_report, fines_summary, popular_books, membership_breakdown, \
    export_transactions_csv
from store import LibraryStore
from validators import clean, parse_date, validate_book_form, validate_member_form, validate_issue_form, \
    validate_return_form


FORM_ERROR = "Please correct the errors in the form"

app = Flask(__name__)
app.config.from_object(Config)

logging.basicConfig(
    level=app.config['LOG_LEVEL'],
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

db.init_app(app)
login_manager.login_view = 'login'
login_manager.init_app(app)


def get_store():
    return current_app.extensions['library_store']


def init_library(flask_app, store=None):
    """Create the in-memory tables and load the seed data."""
    with flask_app.app_context():
        db.create_all()
        flask_app.extensions['library_store'] = store or LibraryStore(db.session)
        flask_app.extensions['library_store'].seed()


init_library(app)


@login_manager.user_loader
def load_user(user_id):
    return get_user(user_id)


@app.context_processor
def inject_globals():
    return {
        'membership_types': MEMBERSHIP_TYPES,
        'book_kinds': BOOK_KINDS,
        'fine_per_day': app.config['FINE_PER_DAY'],
    }


def flash_outcome(outcome):
    flash(outcome.message, outcome.category)
    return outcome.success


# ------------------------- Authentication -------------------------
@app.route('/login', methods=['GET', 'POST'])
def login():
    if current_user.is_authenticated:
        return redirect(url_for('dashboard'))
    if request.method == 'POST':
        email = clean(request.form, 'email')
        password = clean(request.form, 'password')
        if not email or not password:
            flash("Email and password are required.", "danger")
            return render_template('login.html', email=email)

        user = authenticate(email, password)
        if user is None:
            flash("Invalid email or password", "danger")
            return render_template('login.html', email=email)

        login_user(user, remember=bool(request.form.get('remember')))
        flash(f"Welcome back, {user.name}!", "success")
        return redirect(safe_next_url(request.args.get('next')) or url_for('dashboard'))
    return render_template('login.html')


def safe_next_url(target):
    """Only same-site relative paths are followed after login."""
    if not target:
        return None
    parts = urlsplit(target)
    if parts.scheme or parts.netloc or not target.startswith('/') or target[1:2] in ('/', '\\'):
        return None
    return target


@app.route('/logout')
@login_required
def logout():
    logout_user()
    flash("You have been logged out", "info")
    return redirect(url_for('login'))


# ------------------------- Dashboard -------------------------
@app.route('/')
@login_required
def dashboard():
    store = get_store()
    # deliberate write on GET: lapsed memberships are deactivated on view
    expire_lapsed_memberships(store)
    return render_template('dashboard.html', stats=dashboard_stats(store), today=store.now())


# ------------------------- Books -------------------------
@app.route('/search')
@login_required
def search():
    q = request.args.get('q', '').strip()
    store = get_store()
    books = search_books(store, q) if q else list_books(store)
    return render_template('search.html', books=books, q=q)


@app.route('/books')
@login_required
@admin_required
def books():
    return render_template('books.html', books=list_books(get_store()))


@app.route('/books/add', methods=['GET', 'POST'])
@login_required
@admin_required
def add_book_page():
    if request.method == 'POST':
        errors = validate_book_form(request.form)
        if errors:
            flash(FORM_ERROR, "danger")
            return render_template('book_form.html', form=request.form, errors=errors, book=None)
        book = add_book(get_store(), {
            'title': clean(request.form, 'title'),
            'author': clean(request.form, 'author'),
            'kind': clean(request.form, 'kind') or 'book',
            'serial_number': clean(request.form, 'serial_number'),
            'shelf_location': clean(request.form, 'shelf_location'),
            'publication_year': clean(request.form, 'publication_year'),
        })
        flash(f'Book "{book.title}" added successfully', "success")
        return redirect(url_for('books'))
    return render_template('book_form.html', form={}, errors={}, book=None)


@app.route('/books/<book_id>/edit', methods=['GET', 'POST'])
@login_required
@admin_required
def edit_book(book_id):
    store = get_store()
    book = get_book_by_id(store, book_id)
    if book is None:
        abort(404)
    if request.method == 'POST':
        errors = validate_book_form(request.form)
        if errors:
            flash(FORM_ERROR, "danger")
            return render_template('book_form.html', form=request.form, errors=errors, book=book)
        update_book(store, book_id, BookUpdate(
            title=clean(request.form, 'title'),
            author=clean(request.form, 'author'),
            kind=clean(request.form, 'kind') or 'book',
            serial_number=clean(request.form, 'serial_number'),
            shelf_location=clean(request.form, 'shelf_location'),
            publication_year=clean(request.form, 'publication_year'),
        ))
        flash("Book updated successfully", "success")
        return redirect(url_for('books'))
    return render_template('book_form.html', form=book_form_values(book), errors={}, book=book)


def book_form_values(book):
    return {
        'title': book.title,
        'author': book.author,
        'kind': book.kind,
        'serial_number': book.serial_number,
        'shelf_location': book.shelf_location or '',
        'publication_year': book.publication_year or '',
    }


@app.route('/books/<book_id>')
@login_required
def book_detail(book_id):
    store = get_store()
    book = get_book_by_id(store, book_id)
    if book is None:
        abort(404)
    return render_template('book_detail.html', book=book, transactions=get_book_transactions(store, book.id))


# ------------------------- Issue & Return -------------------------
@app.route('/issue', methods=['GET', 'POST'])
@login_required
def issue():
    store = get_store()
    today = store.now()
    max_days = app.config['MAX_LOAN_DAYS']

    if request.method == 'POST':
        errors = validate_issue_form(request.form, today, max_days)
        if errors:
            flash(FORM_ERROR, "danger")
            return render_issue_page(store, request.form, errors)
        outcome = issue_book(
            store,
            clean(request.form, 'book_id'),
            clean(request.form, 'member_id'),
            parse_date(request.form.get('return_date')),
            clean(request.form, 'remarks'),
        )
        if flash_outcome(outcome):
            return redirect(url_for('dashboard'))
        return render_issue_page(store, request.form, {})

    form = {
        'book_id': '',
        'return_date': (today + timedelta(days=app.config['DEFAULT_LOAN_DAYS'])).strftime('%Y-%m-%d'),
    }
    book_id = request.args.get('book_id')
    if book_id:
        book = get_book_by_id(store, book_id)
        if book is not None and book.available:
            form['book_id'] = book.id
        elif book is not None:
            flash("Selected book is not available for borrowing", "danger")
    return render_issue_page(store, form, {})


def render_issue_page(store, form, errors):
    members = [m for m in store.members() if m.active]
    return render_template(
        'issue_book.html',
        books=get_available_books(store),
        members=members,
        form=form,
        errors=errors,
        today=store.now(),
        max_days=app.config['MAX_LOAN_DAYS'],
    )


@app.route('/return', methods=['GET', 'POST'])
@login_required
def return_page():
    store = get_store()
    if request.method == 'POST':
        errors = validate_return_form(request.form)
        if errors:
            flash(FORM_ERROR, "danger")
            return render_return_page(store, request.form, errors)
        outcome = return_book(
            store,
            clean(request.form, 'transaction_id'),
            parse_date(request.form.get('actual_return_date')),
        )
        flash_outcome(outcome)
        if not outcome.success:
            return render_return_page(store, request.form, {})
        if outcome.fine > 0:
            return redirect(url_for('fine_page', transaction_id=outcome.transaction_id))
        return redirect(url_for('dashboard'))

    form = {
        'transaction_id': request.args.get('transaction_id', ''),
        'actual_return_date': store.now().strftime('%Y-%m-%d'),
    }
    return render_return_page(store, form, {})


def render_return_page(store, form, errors):
    return render_template('return_book.html', transactions=open_transactions(store), form=form, errors=errors)


@app.route('/return/<transaction_id>/fine', methods=['GET', 'POST'])
@login_required
def fine_page(transaction_id):
    store = get_store()
    tr = get_transaction_by_id(store, transaction_id)
    if tr is None:
        abort(404)
    if tr.is_open:
        flash("This book has not been returned yet", "danger")
        return redirect(url_for('return_page', transaction_id=tr.id))
    if request.method == 'POST':
        if tr.fine > 0 and not request.form.get('fine_paid'):
            flash("Fine must be paid before completing the return", "danger")
            return render_template('pay_fine.html', transaction=tr)
        if tr.fine > 0:
            flash_outcome(pay_fine(store, tr.id))
        flash("Book return process completed successfully", "success")
        return redirect(url_for('dashboard'))
    return render_template('pay_fine.html', transaction=tr)


# ------------------------- Membership -------------------------
@app.route('/membership')
@login_required
@admin_required
def membership():
    store = get_store()
    # deliberate write on GET, same as the dashboard
    expire_lapsed_memberships(store)
    status =request.args.get('status', 'all')
    members = store.members()
    if status == 'active':
        members = [m for m in members if m.active]
    elif status == 'expired':
        members = [m for m in members if not m.active]
    return render_template('membership.html', members=members, status=status)


@app.route('/membership/add', methods=['GET', 'POST'])
@login_required
@admin_required
def add_member_page():
    store = get_store()
    if request.method == 'POST':
        errors = validate_member_form(request.form)
        if errors:
            flash(FORM_ERROR, "danger")
            return render_template('member_form.html', form=request.form, errors=errors)
        outcome = add_member(store, {
            'name': clean(request.form, 'name'),
            'email': clean(request.form, 'email').lower(),
            'phone': clean(request.form, 'phone'),
            'address': clean(request.form, 'address'),
            'membership_number': clean(request.form, 'membership_number'),
            'membership_type': clean(request.form, 'membership_type'),
        })
        if flash_outcome(outcome):
            return redirect(url_for('membership'))
        return render_template('member_form.html', form=request.form, errors={})
    form = {'membership_type': '6months', 'membership_number': generate_membership_number(store)}
    return render_template('member_form.html', form=form, errors={})


@app.route('/membership/update', methods=['GET', 'POST'])
@login_required
@admin_required
def update_membership_page():
    store = get_store()
    number = clean(request.values, 'membership_number')
    member = find_member_by_number(store, number) if number else None
    if number and member is None:
        flash("No member found with this membership number", "danger")

    if request.method == 'POST' and member is not None:
        action = clean(request.form, 'action') or 'extend'
        if action == 'cancel':
            cancel_membership(store, member.id)
            flash("Membership has been canceled", "success")
        else:
            membership_type = clean(request.form, 'membership_type') or '6months'
            if membership_type not in MEMBERSHIP_TYPES:
                flash(FORM_ERROR, "danger")
                return render_template('membership_update.html', member=member, number=number)
            member = extend_membership(store, member.id, membership_type)
            flash(f"Membership extended until {member.expiry_date:%B %d, %Y}", "success")
        return redirect(url_for('membership'))
    return render_template('membership_update.html', member=member, number=number)


@app.route('/membership/<member_id>', methods=['GET', 'POST'])
@login_required
@admin_required
def member_detail(member_id):
    store = get_store()
    member = get_member_by_id(store, member_id)
    if member is None:
        abort(404)
    if request.method == 'POST':
        errors = validate_member_form(request.form)
        # membership number and type are fixed after creation
        errors.pop('membership_number', None)
        errors.pop('membership_type', None)
        if errors:
            flash(FORM_ERROR, "danger")
        else:
            update_member(store, member.id, MemberDetailsUpdate(
                name=clean(request.form, 'name'),
                email=clean(request.form, 'email').lower(),
                phone=clean(request.form, 'phone'),
                address=clean(request.form, 'address'),
            ))
            flash("Member updated successfully", "success")
            return redirect(url_for('member_detail', member_id=member.id))
    return render_template(
        'member_detail.html',
        member=member,
        transactions=get_member_transactions(store, member.id),
    )


@app.route('/membership/<member_id>/delete', methods=['POST'])
@login_required
@admin_required
def delete_member_page(member_id):
    if flash_outcome(delete_member(get_store(), member_id)):
        return redirect(url_for('membership'))
    return redirect(url_for('member_detail', member_id=member_id))


# ------------------------- Reports -------------------------
@app.route('/reports')
@login_required
@admin_required
def reports():
    store = get_store()
    return render_template(
        'reports.html',
        overdue=overdue_report(store),
        fines=fines_summary(store),
        popular=popular_books(store),
        breakdown=membership_breakdown(store),
    )


@app.route('/reports/transactions.csv')
@login_required
@admin_required
def export_transactions():
    return Response(
        export_transactions_csv(get_store()),
        mimetype='text/csv',
        headers={'Content-Disposition': 'attachment; filename=transactions.csv'},
    )


# ------------------------- Simple error pages -------------------------
@app.errorhandler(403)
def forbidden(e):
    return render_template('403.html'), 403


@app.errorhandler(404)
def not_found(e):
    return render_template('404.html'), 404


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=app.config['PORT'], debug=app.config['DEBUG'])
