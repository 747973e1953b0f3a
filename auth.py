from functools import wraps

from flask import abort
from flask_login import UserMixin, current_user
from werkzeug.security import generate_password_hash, check_password_hash


class User(UserMixin):
    def __init__(self, id, name, email, role, password):
        self.id = id
        self.name = name
        self.email = email
        self.role = role
        self.password_hash = generate_password_hash(password)

    @property
    def is_admin(self):
        return self.role == "admin"

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)


# Demo accounts; there is no registration
MOCK_USERS = {
    u.id: u for u in (
        User("1", "Admin User", "admin@bookworm.com", "admin", "admin123"),
        User("2", "Regular User", "user@bookworm.com", "user", "user123"),
    )
}


def get_user(user_id):
    return MOCK_USERS.get(str(user_id))


def authenticate(email, password):
    email = (email or "").strip().lower()
    for user in MOCK_USERS.values():
        if user.email == email and user.check_password(password or ""):
            return user
    return None


def admin_required(func):
    @wraps(func)
    def wrapper(*args, **kwargs):
        if not current_user.is_authenticated or not current_user.is_admin:
            abort(403)
        return func(*args, **kwargs)
    return wrapper
