from datetime import datetime

import pytest

from app import app as flask_app
from extensions import db
from store import LibraryStore, SequentialIdGenerator


FIXED_NOW = datetime(2025, 3, 10, 9, 30)


class FakeClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock(FIXED_NOW)


@pytest.fixture
def app(clock):
    # Every test starts from freshly reseeded in-memory tables
    flask_app.config.update(TESTING=True)
    store = LibraryStore(db.session, id_factory=SequentialIdGenerator(1000), clock=clock)
    flask_app.extensions['library_store'] = store
    with flask_app.app_context():
        store.reset()
    yield flask_app


@pytest.fixture
def store(app):
    with app.app_context():
        yield app.extensions['library_store']


@pytest.fixture
def client(app):
    return app.test_client()


def _login(client, email, password):
    return client.post('/login', data={'email': email, 'password': password})


@pytest.fixture
def admin_client(client):
    _login(client, 'admin@bookworm.com', 'admin123')
    return client


@pytest.fixture
def user_client(client):
    _login(client, 'user@bookworm.com', 'user123')
    return client
