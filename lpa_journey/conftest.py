"""
Shared pytest fixtures: an app backed by an in-memory database.
"""

import pytest

from lpa_journey import create_app, db


TEST_CONFIG = {
    'TESTING': True,
    'SECRET_KEY': 'test-secret-key',
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'WTF_CSRF_ENABLED': False,
    'RATELIMIT_ENABLED': False,
    'SESSION_COOKIE_SECURE': False,
    'PAYMENT_COOKIE_SECURE': False,
    'ALLOW_TESTING_START': True,
}


@pytest.fixture
def app():
    app = create_app(dict(TEST_CONFIG))
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()
