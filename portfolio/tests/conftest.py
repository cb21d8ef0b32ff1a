"""
Shared pytest fixtures.

Provides:
    - app: Flask application (session-scoped)
    - _tables: create all tables before each test, drop them after (autouse)
    - db: a SQLAlchemy session for service-level tests
    - client: Flask test client
    - admin_user / logged_in_client: an ADMIN account and a client logged in as it
"""
import os
import tempfile

import pytest

# must happen before anything under portfolio reads the environment
_TMP_DIR = tempfile.mkdtemp(prefix="portfolio_test_")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP_DIR, 'test.db')}"
os.environ["LOG_DIR"] = os.path.join(_TMP_DIR, "logs")

from portfolio.app_factory import create_app  # noqa: E402
from portfolio.db.enums import UserRole  # noqa: E402
from portfolio.db.init_db import drop_db, init_db  # noqa: E402
from portfolio.db.session import get_session  # noqa: E402
from portfolio.services.user_service import UserService  # noqa: E402

ADMIN_EMAIL = "admin@test.com"
ADMIN_PASSWORD = "secret123"


@pytest.fixture(scope="session")
def app():
    return create_app("testing")


@pytest.fixture(autouse=True)
def _tables():
    init_db()
    yield
    drop_db()


@pytest.fixture()
def db():
    session = get_session()
    yield session
    session.rollback()
    session.close()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def admin_user(db):
    user = UserService(db).create_user(
        name="Admin User",
        email=ADMIN_EMAIL,
        password=ADMIN_PASSWORD,
        role=UserRole.ADMIN,
    )
    db.commit()
    return user


@pytest.fixture()
def logged_in_client(client, admin_user):
    res = client.post("/api/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert res.status_code == 200
    return client


def login_as(client, email, password):
    res = client.post("/api/auth/login", json={"email": email, "password": password})
    assert res.status_code == 200
    return client
