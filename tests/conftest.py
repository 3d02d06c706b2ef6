"""Test fixtures for the Finance Ledger.

Every test gets its own application backed by an in-memory SQLite database,
so nothing leaks between tests.
"""

from __future__ import annotations

import pytest
from werkzeug.security import generate_password_hash

from finance_ledger.config import AppConfig
from finance_ledger.store import RecordStore
from finance_ledger.webapp import create_app

ADMIN_PASSWORD = "ledger-admin"

SAMPLE_ROWS = [
    {"name": "Salary", "date": "2024-01-05", "type": "Income", "amount": 3000},
    {"name": "Rent", "date": "2024-01-10", "type": "Expenditure", "amount": 1200},
    {"name": "Groceries", "date": "2024-02-03", "type": "Expenditure", "amount": 150.5},
    {"name": "Freelance", "date": "2024-02-20", "type": "Income", "amount": 800},
    {"name": "Groceries", "date": "2024-03-01", "type": "Expenditure", "amount": 99.5},
    {"name": "Coffee", "date": "2023-12-30", "type": "Expenditure", "amount": 4.5},
]


@pytest.fixture
def config() -> AppConfig:
    return AppConfig(
        database_url="sqlite:///:memory:",
        secret_key="test-secret",
        admin_password_hash=generate_password_hash(ADMIN_PASSWORD),
    )


@pytest.fixture
def app(config: AppConfig):
    app = create_app(config)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def seeded(app):
    """Insert ``SAMPLE_ROWS`` (ids 1-6 in order) into the app's database."""
    with app.app_context():
        RecordStore().insert(SAMPLE_ROWS)
    return app


@pytest.fixture
def store(seeded):
    with seeded.app_context():
        yield RecordStore()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_client(client):
    client.post("/login", data={"password": ADMIN_PASSWORD})
    return client


@pytest.fixture
def guest_client(client):
    client.post("/login/guest")
    return client


@pytest.fixture
def count_records(app):
    def _count() -> int:
        with app.app_context():
            return RecordStore().select("id", count="exact").execute().count

    return _count
