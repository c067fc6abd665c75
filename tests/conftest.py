from __future__ import annotations

import pytest

from app import create_app
from models import db
from storage import PrayerStorage


@pytest.fixture()
def app():
    app = create_app(
        {
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": "sqlite://",
            "SECRET_KEY": "test",
            "LOG_LEVEL": "WARNING",
        }
    )
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def storage(app) -> PrayerStorage:
    return PrayerStorage(db.session, grace_minutes=app.config["ON_TIME_GRACE_MINUTES"])


def register(client, name: str = "Ahmad Ali", email: str = "ahmad@example.com", password: str = "secret123", **extra):
    payload = {"name": name, "age": 30, "email": email, "password": password}
    payload.update(extra)
    return client.post("/api/register", json=payload)


@pytest.fixture()
def logged_in(client):
    resp = register(client)
    assert resp.status_code == 201
    return resp.get_json()
