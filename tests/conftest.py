from decimal import Decimal

import pytest

from app import create_app
from config import TestingConfig
from models import db
from models.bookable_item import BookableItem


@pytest.fixture
def app():
    """Fresh app on an in-memory SQLite database per test."""
    app = create_app(TestingConfig)
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def ctx(app):
    """Push an app context for tests that call services directly."""
    with app.app_context():
        yield app
        db.session.remove()


@pytest.fixture
def client(app):
    return app.test_client()


def make_room(name="Deluxe Room", price="2500.00", per_night=True, category="Room"):
    room = BookableItem(name=name, price=Decimal(price), per_night=per_night, category=category)
    db.session.add(room)
    db.session.commit()
    return room


def guest(**overrides):
    data = {
        "firstName": "Maria",
        "lastName": "Santos",
        "email": "maria@example.com",
        "phone": "+639171234567",
    }
    data.update(overrides)
    return data
