"""
Shared fixtures.

The app context is only pushed around setup and explicit DB checks, never
across requests: Flask-Login caches the current user on `g`, and a context
held open by the test would leak one request's user into the next.
"""

import pytest

from pricecompare import create_app
from pricecompare.config import TestConfig
from pricecompare.extensions import db
from pricecompare.models import Item, User, Vendor
from pricecompare.security import create_access_token

PASSWORD = "password123"


def persist(app, *instances):
    """Commit instances and return them detached with their columns loaded."""
    with app.app_context():
        db.session.add_all(instances)
        db.session.commit()
        for instance in instances:
            db.session.refresh(instance)
        db.session.expunge_all()
    return instances[0] if len(instances) == 1 else list(instances)


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    def _make_user(username, role="maker", *, name=None, is_active=True, password=PASSWORD):
        user = User(username=username, role=role, name=name or username.title(), is_active=is_active)
        user.set_password(password)
        return persist(app, user)

    return _make_user


@pytest.fixture
def auth_header(app):
    def _auth_header(user):
        with app.app_context():
            token = create_access_token(user)
        return {"Authorization": f"Bearer {token}"}

    return _auth_header


@pytest.fixture
def admin(make_user):
    return make_user("admin", "admin")


@pytest.fixture
def checker(make_user):
    return make_user("checker", "checker")


@pytest.fixture
def maker(make_user):
    return make_user("maker", "maker")


@pytest.fixture
def vendors(app):
    return persist(
        app,
        Vendor(
            name="Acme Supplies",
            contact_person="Ann",
            email="ann@acme.test",
            phone="111",
            address="1 Acme Road",
            vat=15,
        ),
        Vendor(
            name="Bolt Trading",
            contact_person="Bob",
            email="bob@bolt.test",
            phone="222",
            address="2 Bolt Street",
            vat=0,
        ),
    )


@pytest.fixture
def items(app):
    return persist(
        app,
        Item(
            name="Cable",
            description="Copper cable",
            specification="3 core, 2.5mm",
            unit="M",
            category="Electrical",
            is_vatable=True,
        ),
        Item(
            name="Site survey",
            description="Survey service",
            specification="One day on site",
            unit="days",
            category="Services",
            is_vatable=False,
        ),
    )
