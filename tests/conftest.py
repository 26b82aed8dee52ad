from datetime import timedelta
from decimal import Decimal

import pytest

from app import create_app
from auth import hash_password, issue_token
from config import TestConfig
from models import Meal, User, utcnow, ROLE_ADMIN, ROLE_USER
from sql_db import SessionLocal, reset_db

PASSWORD = "secret-pass-1"


@pytest.fixture
def app():
    app = create_app(TestConfig)
    reset_db()
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def session(app):
    with SessionLocal() as s:
        yield s


def make_user(s, email, role=ROLE_USER, name="Student"):
    user = User(name=name, email=email, password_hash=hash_password(PASSWORD), role=role)
    s.add(user)
    s.flush()
    return user


def make_meal(s, name="Classic Burger", price="12.99", category="main", **flags):
    meal = Meal(name=name, price=Decimal(price), category=category, **flags)
    s.add(meal)
    s.flush()
    return meal


def ago(seconds):
    return utcnow() - timedelta(seconds=seconds)


@pytest.fixture
def user(session):
    u = make_user(session, "student@unilunch.com")
    session.commit()
    return u


@pytest.fixture
def other_user(session):
    u = make_user(session, "other@unilunch.com", name="Other")
    session.commit()
    return u


@pytest.fixture
def admin(session):
    u = make_user(session, "admin@unilunch.com", role=ROLE_ADMIN, name="Admin User")
    session.commit()
    return u


def _token_for(s, user):
    token = issue_token(s, user)
    s.commit()
    return token


@pytest.fixture
def user_headers(session, user):
    return {"Authorization": f"Bearer {_token_for(session, user)}"}


@pytest.fixture
def other_headers(session, other_user):
    return {"Authorization": f"Bearer {_token_for(session, other_user)}"}


@pytest.fixture
def admin_headers(session, admin):
    return {"Authorization": f"Bearer {_token_for(session, admin)}"}


@pytest.fixture
def meals(session):
    curry = make_meal(session, "Spicy Thai Curry Tofu", "10.99", is_vegetarian=True, is_spicy=True, is_available=True)
    burger = make_meal(session, "Classic Burger", "12.99", is_available=True)
    session.commit()
    return curry, burger
