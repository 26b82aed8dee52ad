import logging
from decimal import Decimal

import click
from flask.cli import with_appcontext

from auth import hash_password
from models import Meal, User, ROLE_ADMIN, ROLE_USER
from sql_db import SessionLocal

logger = logging.getLogger(__name__)

DEFAULT_USERS = [
    {"name": "Admin User", "email": "admin@unilunch.com", "role": ROLE_ADMIN},
    {"name": "Regular User", "email": "user@unilunch.com", "role": ROLE_USER},
]

SAMPLE_MEALS = [
    {
        "name": "Spicy Thai Curry Tofu",
        "description": "Crispy tofu cubes in a rich, spicy Thai red curry with bamboo shoots, "
                       "bell peppers, and Thai basil. Served with jasmine rice.",
        "price": Decimal("10.99"),
        "image_url": "https://images.unsplash.com/photo-1455619452474-d2be8b1e70cd?w=400&h=300&fit=crop",
        "category": "main",
        "is_vegetarian": True,
        "is_spicy": True,
        "is_available": True,
    },
    {
        "name": "Classic Burger",
        "description": "Juicy beef patty with lettuce, tomato, and special sauce",
        "price": Decimal("12.99"),
        "image_url": "https://images.unsplash.com/photo-1568901346375-23c9450c58cd?w=400&h=300&fit=crop",
        "category": "main",
        "is_vegetarian": False,
        "is_spicy": False,
        "is_available": True,
    },
]


def seed(password: str) -> dict:
    """Creates the default accounts and sample meals that are missing."""
    created = {"users": 0, "meals": 0}

    with SessionLocal() as s:
        for spec in DEFAULT_USERS:
            if s.query(User).filter_by(email=spec["email"]).first():
                continue
            s.add(User(password_hash=hash_password(password), **spec))
            created["users"] += 1

        if s.query(Meal).count() == 0:
            for meal in SAMPLE_MEALS:
                s.add(Meal(**meal))
                created["meals"] += 1

        s.commit()

    logger.info("seeded %(users)s users and %(meals)s meals", created)
    return created


@click.command("seed")
@click.option("--password", default="password123", show_default=True, help="Password for the seeded accounts.")
@with_appcontext
def seed_command(password):
    """Create the default admin/user accounts and sample meals."""
    created = seed(password)
    click.echo(f"Seeded {created['users']} users and {created['meals']} meals.")
