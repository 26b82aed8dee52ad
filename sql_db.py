from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from config import Config
from models import Base

# Use the DB URL from your config (SQLite locally, Cloud SQL in production)
engine = create_engine(Config.SQLALCHEMY_DATABASE_URI, echo=False, future=True)

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True, expire_on_commit=False)


def init_db(url: str | None = None) -> None:
    """
    Rebinds the session factory when the app is configured with a different
    database URL (tests, seeding another instance) and creates missing tables.
    """
    global engine
    if url and url != engine.url.render_as_string(hide_password=False):
        engine = create_engine(url, echo=False, future=True)
        SessionLocal.configure(bind=engine)

    Base.metadata.create_all(engine)


def reset_db() -> None:
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
