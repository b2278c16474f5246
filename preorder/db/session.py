from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from preorder.core.config import get_settings
from preorder.db.base_class import Base
from preorder.models import order  # noqa: F401  registers the order table


def build_engine(database_url: str) -> Engine:
    """
    The order store is one table; SQLite for local runs and tests,
    any SQLAlchemy URL (e.g. PostgreSQL) in production.
    """
    if database_url.startswith("sqlite"):
        # Requests are served from a thread pool
        return create_engine(database_url, connect_args={"check_same_thread": False})
    return create_engine(database_url, pool_pre_ping=True)


SQLALCHEMY_DATABASE_URL = get_settings().DATABASE_URL

engine = build_engine(SQLALCHEMY_DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(database_url: str) -> None:
    """Create the order table in the given database if it does not exist yet."""
    if database_url == SQLALCHEMY_DATABASE_URL:
        Base.metadata.create_all(bind=engine)
        return
    other = build_engine(database_url)
    try:
        Base.metadata.create_all(bind=other)
    finally:
        other.dispose()
