from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from outreach.core.config import settings
from outreach.core.exceptions import StoreError


def build_engine(database_url: str):
    if database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},  # only for SQLite
        )
    return create_engine(
        database_url,
        pool_size=20,
        max_overflow=10,
        pool_pre_ping=True,  # Test connections before using them to detect stale connections
        pool_recycle=3600,  # Recycle connections after 1 hour
        pool_timeout=60
    )


engine = build_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


@contextmanager
def store_guard(db: Session):
    """Roll back and surface backend failures as StoreError with the original message."""
    try:
        yield
    except SQLAlchemyError as e:
        db.rollback()
        message = str(getattr(e, "orig", None) or e)
        raise StoreError(message) from e
