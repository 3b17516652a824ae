"""Database engine and session factory"""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from billing_gateway.config import settings


def make_engine(database_url: str) -> Engine:
    """
    Build an engine for the billing store.

    SQLite (tests, local runs) gets a single-file connection shared across
    threads; server databases get a bounded pool that pings before use so a
    dropped connection surfaces as an error on checkout, not mid-transaction.
    """
    if database_url.startswith("sqlite"):
        return create_engine(database_url, connect_args={"check_same_thread": False})

    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=10,
        pool_recycle=3600,
        connect_args={"connect_timeout": int(settings.http_timeout_seconds)},
    )


engine = make_engine(settings.database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Session:
    """Dependency injection for database sessions"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
