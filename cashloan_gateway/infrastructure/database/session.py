"""Database engine and per-request sessions"""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from cashloan_gateway.config import settings


def create_db_engine(database_url: str) -> Engine:
    """
    Build the engine for PostgreSQL in production or SQLite locally.

    Each request holds one connection for the length of its single
    transaction (a charge includes the receipt call), so the pool is sized
    for concurrent requests rather than concurrent queries.
    """
    if database_url.startswith("sqlite"):
        # Sessions are handed across the FastAPI threadpool
        return create_engine(database_url, connect_args={"check_same_thread": False})

    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_recycle=3600,
    )


engine = create_db_engine(settings.database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Session:
    """One session, and so one transaction, per request; endpoints commit or roll back"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
