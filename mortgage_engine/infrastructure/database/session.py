"""Database engine and per-request sessions"""

from typing import Generator
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import sessionmaker, Session
from mortgage_engine.config import settings


def build_engine(database_url: str) -> Engine:
    """
    Create an engine for the given URL.

    Server databases get a bounded pool recycled hourly; SQLite (local runs and
    tests) is shared across threads instead.
    """
    if make_url(database_url).get_backend_name() == "sqlite":
        sqlite_engine = create_engine(database_url, connect_args={"check_same_thread": False})

        # pysqlite's own transaction handling breaks SAVEPOINT; let SQLAlchemy emit BEGIN
        @event.listens_for(sqlite_engine, "connect")
        def _disable_pysqlite_transactions(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None

        @event.listens_for(sqlite_engine, "begin")
        def _begin(conn):
            conn.exec_driver_sql("BEGIN")

        return sqlite_engine

    return create_engine(
        database_url,
        pool_pre_ping=True,  # Verify connections before using
        pool_size=10,
        max_overflow=10,
        pool_recycle=3600,
    )


engine = build_engine(settings.database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """One session per request; routes commit explicitly"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
