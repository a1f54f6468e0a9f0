"""
Database connection and session management.
Engine with connection pooling, health-checked connections and
automatic recycling. Supports PostgreSQL and SQLite backends.
"""

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool, StaticPool
from typing import Generator
import logging
import os

from anvago.core.config import settings
from anvago.db.models import Base

logger = logging.getLogger(__name__)


def _sqlite_url(url: str) -> str:
    """Resolve a relative ./ path against the backend directory."""
    db_path = url.replace("sqlite:///", "")
    if db_path.startswith("./"):
        db_path = os.path.join(os.path.dirname(os.path.dirname(os.path.dirname(__file__))), db_path[2:])
        return f"sqlite:///{db_path}"
    return url


def set_sqlite_pragma(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA synchronous=NORMAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(url: str):
    """Create an engine for the given URL with backend-appropriate pooling."""
    if url.startswith("sqlite"):
        # SQLite: StaticPool for thread safety, WAL mode
        sqlite_engine = create_engine(
            _sqlite_url(url),
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=False,
        )
        event.listen(sqlite_engine, "connect", set_sqlite_pragma)
        return sqlite_engine

    # PostgreSQL: production pooling
    pg_engine = create_engine(
        url,
        poolclass=QueuePool,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
        pool_recycle=settings.database_pool_recycle,
        pool_pre_ping=settings.database_pool_pre_ping,
        pool_timeout=30,
        echo=False,
        connect_args={"connect_timeout": 10, "options": "-c statement_timeout=30000"},
    )

    @event.listens_for(pg_engine, "connect")
    def receive_connect(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("SET application_name = 'anvago-api'")
        cursor.close()

    return pg_engine


engine = build_engine(settings.database_url)

# Create session factory
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)


def get_db() -> Generator[Session, None, None]:
    """
    Dependency injection for database session.
    Errors are not swallowed here; the route layer surfaces them.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """Initialize database tables at startup."""
    logger.info("Initializing database schema...")
    Base.metadata.create_all(bind=engine)
    logger.info("Database schema initialized")
