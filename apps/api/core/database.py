"""
Database connection management.

PostgreSQL in every deployed environment (pooled), SQLite for the test
suite. The progression guarantees rely only on unique constraints and
savepoints, which both backends provide.
"""
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import make_url
from sqlalchemy.orm import declarative_base
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool, StaticPool
from core.config import settings
import logging

logger = logging.getLogger(__name__)

DATABASE_URL = settings.database_url


def is_memory_sqlite(url: str) -> bool:
    """True for `sqlite://` and `sqlite:///:memory:`, not for file databases."""
    parsed = make_url(url)
    return parsed.get_backend_name() == "sqlite" and parsed.database in (None, "", ":memory:")


def _install_sqlite_listeners(sqlite_engine):
    @event.listens_for(sqlite_engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        """Set connection-level settings."""
        # pysqlite's own BEGIN handling breaks SAVEPOINT; emit BEGIN ourselves
        dbapi_conn.isolation_level = None
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()
        logger.debug("New SQLite connection established")

    @event.listens_for(sqlite_engine, "begin")
    def sqlite_begin(conn):
        conn.exec_driver_sql("BEGIN")


def _build_engine(url: str = DATABASE_URL):
    if url.startswith("sqlite"):
        if is_memory_sqlite(url):
            # One shared connection so every session sees the same in-memory DB
            sqlite_engine = create_engine(
                url,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
                echo=settings.DEBUG,
            )
        else:
            sqlite_engine = create_engine(
                url,
                connect_args={"check_same_thread": False},
                echo=settings.DEBUG,
            )
        _install_sqlite_listeners(sqlite_engine)
        return sqlite_engine

    return create_engine(
        url,
        poolclass=QueuePool,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
        pool_pre_ping=True,  # Verify connections before using
        echo=settings.DEBUG,  # Log SQL queries in debug mode
    )


engine = _build_engine()

# Session factory
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    expire_on_commit=False,  # Prevent lazy loading issues
)

Base = declarative_base()


def get_db() -> Session:
    """
    Dependency for FastAPI to get database session.

    Commits when the endpoint returns normally, rolls back on any exception.
    Services that need an explicit transaction boundary commit themselves.
    """
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception as e:
        db.rollback()
        # Only log actual database errors, not HTTP exceptions
        from fastapi import HTTPException
        if not isinstance(e, HTTPException):
            logger.error(f"Database transaction error: {e}")
        raise
    finally:
        db.close()


def check_db_connection() -> bool:
    """
    Check if database connection is healthy.

    Returns:
        True if connection is healthy, False otherwise
    """
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database connection check failed: {e}")
        return False
