"""
PostgreSQL - identity provider tables.

Credentials and revoked token ids live here; everything else about a user is
a document in MongoDB keyed by the same user id.
"""
import logging

from sqlalchemy import (
    Boolean, Column, DateTime, Integer, MetaData, String, Table, create_engine, func, text, true
)
from sqlalchemy.orm import sessionmaker
from contextlib import contextmanager
from placement_portal.core.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()

metadata = MetaData()

users_table = Table(
    "users",
    metadata,
    Column("user_id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), unique=True, nullable=False),
    Column("password_hash", String(255), nullable=False),
    Column("role", String(20), nullable=False),
    Column("is_active", Boolean, nullable=False, default=True, server_default=true()),
    Column("created_at", DateTime, server_default=func.now()),
)

revoked_tokens_table = Table(
    "revoked_tokens",
    metadata,
    Column("jti", String(64), primary_key=True),
    Column("revoked_at", DateTime, server_default=func.now()),
)

# Create engine with connection pool
# pool_size=5: maintain 5 connections ready
# max_overflow=10: allow 10 extra connections under load
engine = create_engine(
    settings.postgres_url,
    pool_size=5,
    max_overflow=10,
    pool_pre_ping=True,
)

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@contextmanager
def get_db_session():
    """
    Context manager for database sessions.
    Usage:
        with get_db_session() as db:
            db.execute(text("SELECT * FROM users"))
    """
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_postgres_schema(bind=None):
    """Create identity tables if they do not exist."""
    metadata.create_all(bind or engine)


def test_postgres_connection() -> bool:
    """
    Test if PostgreSQL is reachable.
    Returns True if connection successful, False otherwise.
    """
    try:
        with get_db_session() as db:
            result = db.execute(text("SELECT 1 as test"))
            row = result.fetchone()
            return row[0] == 1
    except Exception as e:
        logger.warning("PostgreSQL connection failed: %s", e)
        return False
