"""
Database connection and session management.
Uses SQLAlchemy for Postgres connections (SQLite for local development and tests).
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from merchant_search.core.config import get_config
from merchant_search.utils.logger import get_logger

logger = get_logger("data.database")

# Base class for all our database models (must be defined before engine)
Base = declarative_base()


def create_session_factory(database_url: str) -> sessionmaker:
    """
    Build an engine + session factory for the given URL.

    Searches run on worker threads, so SQLite connections must be shareable
    across threads.
    """
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(database_url, pool_pre_ping=True, connect_args=connect_args)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


DATABASE_URL = get_config().database_url
SessionLocal = create_session_factory(DATABASE_URL)
engine = SessionLocal.kw["bind"]
logger.info("Database engine configured (%s)", engine.url.get_backend_name())


def get_session_factory() -> sessionmaker:
    """
    Dependency providing the session factory.
    The orchestrator opens one session per concurrent entity search.
    """
    return SessionLocal


def get_db():
    """
    Dependency function that provides a database session.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
