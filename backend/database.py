"""
Database configuration and session management.
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from config import DATABASE_URL
from models import Base


def create_session_factory(database_url: str = DATABASE_URL):
    """Create an engine for ``database_url``, make sure tables exist, return a session factory."""
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False  # Needed for SQLite

    engine = create_engine(database_url, connect_args=connect_args)
    init_db(engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(engine):
    """Initialize database tables."""
    Base.metadata.create_all(bind=engine)
