"""SQLAlchemy engine and session setup."""

import logging
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from .config import settings


logger = logging.getLogger(__name__)

Base = declarative_base()


def create_db_engine(database_url: Optional[str] = None) -> Engine:
    """
    Create a SQLAlchemy engine.

    Args:
        database_url: Database URL, defaults to the configured SQLite file

    Returns:
        Engine instance
    """
    url = database_url or settings.resolved_database_url
    connect_args = {}
    if url.startswith("sqlite"):
        # Webhook handlers and the sync sweep share the connection pool
        connect_args["check_same_thread"] = False
    return create_engine(url, connect_args=connect_args)


def create_session_factory(engine: Engine) -> sessionmaker:
    """Create a session factory bound to the engine."""
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(engine: Engine) -> None:
    """
    Create tables and indexes if they do not exist.

    Args:
        engine: Engine to initialize
    """
    from .models import order_record  # noqa: F401  register the table

    Base.metadata.create_all(engine)
    logger.info(f"Database initialized: {engine.url.render_as_string(hide_password=True)}")
