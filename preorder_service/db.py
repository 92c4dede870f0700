"""
db.py — Database Engine and Session Handling

The engine and session factory are constructed explicitly by the application
at startup (see main.on_startup) and handed to request handlers through a
FastAPI dependency. Nothing connects to the database at import time.
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker


class Base(DeclarativeBase):
    pass


def create_session_factory(database_url: str, echo: bool = False, **engine_kwargs) -> sessionmaker:
    """
    Creates an engine for `database_url` and returns a session factory bound to it.

    Args:
        database_url (str): SQLAlchemy URL, e.g. 'postgresql+psycopg2://...' or 'sqlite:///./preorder.db'.
        echo (bool): Log every SQL statement.
        **engine_kwargs: Passed through to sqlalchemy.create_engine (pool settings etc.).

    Returns:
        sessionmaker: Factory producing sessions bound to the new engine.
    """
    if database_url.startswith("sqlite"):
        engine_kwargs.setdefault("connect_args", {"check_same_thread": False})
    engine = create_engine(database_url, echo=echo, **engine_kwargs)
    return sessionmaker(bind=engine, expire_on_commit=False)


def init_db(session_factory: sessionmaker):
    """Creates all tables that do not exist yet."""
    # Importing registers the mapped classes on Base.metadata.
    from . import db_models  # noqa: F401

    Base.metadata.create_all(bind=session_factory.kw["bind"])


def dispose(session_factory: sessionmaker):
    """Releases every pooled connection of the factory's engine."""
    session_factory.kw["bind"].dispose()
