"""Database engine, session factory and declarative base."""

from functools import lru_cache

from sqlalchemy import Engine, create_engine
from sqlalchemy.engine import URL, make_url
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from changewatch.config import Settings


class Base(DeclarativeBase):
    """Declarative base for all models."""


def build_database_url(settings: Settings) -> URL:
    """Combine the database URL with the separately supplied key."""
    url = make_url(settings.database_url)
    if settings.database_key:
        url = url.set(password=settings.database_key)
    return url


@lru_cache
def _engine_for(url: str) -> Engine:
    return create_engine(url, pool_pre_ping=True)


def get_engine(settings: Settings) -> Engine:
    """Get a shared engine for the configured database."""
    url = build_database_url(settings)
    return _engine_for(url.render_as_string(hide_password=False))


def get_session_factory(settings: Settings) -> sessionmaker:
    """Get a session factory bound to the configured database."""
    return sessionmaker(bind=get_engine(settings), expire_on_commit=False)
