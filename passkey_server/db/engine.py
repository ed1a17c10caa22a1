# (c) Copyright Datacraft, 2026
from functools import lru_cache
from typing import Generator

from sqlalchemy import create_engine, Engine
from sqlalchemy.orm import sessionmaker, Session as SQLAlchemySession

from passkey_server.config import get_settings


@lru_cache()
def get_engine() -> Engine:
    settings = get_settings()
    return create_engine(settings.db_url)


@lru_cache()
def get_sessionmaker() -> sessionmaker:
    return sessionmaker(get_engine(), expire_on_commit=False)


def init_db(engine: Engine | None = None) -> None:
    """Create the passkey tables if they do not exist yet."""
    from .base import Base
    from . import orm  # noqa: F401

    Base.metadata.create_all(engine or get_engine())


def get_db() -> Generator[SQLAlchemySession, None, None]:
    """FastAPI dependency for database sessions."""
    db = get_sessionmaker()()
    try:
        yield db
    finally:
        db.close()
