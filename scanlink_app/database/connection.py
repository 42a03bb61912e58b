from typing import Generator

from fastapi import Depends
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from scanlink_app.config import get_settings

Base = declarative_base()


def make_engine(database_url: str) -> Engine:
    """
    Create an engine for the given URL.

    SQLite connections are shared with the background recording threads,
    so the same-thread check is turned off for them.
    """
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(database_url, connect_args=connect_args, pool_pre_ping=True)


def make_session_factory(bind: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=bind)


engine = make_engine(get_settings().database_url)
SessionLocal = make_session_factory(engine)


def get_session_factory() -> sessionmaker:
    """
    FastAPI dependency: the session factory every store builds sessions from.
    Tests override this one dependency to point the app at their own database.
    """
    return SessionLocal


def get_db(session_factory: sessionmaker = Depends(get_session_factory)) -> Generator[Session, None, None]:
    """Request-scoped session, closed once the response is sent"""
    db = session_factory()
    try:
        yield db
    finally:
        db.close()
