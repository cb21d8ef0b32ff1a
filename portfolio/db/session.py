# portfolio/db/session.py
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
import os

from portfolio.logger import get_logger

logger = get_logger(__name__)

_engine = None
_SessionLocal = None


def _engine_options(db_url: str) -> dict:
    options = {"echo": os.getenv("SQL_ECHO", "0") == "1"}
    if db_url.startswith("sqlite"):
        # Flask serves requests from several threads
        options["connect_args"] = {"check_same_thread": False}
    else:
        options["pool_pre_ping"] = True
    return options


def get_engine():
    '''Process-wide engine built from DATABASE_URL on first use.'''
    global _engine
    if _engine is None:
        db_url = os.environ.get("DATABASE_URL")
        if not db_url:
            raise RuntimeError("DATABASE_URL not set")
        logger.info(f"Using database URL: {db_url}")
        _engine = create_engine(db_url, **_engine_options(db_url))
    return _engine


def get_session() -> Session:
    '''
    New session per request or script. Objects stay readable after commit,
    so routes can serialize them once the write is done.
    '''
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(
            autoflush=False,
            expire_on_commit=False,
            bind=get_engine(),
        )
    return _SessionLocal()


def reset_engine():
    """Drop the cached engine so the next call re-reads DATABASE_URL."""
    global _engine, _SessionLocal
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionLocal = None
