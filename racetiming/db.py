import logging
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import sessionmaker, Session, DeclarativeBase

from .settings import settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


_engine: Engine | None = None
_SessionLocal: sessionmaker | None = None


def _build_engine(url: str) -> Engine:
    if make_url(url).get_backend_name() != "sqlite":
        return create_engine(url, pool_pre_ping=True)

    engine = create_engine(url, connect_args={"check_same_thread": False})

    # SQLite leaves foreign keys off unless asked per connection
    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return engine


def init_db(url: str | None = None) -> Engine:
    """Create the engine and the schema once; later calls reuse them."""
    global _engine, _SessionLocal
    if _engine is None:
        _engine = _build_engine(url or settings.RT_DB_URL)
        _SessionLocal = sessionmaker(bind=_engine, autoflush=False, autocommit=False)
        from . import models  # noqa: F401
        Base.metadata.create_all(bind=_engine)
        logger.info("Database ready at %s", _engine.url.render_as_string(hide_password=True))
    return _engine


def dispose_db() -> None:
    global _engine, _SessionLocal
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionLocal = None


def new_session() -> Session:
    if _SessionLocal is None:
        init_db()
    return _SessionLocal()


def get_session() -> Iterator[Session]:
    db = new_session()
    try:
        yield db
    finally:
        db.close()
