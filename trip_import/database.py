"""Engine and session management for the travel store."""

from __future__ import annotations

import logging
from typing import Any, Dict

from sqlalchemy import Engine, create_engine, event, select
from sqlalchemy.orm import Session, sessionmaker

from .models import TRAVEL_MODES, Base, TravelMode

logger = logging.getLogger(__name__)


def make_engine(url: str, echo: bool = False, **kwargs: Any) -> Engine:
    """Create an engine for ``url``; extra keyword arguments go to :func:`create_engine`."""

    engine = create_engine(url, echo=echo, **kwargs)
    if engine.dialect.name == "sqlite" and engine.dialect.driver == "pysqlite":
        _enable_sqlite_savepoints(engine)
    logger.debug("Created engine for %s", engine.url.render_as_string(hide_password=True))
    return engine


def _enable_sqlite_savepoints(engine: Engine) -> None:
    """Let SQLAlchemy emit BEGIN itself so SAVEPOINT nests inside the outer transaction.

    pysqlite otherwise defers BEGIN until the first write, and a savepoint
    opened after a read becomes the outermost transaction.
    """

    @event.listens_for(engine, "connect")
    def _disable_driver_transactions(dbapi_conn, connection_record):
        dbapi_conn.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")


def make_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def init_db(engine: Engine) -> Dict[str, int]:
    """Create all tables and seed the travel mode lookup.

    Returns a mapping of travel mode name to id. Seeding is idempotent.
    """

    Base.metadata.create_all(engine)
    with Session(engine) as session, session.begin():
        existing = set(session.scalars(select(TravelMode.travel_mode_name)))
        missing = [name for name in TRAVEL_MODES if name not in existing]
        session.add_all(TravelMode(travel_mode_name=name) for name in missing)
        if missing:
            logger.info("Seeded travel modes: %s", ", ".join(missing))

    with Session(engine) as session:
        rows = session.execute(select(TravelMode.travel_mode_name, TravelMode.travel_mode_id))
        return {name: mode_id for name, mode_id in rows}
