# Database engine, session factory and declarative base. Every request and
# job gets its own Session from SessionLocal; nothing is shared between them.

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Iterator

from sqlalchemy import create_engine, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from orderhub.core.config import settings


logger = logging.getLogger(__name__)


def _connect_args(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(
    settings.DATABASE_URL,
    connect_args=_connect_args(settings.DATABASE_URL),
    pool_pre_ping=True,
    future=True,
)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
Base = declarative_base()


class DatabaseState:
    def __init__(self) -> None:
        self._ready = threading.Event()
        self.last_error: str | None = None
        self.attempts = 0

    @property
    def ready(self) -> bool:
        return self._ready.is_set()

    def mark_ready(self) -> None:
        self.last_error = None
        self._ready.set()

    def mark_failed(self, error: str) -> None:
        self.last_error = error
        self._ready.clear()


db_state = DatabaseState()


def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _ping() -> None:
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))


def check_connection() -> bool:
    try:
        _ping()
    except SQLAlchemyError:
        return False
    return True


def wait_for_database(
    *,
    on_connected: Callable[[], None] | None = None,
    retry_seconds: float | None = None,
    max_attempts: int | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> bool:
    """Block until the database answers, then run ``on_connected``.

    Failures are logged and retried forever unless ``max_attempts`` is given.
    The service keeps serving in a degraded state meanwhile; ``db_state``
    reflects whether the database has been reached yet.
    """
    delay = retry_seconds if retry_seconds is not None else settings.DB_CONNECT_RETRY_SECONDS
    while True:
        db_state.attempts += 1
        try:
            _ping()
            if on_connected is not None:
                on_connected()
        except SQLAlchemyError as exc:
            db_state.mark_failed(exc.__class__.__name__)
            logger.error(
                "database.unavailable",
                extra={"attempt": db_state.attempts, "retry_in_seconds": delay},
            )
            if max_attempts is not None and db_state.attempts >= max_attempts:
                return False
            sleep(delay)
            continue
        db_state.mark_ready()
        logger.info("database.connected", extra={"attempt": db_state.attempts})
        return True


def start_database_watcher(on_connected: Callable[[], None] | None = None) -> threading.Thread:
    thread = threading.Thread(
        target=wait_for_database,
        kwargs={"on_connected": on_connected},
        name="db-connect",
        daemon=True,
    )
    thread.start()
    return thread
