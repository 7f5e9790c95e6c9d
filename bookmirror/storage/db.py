"""SQLite engine and session helpers for the catalog store."""

from __future__ import annotations

from pathlib import Path

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from bookmirror.logging_config import get_logger

from .models_sql import Base

LOGGER = get_logger(__name__)
DEFAULT_BUSY_TIMEOUT_S = 30.0
MEMORY_PATH = ":memory:"


def _install_sqlite_pragmas(engine: Engine, timeout_value: float) -> None:
    """Apply WAL and busy-timeout pragmas to every pooled connection.

    WAL lets catalog reads proceed while a scrape batch is being written.
    """

    busy_ms = int(timeout_value * 1000)

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, _record) -> None:
        cursor = dbapi_connection.cursor()
        try:
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA synchronous=NORMAL")
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.execute(f"PRAGMA busy_timeout = {busy_ms}")
        except Exception as exc:  # pragma: no cover - best-effort tuning
            LOGGER.warning("Unable to configure SQLite pragmas: %s", exc)
        finally:
            cursor.close()


def get_engine(sqlite_path: str, *, busy_timeout: int | float | None = None) -> Engine:
    """Create an engine for *sqlite_path*, creating its directory if needed."""

    timeout_value = float(busy_timeout) if busy_timeout is not None else DEFAULT_BUSY_TIMEOUT_S
    if sqlite_path != MEMORY_PATH:
        Path(sqlite_path).expanduser().resolve().parent.mkdir(parents=True, exist_ok=True)

    engine = create_engine(
        f"sqlite:///{sqlite_path}",
        future=True,
        pool_pre_ping=True,
        connect_args={"check_same_thread": False, "timeout": timeout_value},
    )
    _install_sqlite_pragmas(engine, timeout_value)
    LOGGER.debug("SQLite engine ready at %s", sqlite_path)
    return engine


def make_session(engine: Engine) -> sessionmaker[Session]:
    """Session factory whose instances stay readable after commit."""

    return sessionmaker(engine, expire_on_commit=False, future=True)


def init_db(engine: Engine) -> None:
    """Create any missing catalog tables; existing data is left untouched."""

    Base.metadata.create_all(engine, checkfirst=True)
