"""
Database engine and session factory for the analytics service.

DATABASE_URL selects the backend (SQLite by default). Every cursor
execution is timed; statements over SLOW_QUERY_THRESHOLD_MS are logged
on the sqlalchemy.query_timing logger.
"""

import logging
import os
import time
from typing import Any, Dict

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

query_logger = logging.getLogger("sqlalchemy.query_timing")
query_logger.setLevel(logging.DEBUG if os.getenv("DEBUG_QUERIES") else logging.WARNING)

SLOW_QUERY_THRESHOLD_MS = int(os.getenv("SLOW_QUERY_THRESHOLD_MS", "100"))

STATEMENT_LOG_LIMIT = 500
PARAMS_LOG_LIMIT = 200


def normalize_database_url(url: str) -> str:
    """Rewrite the postgres:// scheme some hosts hand out; SQLAlchemy only accepts postgresql://"""
    if url.startswith("postgres://"):
        return "postgresql://" + url[len("postgres://"):]
    return url


def engine_options(url: str) -> Dict[str, Any]:
    if url.startswith("sqlite"):
        # Sessions cross threads under the FastAPI threadpool
        return {"connect_args": {"check_same_thread": False}, "pool_pre_ping": True}
    return {
        "pool_pre_ping": True,
        "pool_recycle": 1800,  # seconds
        "pool_size": 5,
        "max_overflow": 10,
        "pool_timeout": 30,
    }


def _clip(text: str, limit: int) -> str:
    return text[:limit] + "..." if len(text) > limit else text


DATABASE_URL = normalize_database_url(os.getenv("DATABASE_URL", "sqlite:///./analytics.db"))

engine = create_engine(DATABASE_URL, **engine_options(DATABASE_URL))


@event.listens_for(Engine, "before_cursor_execute")
def _start_query_timer(conn, cursor, statement, parameters, context, executemany):
    # Stack, since a statement can trigger nested executions on the same connection
    conn.info.setdefault("query_start_time", []).append(time.perf_counter())


@event.listens_for(Engine, "after_cursor_execute")
def _log_query_time(conn, cursor, statement, parameters, context, executemany):
    timers = conn.info.get("query_start_time")
    if not timers:
        return
    elapsed_ms = (time.perf_counter() - timers.pop()) * 1000

    if elapsed_ms > SLOW_QUERY_THRESHOLD_MS:
        query_logger.warning(
            f"SLOW QUERY ({elapsed_ms:.2f}ms): {_clip(statement, STATEMENT_LOG_LIMIT)} "
            f"| params={_clip(str(parameters), PARAMS_LOG_LIMIT)}"
        )
    else:
        query_logger.debug(f"Query ({elapsed_ms:.2f}ms): {_clip(statement, STATEMENT_LOG_LIMIT)}")


SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """Request-scoped session, closed after the response"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
