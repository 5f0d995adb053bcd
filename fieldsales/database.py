import logging
import time

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import DATABASE_URL, DB_SLOW_QUERY_THRESHOLD

logger = logging.getLogger(__name__)

Base = declarative_base()


def build_engine(url: str = DATABASE_URL, slow_query_threshold: float = DB_SLOW_QUERY_THRESHOLD) -> Engine:
    """Create the engine used by the SQL backend sync"""
    kwargs = {"pool_pre_ping": True, "echo": False}
    if url.startswith("sqlite"):
        # Sync writes run on a worker thread
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in url:
            # One shared connection, otherwise every checkout sees an empty database
            kwargs["poolclass"] = StaticPool

    try:
        engine = create_engine(url, **kwargs)
        logger.info(f"✅ Database engine created for {engine.url.get_backend_name()}")
    except Exception as e:
        logger.error(f"❌ Failed to create database engine: {e}")
        raise

    @event.listens_for(engine, "before_cursor_execute")
    def before_cursor_execute(conn, _cursor, statement, _parameters, context, _executemany):
        conn.info.setdefault("query_start_time", []).append(time.time())

    @event.listens_for(engine, "after_cursor_execute")
    def after_cursor_execute(conn, _cursor, statement, _parameters, context, _executemany):
        total = time.time() - conn.info["query_start_time"].pop(-1)
        if total > slow_query_threshold:
            logger.warning(f"🐌 Slow query ({total:.2f}s): {statement[:200]}...")

    return engine


def build_session_factory(engine: Engine) -> sessionmaker:
    # Register the tables on Base before creating them
    from . import models  # noqa: F401

    Base.metadata.create_all(bind=engine, checkfirst=True)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)
