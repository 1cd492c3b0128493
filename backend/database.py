import os
import logging
import uuid

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

from config import DATABASE_URL, STORE_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)


def engine_options(url: str, timeout: float = STORE_TIMEOUT_SECONDS) -> dict:
    """Pool and connection settings for the backend behind `url`, with `timeout` seconds per statement."""
    engine_args = {}
    if url.startswith("sqlite"):
        # SQLite has no statement timeout; this bounds the wait on a locked database
        engine_args["connect_args"] = {"check_same_thread": False, "timeout": timeout}
        # In-memory databases must share one connection or every session sees an empty db
        if url in ("sqlite://", "sqlite:///:memory:"):
            engine_args["poolclass"] = StaticPool
    else:
        # Production settings for PostgreSQL
        engine_args.update({
            "pool_size": 5,
            "max_overflow": 10,
            "pool_timeout": 30,
            "pool_recycle": 1800,
        })
        if url.startswith("postgresql"):
            engine_args["connect_args"] = {"options": f"-c statement_timeout={int(timeout * 1000)}"}
    return engine_args


def build_engine(url: str = DATABASE_URL, timeout: float = STORE_TIMEOUT_SECONDS):
    return create_engine(url, **engine_options(url, timeout), echo=False)


try:
    engine = build_engine()
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
except Exception as e:
    logger.error(f"Failed to create engine: {e}")
    raise e

Base = declarative_base()


def init_db(bind=None):
    """Create the data/ directory if it doesn't exist, then create all tables."""
    bind = bind or engine
    if str(bind.url).startswith("sqlite:///./"):
        os.makedirs("data", exist_ok=True)

    # Import all models so they register with Base.metadata
    import models  # noqa: F401

    Base.metadata.create_all(bind=bind)
    logger.info("Database initialized successfully.")


def new_id() -> str:
    """Primary keys are UUID strings so paired rows can reference each other before insert."""
    return str(uuid.uuid4())
