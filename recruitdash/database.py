"""RecruitDash — Database Engine & Session Factory.

PostgreSQL when DATABASE_URL is set, a local SQLite file otherwise.
"""

from urllib.parse import urlsplit, urlunsplit

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, Session, create_engine

from recruitdash.config import settings
from recruitdash.core.logging import get_logger

logger = get_logger("database")


def _mask_url(url: str) -> str:
    """Hide the password of a DB URL before it is logged or returned."""
    parts = urlsplit(url)
    if not parts.password:
        return url
    netloc = parts.netloc.replace(f":{parts.password}@", ":****@", 1)
    return urlunsplit(parts._replace(netloc=netloc))


def engine_options(url: str) -> dict:
    """create_engine kwargs for the backend the URL points at."""
    if url.startswith("sqlite"):
        # Request handlers and the scheduler share the SQLite connection
        return {"echo": False, "connect_args": {"check_same_thread": False}}
    return {
        "echo": False,
        "pool_pre_ping": True,
        "pool_size": 5,
        "max_overflow": 10,
        "pool_recycle": 300,
    }


def build_engine(url: str) -> Engine:
    backend = "SQLite" if url.startswith("sqlite") else "PostgreSQL"
    logger.info(f"Database backend: {backend} ({_mask_url(url)})")
    return create_engine(url, **engine_options(url))


db_url = settings.effective_database_url
engine = build_engine(db_url)


def test_connection() -> bool:
    """Run SELECT 1 against the engine."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("Database connection test: SUCCESS")
        return True
    except Exception as e:
        logger.error(f"Database connection test: FAILED: {e}")
        return False


def init_db() -> None:
    """Create the clinic, metrics, scout, goal and hire tables."""
    # Table models register themselves on SQLModel.metadata at import
    from recruitdash.models import goal_models, normalized_models  # noqa: F401

    SQLModel.metadata.create_all(engine)
    logger.info(f"Tables ready: {', '.join(sorted(SQLModel.metadata.tables))}")


def get_session():
    """FastAPI dependency yielding one session per request."""
    with Session(engine) as session:
        yield session
