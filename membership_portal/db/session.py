from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from membership_portal.core import config
from membership_portal.db.models import Base
import logging

logger = logging.getLogger(__name__)


def _engine_for(url: str):
    # Configure connect_args based on DB type
    connect_args = {}
    kwargs = {}
    if url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
        if url in ("sqlite://", "sqlite:///:memory:"):
            # Every connection must see the same in-memory database
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_pre_ping"] = True
    return create_engine(url, connect_args=connect_args, **kwargs)


engine = _engine_for(config.settings.STORAGE_DB_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(url: str = None):
    """Re-initialize the storage engine and create missing tables. Useful after settings change."""
    global engine, SessionLocal

    engine = _engine_for(url or config.settings.STORAGE_DB_URL)
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)
    return SessionLocal


def check_connection():
    """Check if the storage database connection is working."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"DB Connection check failed: {e}")
        return False
