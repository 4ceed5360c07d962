# footprint/database.py
import logging
import os

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker, declarative_base

from .config import settings

logger = logging.getLogger(__name__)

Base = declarative_base()


def make_engine(url: str):
    """Engine for url; SQLite files get their directory created."""
    parsed = make_url(url)
    connect_args = {}
    if parsed.get_backend_name() == "sqlite":
        connect_args["check_same_thread"] = False
        if parsed.database and parsed.database != ":memory:":
            os.makedirs(os.path.dirname(os.path.abspath(parsed.database)), exist_ok=True)
    return create_engine(url, connect_args=connect_args, pool_pre_ping=True)


engine = make_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind=None):
    """Create tables; called once on startup."""
    from . import models  # noqa: F401  registers the tables on Base

    bind = bind or engine
    Base.metadata.create_all(bind=bind)
    logger.info("database ready at %s", bind.url.render_as_string(hide_password=True))


def dispose(bind=None):
    """Release pooled connections; called once on shutdown."""
    (bind or engine).dispose()


# Dependency to get DB session
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
