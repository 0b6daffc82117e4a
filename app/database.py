import os
import sqlite3

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base
from app.config import settings

# SQLite needs check_same_thread, other backends get a real pool
if settings.DATABASE_URL.startswith("sqlite"):
    from sqlalchemy.pool import NullPool

    if ":memory:" not in settings.DATABASE_URL:
        os.makedirs(settings.DATA_DIR, exist_ok=True)
    engine_kwargs = {
        "connect_args": {"check_same_thread": False},
        "poolclass": NullPool,
        "echo": False,
    }
else:
    engine_kwargs = {
        "connect_args": {"connect_timeout": 10},
        "pool_size": 5,
        "max_overflow": 10,
        "pool_pre_ping": True,
        "pool_recycle": 3600,
        "echo": False,
    }

engine = create_engine(settings.DATABASE_URL, **engine_kwargs)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ships with foreign keys off; photos rely on ON DELETE CASCADE
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def init_db(bind=None):
    """Create the catalog tables if they do not exist yet. Safe to call repeatedly."""
    from app import models  # noqa: F401 - register models with Base.metadata

    Base.metadata.create_all(bind=bind or engine)
