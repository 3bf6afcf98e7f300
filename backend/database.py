import os
import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

Base = declarative_base()


def make_engine(database_url: str, echo: bool = False) -> Engine:
    """Build an engine; SQLite gets thread-safe connect args, Postgres a pool."""
    engine_args = {}
    if database_url.startswith("sqlite"):
        engine_args["connect_args"] = {"check_same_thread": False}
        # In-memory databases live inside a single connection
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            engine_args["poolclass"] = StaticPool
        else:
            db_path = database_url.split("///", 1)[-1]
            db_dir = os.path.dirname(db_path)
            if db_dir:
                os.makedirs(db_dir, exist_ok=True)
    else:
        # Production settings for PostgreSQL
        engine_args.update({
            "pool_size": 5,
            "max_overflow": 10,
            "pool_timeout": 30,
            "pool_recycle": 1800,
        })

    return create_engine(database_url, echo=echo, **engine_args)


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(engine: Engine):
    """Create all tables registered on Base.metadata."""
    # Import all models so they register with Base.metadata
    from models.user import User
    from models.habit import Habit
    from models.habit_reset import HabitReset

    Base.metadata.create_all(bind=engine)
    logger.info("Database initialized successfully.")
