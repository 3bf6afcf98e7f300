import logging

import config
from stores.base import HabitStore, UserStore
from stores.memory import InMemoryHabitStore, InMemoryUserStore

logger = logging.getLogger(__name__)


def build_stores(backend: str | None = None) -> tuple[HabitStore, UserStore]:
    """Construct the habit and user stores for the configured backend."""
    backend = (backend or config.STORE_BACKEND).lower()

    if backend == "memory":
        logger.info("Using in-memory stores (data is lost on restart).")
        return InMemoryHabitStore(), InMemoryUserStore()

    if backend == "supabase":
        from supabase_rest import SupabaseRest
        from stores.supabase import SupabaseHabitStore, SupabaseUserStore

        client = SupabaseRest(config.SUPABASE_URL, config.SUPABASE_SERVICE_ROLE_KEY, timeout=config.SUPABASE_TIMEOUT)
        logger.info(f"Using Supabase stores at {config.SUPABASE_URL}")
        return SupabaseHabitStore(client), SupabaseUserStore(client)

    if backend == "sql":
        from database import make_engine, make_session_factory, init_db
        from stores.sql import SqlHabitStore, SqlUserStore

        engine = make_engine(config.DATABASE_URL)
        init_db(engine)
        session_factory = make_session_factory(engine)
        logger.info(f"Using SQL stores ({engine.url.render_as_string(hide_password=True)})")
        return SqlHabitStore(session_factory), SqlUserStore(session_factory)

    raise ValueError(f"Unsupported STORE_BACKEND: {backend}")


__all__ = [
    "HabitStore",
    "UserStore",
    "InMemoryHabitStore",
    "InMemoryUserStore",
    "build_stores",
]
