from sqlalchemy import create_engine, Engine
from sqlalchemy.orm import sessionmaker, scoped_session, Session
from sqlalchemy.pool import StaticPool
from typing import Optional

from bellringer.sql_orm.connection.base import Base
from bellringer.utils.logging_config import get_catalog_logger

logger = get_catalog_logger()

engine: Optional[Engine] = None
SessionFactory: Optional[scoped_session] = None


def get_engine(url: str) -> Engine:
    if url.startswith("sqlite"):
        # In-memory SQLite must share one connection across threads
        return create_engine(url, connect_args={"check_same_thread": False}, poolclass=StaticPool)
    return create_engine(url, pool_size=20, max_overflow=0)


def get_session_factory(engine) -> scoped_session:
    return scoped_session(sessionmaker(bind=engine, expire_on_commit=False))


def create_all_tables(target_engine: Engine) -> None:
    # Importing the models registers their tables on Base.metadata
    import bellringer.sql_orm.schedule.schedule_orm  # noqa: F401
    import bellringer.sql_orm.override.special_schedule_orm  # noqa: F401
    import bellringer.sql_orm.override.holiday_schedule_orm  # noqa: F401
    import bellringer.sql_orm.call.call_schedule_orm  # noqa: F401

    Base.metadata.create_all(target_engine)


def initialize_global_engine(url: str, create_tables: bool = False):
    """Initialize the global engine and session factory"""
    global engine, SessionFactory
    safe_url = url.split("@")[-1] if "@" in url else url
    logger.info(f"Initializing SQLAlchemy engine for {safe_url}")
    engine = get_engine(url)
    SessionFactory = get_session_factory(engine)
    if create_tables:
        create_all_tables(engine)
    logger.info("Global engine and session factory created successfully")
    return engine


def dispose_global_engine():
    global engine, SessionFactory
    if SessionFactory is not None:
        SessionFactory.remove()
    if engine is not None:
        engine.dispose()
    engine = None
    SessionFactory = None


def get_session() -> Session:
    """Get a session safely, ensuring SessionFactory is initialized"""
    if SessionFactory is None:
        raise RuntimeError("SessionFactory not initialized. Call initialize_global_engine() first.")
    return SessionFactory()
