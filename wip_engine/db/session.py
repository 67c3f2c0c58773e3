"""Engine and session factory."""

from functools import lru_cache

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from wip_engine.core.config import get_settings


@lru_cache
def get_engine() -> Engine:
    """Create the process-wide engine on first use."""

    return create_engine(get_settings().database_url, pool_pre_ping=True, future=True)


def SessionLocal() -> Session:
    factory = sessionmaker(bind=get_engine(), autoflush=False, autocommit=False, future=True)
    return factory()
