from functools import lru_cache
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session

from archsearch.core.config import ArchsearchSettings, get_settings
from archsearch.services.metadata import MetadataAggregator

# In tests, the DB dependency is overridden. This default is only for dev/prod.
_settings = get_settings()
_engine = create_engine(_settings.database_url, future=True)
_SessionLocal = sessionmaker(bind=_engine, autoflush=False, autocommit=False, future=True)

def get_db() -> Iterator[Session]:
    db = _SessionLocal()
    try:
        yield db
    finally:
        db.close()

def get_app_settings() -> ArchsearchSettings:
    return get_settings()

@lru_cache
def get_metadata_aggregator() -> MetadataAggregator:
    """Process-wide facet snapshot, shared across requests."""
    return MetadataAggregator()
