"""Relational schema the search engine reads from.

The repository reflects these tables at runtime; this module is the
declaration used to create them (development databases, tests).
"""

from sqlalchemy import (
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
)
from sqlalchemy.engine import Engine

metadata = MetaData()

buildings = Table(
    "buildings", metadata,
    Column("id", String, primary_key=True),
    Column("name", String, nullable=False),
    Column("architect", String),
    Column("architectural_style", String),
    Column("year_built", Integer),
    Column("city", String),
    Column("city_normalized", String, index=True),
    Column("country", String),
    Column("address", String),
    Column("latitude", Float),
    Column("longitude", Float),
    Column("image_url", String),
    Column("rating", Float),
    Column("review_count", Integer, nullable=False, default=0),
    Column("view_count", Integer, nullable=False, default=0),
    Column("created_at", DateTime(timezone=True)),
    Column("description", Text),
)

building_accessibility = Table(
    "building_accessibility", metadata,
    Column("building_id", String, ForeignKey("buildings.id"), primary_key=True),
    Column("tag", String, primary_key=True),
)

building_reviews = Table(
    "building_reviews", metadata,
    Column("id", String, primary_key=True),
    Column("building_id", String, ForeignKey("buildings.id"), nullable=False, index=True),
    Column("title", String),
    Column("content", Text),
    Column("audio_url", String),
)

# alias holds normalize_text() of a spelling or script variant
city_aliases = Table(
    "city_aliases", metadata,
    Column("alias", String, primary_key=True),
    Column("canonical", String, nullable=False),
)


def create_schema(engine: Engine) -> None:
    metadata.create_all(engine)
