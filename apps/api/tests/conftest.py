"""
Shared pytest fixtures.

Repository and router tests run against an in-memory SQLite database seeded
with a small, hand-picked set of buildings (coordinates are real, so the
distance tests can reason about Paris and London).
"""

from datetime import datetime, timezone
from typing import Iterator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from archsearch.db.schema import (
    building_accessibility,
    building_reviews,
    buildings,
    city_aliases,
    create_schema,
)
from archsearch.repositories.buildings_repo import BuildingsRepository
from archsearch.services.metadata import MetadataAggregator

PARIS = (48.8566, 2.3522)
LONDON = (51.5074, -0.1278)

BUILDINGS = [
    # id, name, architect, style, year, city, city_normalized, country, address, lat, lon, image, rating
    ("b01", "Casa Rossa", "Aldo Rossi", "Modernism", 1960, "Milano", "milan", "Italy",
     "Via Roma 1", 45.4642, 9.1900, "https://img.example/b01.jpg", 4.5),
    ("b02", "Casablanca Tower", "Jean Prouvé", "Art Deco", 1930, "Casablanca", "casablanca", "Morocco",
     "Boulevard d'Anfa", 33.5731, -7.5898, None, 4.5),
    ("b03", "La Casa Grande", "Antoni Gaudí", "Modernisme", 1906, "Barcelona", "barcelona", "Spain",
     "Passeig de Gràcia 92", 41.3917, 2.1649, "https://img.example/b03.jpg", 4.5),
    ("b04", "Centre Pompidou", "Renzo Piano", "High-tech", 1977, "Paris", "paris", "France",
     "Place Georges-Pompidou", 48.8606, 2.3522, "https://img.example/b04.jpg", 4.7),
    ("b05", "Eiffel Tower", "Gustave Eiffel", "Structural Expressionism", 1889, "Paris", "paris", "France",
     "Champ de Mars", 48.8584, 2.2945, "https://img.example/b05.jpg", 4.8),
    ("b06", "Lloyd's building", "Richard Rogers", "High-tech", 1986, "London", "london", "United Kingdom",
     "1 Lime Street", 51.5131, -0.0821, "", 4.2),
    ("b07", "Villa Savoye", "Le Corbusier", "Modernism", 1931, "Poissy", "poissy", "France",
     "82 Rue de Villiers", 48.9244, 2.0283, "https://img.example/b07.jpg", None),
    ("b08", "Museu de Arte de São Paulo", "Lina Bo Bardi", "Brutalism", 1968, "São Paulo", "sao paulo",
     "Brazil", "Avenida Paulista 1578", -23.5614, -46.6559, "https://img.example/b08.jpg", 4.4),
]

ACCESSIBILITY = [
    ("b01", "wheelchair"),
    ("b04", "wheelchair"), ("b04", "elevator"), ("b04", "ramp"),
    ("b05", "wheelchair"), ("b05", "elevator"),
    ("b06", "ramp"),
]

REVIEWS = [
    # id, building_id, title, content, audio_url
    ("r1", "b04", "Inside out", "The escalators give a great view", "https://audio.example/pompidou.mp3"),
    ("r2", "b07", "Pilotis", "A machine for living in", ""),
    ("r3", "b05", "Iron lady", "Wrought iron lattice", None),
    ("r4", "b06", "Inside out again", "Escalators on the outside", "https://audio.example/lloyds.mp3"),
]

CITY_ALIASES = [
    ("milan", "milan"), ("milano", "milan"), ("mailand", "milan"),
    ("paris", "paris"),
    ("london", "london"), ("londres", "london"),
    ("sao paulo", "sao paulo"),
]


def seed(engine: Engine) -> None:
    columns = ("id", "name", "architect", "architectural_style", "year_built", "city", "city_normalized",
               "country", "address", "latitude", "longitude", "image_url", "rating")
    with engine.begin() as conn:
        for i, row in enumerate(BUILDINGS):
            values = dict(zip(columns, row))
            values["review_count"] = sum(1 for r in REVIEWS if r[1] == values["id"])
            values["created_at"] = datetime(2024, 1, i + 1, tzinfo=timezone.utc)
            conn.execute(buildings.insert().values(**values))
        for building_id, tag in ACCESSIBILITY:
            conn.execute(building_accessibility.insert().values(building_id=building_id, tag=tag))
        for rid, building_id, title, content, audio_url in REVIEWS:
            conn.execute(building_reviews.insert().values(
                id=rid, building_id=building_id, title=title, content=content, audio_url=audio_url))
        for alias, canonical in CITY_ALIASES:
            conn.execute(city_aliases.insert().values(alias=alias, canonical=canonical))


@pytest.fixture
def engine() -> Iterator[Engine]:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True,
                           connect_args={"check_same_thread": False}, poolclass=StaticPool)
    create_schema(engine)
    seed(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


@pytest.fixture
def db_session(session_factory) -> Iterator[Session]:
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def repo(db_session) -> BuildingsRepository:
    return BuildingsRepository(db_session)


@pytest.fixture
def client(session_factory) -> Iterator[TestClient]:
    """TestClient whose DB dependency points at the seeded in-memory database."""
    from archsearch.dependencies import get_db, get_metadata_aggregator
    from archsearch.main import app

    def _get_db() -> Iterator[Session]:
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    aggregator = MetadataAggregator()
    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_metadata_aggregator] = lambda: aggregator
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
