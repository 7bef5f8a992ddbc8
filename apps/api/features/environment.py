# features/environment.py
from datetime import datetime, timedelta, timezone
from typing import Iterator, List, Optional

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from archsearch.db.schema import (
    building_accessibility,
    building_reviews,
    buildings,
    city_aliases,
    create_schema,
)
from archsearch.dependencies import get_db, get_metadata_aggregator
from archsearch.main import app
from archsearch.services.metadata import MetadataAggregator

CATALOGUE_SIZE = 45


def before_all(context):
    # SQLite in-memory DB
    context.engine = create_engine("sqlite+pysqlite:///:memory:", future=True,
                                   connect_args={"check_same_thread": False}, poolclass=StaticPool)
    context.Session = sessionmaker(bind=context.engine, autoflush=False, autocommit=False, future=True)
    create_schema(context.engine)

    # Seed dataset
    seed(context)

    # Override DI to use our in-memory session
    def _get_db() -> Iterator:
        db = context.Session()
        try:
            yield db
        finally:
            db.close()
    app.dependency_overrides[get_db] = _get_db
    context.aggregator = MetadataAggregator()
    app.dependency_overrides[get_metadata_aggregator] = lambda: context.aggregator

    # HTTP client
    context.client = TestClient(app)

    # Shared test state
    context.search_url = "/api/v1/search"
    context.current_filters = {}
    context.last_response = None


def after_all(context):
    app.dependency_overrides.clear()
    context.engine.dispose()


def seed(context):
    S = context.Session()
    tz = timezone.utc

    def add_building(i: int, **kw):
        row = {
            "id": kw.get("id", f"bld_{i:03d}"),
            "name": kw.get("name", f"Building {i:02d}"),
            "architect": kw.get("architect"),
            "architectural_style": kw.get("architectural_style"),
            "year_built": kw.get("year_built"),
            "city": kw.get("city"),
            "city_normalized": kw.get("city", "").lower() or None,
            "country": kw.get("country"),
            "address": kw.get("address"),
            "latitude": kw.get("latitude"),
            "longitude": kw.get("longitude"),
            "image_url": kw.get("image_url", f"https://img.example/{i:03d}.jpg"),
            "rating": kw.get("rating"),
            "review_count": 0,
            "view_count": i * 10,
            "created_at": datetime(2023, 1, 1, tzinfo=tz) + timedelta(days=i),
        }
        S.execute(buildings.insert().values(**row))
        return row

    def add_tags(building_id: str, tags: List[str]):
        for t in tags:
            S.execute(building_accessibility.insert().values(building_id=building_id, tag=t))

    def add_review(building_id: str, n: int, content: str, audio_url: Optional[str] = None):
        S.execute(building_reviews.insert().values(id=f"{building_id}_r{n}", building_id=building_id,
                                                   title=f"Visit {n}", content=content, audio_url=audio_url))

    named = [
        dict(id="eiffel", name="Eiffel Tower", architect="Gustave Eiffel",
             architectural_style="Structural Expressionism", year_built=1889, city="Paris", country="France",
             latitude=48.8584, longitude=2.2945, rating=4.8),
        dict(id="pompidou", name="Centre Pompidou", architect="Renzo Piano", architectural_style="High-tech",
             year_built=1977, city="Paris", country="France", latitude=48.8606, longitude=2.3522, rating=4.7),
        dict(id="lloyds", name="Lloyd's building", architect="Richard Rogers", architectural_style="High-tech",
             year_built=1986, city="London", country="United Kingdom", latitude=51.5131, longitude=-0.0821,
             rating=4.2),
        dict(id="casa_rossa", name="Casa Rossa", architect="Aldo Rossi", architectural_style="Modernism",
             year_built=1960, city="Milano", country="Italy", latitude=45.4642, longitude=9.19, rating=4.5),
        dict(id="casablanca", name="Casablanca Tower", architect="Jean Prouvé", architectural_style="Art Deco",
             year_built=1930, city="Casablanca", country="Morocco", latitude=33.5731, longitude=-7.5898,
             rating=4.5),
        dict(id="casa_grande", name="La Casa Grande", architect="Antoni Gaudí", architectural_style="Modernisme",
             year_built=1906, city="Barcelona", country="Spain", latitude=41.3917, longitude=2.1649, rating=4.5),
    ]
    for i, kw in enumerate(named):
        add_building(i, **kw)
    add_tags("pompidou", ["wheelchair", "elevator", "ramp"])
    add_tags("lloyds", ["ramp"])
    add_review("pompidou", 0, "Escalators with a view", audio_url="https://audio.example/pompidou.mp3")

    styles = ["Modernism", "Brutalism", "Art Deco", "High-tech"]
    architects = ["Le Corbusier", "Lina Bo Bardi", "Oscar Niemeyer"]
    cities = [("Lyon", "France"), ("Berlin", "Germany"), ("Madrid", "Spain")]

    # remaining buildings, 1900..1980; diverse attributes
    for i in range(len(named), CATALOGUE_SIZE):
        city, country = cities[i % 3]
        row = add_building(
            i,
            architect=architects[i % 3],
            architectural_style=styles[i % 4],
            year_built=1900 + (i * 2),
            city=city,
            country=country,
            rating=round(3.0 + (i % 5) * 0.4, 1) if i % 7 else None,
            image_url=None if i % 5 == 0 else f"https://img.example/{i:03d}.jpg",
        )
        bid = row["id"]

        tags = []
        if i % 3 == 0: tags.append("ramp")
        if i % 4 == 0: tags.append("elevator")
        if i % 2 == 0: tags.append("wheelchair")
        add_tags(bid, tags)

        if i % 6 == 0:
            add_review(bid, 0, "Guided tour available", audio_url=f"https://audio.example/{bid}.mp3")
        if i % 4 == 1:
            add_review(bid, 1, "Concrete everywhere, in a good way")

    for alias, canonical in [("paris", "paris"), ("london", "london"), ("londres", "london"),
                             ("milano", "milano"), ("mailand", "milano")]:
        S.execute(city_aliases.insert().values(alias=alias, canonical=canonical))

    S.commit()
    S.close()
