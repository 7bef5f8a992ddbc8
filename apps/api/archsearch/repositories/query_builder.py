"""
Translates (q, FilterState) into predicates, an ordering and the ID-set
lookups that have to run before the main query.

Nothing here touches the database except through ``resolve_city``; the
repository executes the returned plan.
"""

from dataclasses import dataclass, field
from typing import Callable, List, Optional

from sqlalchemy import Table, and_, case, exists, or_, select
from sqlalchemy.sql import ColumnElement, Select

from archsearch.core.enums import SortMode
from archsearch.schemas.filters import YEAR_MAX_SENTINEL, YEAR_MIN_SENTINEL, FilterState

CityResolver = Callable[[str], Optional[str]]


@dataclass
class BuildingTables:
    buildings: Table
    reviews: Table
    accessibility: Table
    city_aliases: Table


@dataclass
class Prefetch:
    """Lookup of building IDs used to constrain the main query.

    An include-prefetch that yields no IDs makes the whole result empty;
    an exclude-prefetch that yields no IDs constrains nothing.
    """
    name: str
    statement: Select
    exclude: bool = False


@dataclass
class QueryPlan:
    predicates: List[ColumnElement] = field(default_factory=list)
    order_by: List[ColumnElement] = field(default_factory=list)
    prefetch: List[Prefetch] = field(default_factory=list)


def like_pattern(text: str, prefix: str = "%", suffix: str = "%") -> str:
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"{prefix}{escaped}{suffix}"

def build_base_query(buildings: Table) -> Select:
    return select(*buildings.c)

def text_conditions(buildings: Table, q: str, canonical_city: Optional[str]) -> List[ColumnElement]:
    pattern = like_pattern(q)
    conds = [
        buildings.c[col].ilike(pattern, escape="\\")
        for col in ("name", "architect", "address", "city", "architectural_style")
    ]
    if canonical_city:
        conds.append(buildings.c.city_normalized == canonical_city)
    return conds

def reviews_prefetch(reviews: Table, q: str) -> Prefetch:
    pattern = like_pattern(q)
    stmt = select(reviews.c.building_id).where(or_(
        reviews.c.title.ilike(pattern, escape="\\"),
        reviews.c.content.ilike(pattern, escape="\\"),
    )).distinct()
    return Prefetch(name="reviews", statement=stmt)

def audio_prefetch(reviews: Table, exclude: bool) -> Prefetch:
    stmt = select(reviews.c.building_id).where(
        and_(reviews.c.audio_url.isnot(None), reviews.c.audio_url != "")
    ).distinct()
    return Prefetch(name="audio", statement=stmt, exclude=exclude)

def build_order(buildings: Table, sort: SortMode, q: str) -> List[ColumnElement]:
    b = buildings.c
    by_rating = [b.rating.desc().nulls_last(), b.name.asc()]
    if sort == SortMode.rating:
        order = by_rating
    elif sort == SortMode.year:
        order = [b.year_built.desc().nulls_last(), b.name.asc()]
    elif sort in (SortMode.name, SortMode.distance):
        # distance is applied after fetch, from coordinates
        order = [b.name.asc()]
    elif sort == SortMode.recent:
        order = [b.created_at.desc().nulls_last()]
    elif q:
        tier = case(
            (b.name.ilike(like_pattern(q), escape="\\"), 1),
            (b.name.ilike(like_pattern(q, prefix=""), escape="\\"), 2),
            else_=3,
        )
        order = [tier.asc(), *by_rating]
    else:
        order = by_rating
    # id last so that offset paging is stable across equal keys
    return [*order, b.id.asc()]

def build_plan(tables: BuildingTables, filters: FilterState, q: str = "",
               resolve_city: Optional[CityResolver] = None) -> QueryPlan:
    b = tables.buildings
    plan = QueryPlan()
    where = plan.predicates
    q = (q or "").strip()

    # free text
    if q:
        if filters.search_in_reviews:
            plan.prefetch.append(reviews_prefetch(tables.reviews, q))
        else:
            canonical = resolve_city(q) if resolve_city else None
            where.append(or_(*text_conditions(b, q, canonical)))

    # set membership: OR within a field, AND across fields
    if filters.styles:
        where.append(b.c.architectural_style.in_(sorted(filters.styles)))
    if filters.architects:
        where.append(b.c.architect.in_(sorted(filters.architects)))
    if filters.cities:
        cities = sorted(filters.cities)
        canonical = sorted({c for c in map(resolve_city, cities) if c}) if resolve_city else []
        if canonical:
            where.append(or_(b.c.city.in_(cities), b.c.city_normalized.in_(canonical)))
        else:
            where.append(b.c.city.in_(cities))

    # ranges
    low, high = filters.year_range
    if low > YEAR_MIN_SENTINEL:
        where.append(b.c.year_built >= low)
    if high < YEAR_MAX_SENTINEL:
        where.append(b.c.year_built <= high)
    if filters.min_rating > 0:
        where.append(b.c.rating >= filters.min_rating)

    # tri-state existence
    if filters.has_photo is True:
        where.append(and_(b.c.image_url.isnot(None), b.c.image_url != ""))
    elif filters.has_photo is False:
        where.append(or_(b.c.image_url.is_(None), b.c.image_url == ""))
    if filters.has_audio is not None:
        plan.prefetch.append(audio_prefetch(tables.reviews, exclude=not filters.has_audio))

    # every requested tag must be present
    acc = tables.accessibility
    for tag in sorted(filters.accessibility):
        where.append(exists(
            select(acc.c.building_id).where(and_(acc.c.building_id == b.c.id, acc.c.tag == tag))
        ))

    plan.order_by = build_order(b, filters.effective_sort, q)
    return plan
