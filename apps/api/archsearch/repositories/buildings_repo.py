from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Set, Tuple

from sqlalchemy import MetaData, Table, and_, func, or_, select
from sqlalchemy.engine import Row
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.sql import Select

from archsearch.core.exceptions import DataStoreError
from archsearch.core.logger import get_logger
from archsearch.core.pagination import page_bounds
from archsearch.core.text import normalize_text
from archsearch.repositories.query_builder import (
    BuildingTables, Prefetch, build_base_query, build_plan, like_pattern,
)
from archsearch.schemas.filters import FilterState

logger = get_logger(__name__)


@contextmanager
def _data_store(operation: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as e:
        logger.error("Data store failure during %s: %s", operation, e)
        raise DataStoreError(f"Search error: {operation} failed", details={"error": str(e)}) from e


class BuildingsRepository:
    def __init__(self, db: Session):
        self.db = db
        bind = db.get_bind()
        md = MetaData()
        # Single source of truth for table objects
        with _data_store("schema reflection"):
            self.tables = BuildingTables(
                buildings=Table("buildings", md, autoload_with=bind),
                reviews=Table("building_reviews", md, autoload_with=bind),
                accessibility=Table("building_accessibility", md, autoload_with=bind),
                city_aliases=Table("city_aliases", md, autoload_with=bind),
            )
        self.buildings = self.tables.buildings

    def search_buildings(self, filters: FilterState, page: int, page_size: int,
                         text_query: str = "") -> Tuple[List[Dict[str, Any]], int]:
        """
        Main search method: resolves prefetch ID sets, then counts, orders and
        pages the constrained query.
        Returns: (items, total_count)
        """
        plan = build_plan(self.tables, filters, text_query, resolve_city=self.canonical_city)
        predicates = list(plan.predicates)

        with _data_store("search"):
            for step in plan.prefetch:
                ids = self._prefetch_ids(step)
                if step.exclude:
                    if ids:
                        predicates.append(self.buildings.c.id.not_in(ids))
                elif not ids:
                    logger.debug("Prefetch %r matched nothing; result is empty", step.name)
                    return [], 0
                else:
                    predicates.append(self.buildings.c.id.in_(ids))

            query = build_base_query(self.buildings)
            if predicates:
                query = query.where(and_(*predicates))

            total_count = self._count_total(query)

            offset, limit = page_bounds(page, page_size)
            query = query.order_by(*plan.order_by).offset(offset).limit(limit)
            rows = list(self.db.execute(query).all())
            items = self._hydrate_items(rows)

        logger.info("Search %r matched %d buildings (page %d: %d items)",
                    text_query, total_count, page, len(items))
        return items, total_count

    def canonical_city(self, name: str) -> Optional[str]:
        """Canonical form of a place name, or None when unknown or unavailable."""
        alias = normalize_text(name)
        if not alias:
            return None
        aliases = self.tables.city_aliases
        try:
            return self.db.execute(
                select(aliases.c.canonical).where(aliases.c.alias == alias)
            ).scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.warning("City canonicalization failed for %r, using plain match: %s", name, e)
            return None

    def top_records(self, text_query: str, limit: int = 5) -> List[Dict[str, Any]]:
        """Best-rated buildings matching by name, architect or city, for autocomplete."""
        q = (text_query or "").strip()
        if not q:
            return []
        b = self.buildings.c
        pattern = like_pattern(q)
        conds = [b.name.ilike(pattern, escape="\\"), b.architect.ilike(pattern, escape="\\"),
                 b.city.ilike(pattern, escape="\\")]
        canonical = self.canonical_city(q)
        if canonical:
            conds.append(b.city_normalized == canonical)
        query = (build_base_query(self.buildings).where(or_(*conds))
                 .order_by(b.rating.desc().nulls_last(), b.name.asc()).limit(limit))
        with _data_store("record lookup"):
            return self._hydrate_items(list(self.db.execute(query).all()))

    def compute_facets(self) -> Dict[str, Any]:
        """Facet vocabulary and scalar statistics over the whole record set."""
        from archsearch.services.facets import year_range_facet, audio_guides_count, reviews_count
        from archsearch.domain.facets import FacetContext, default_registry

        context = FacetContext(db=self.db, tables=self.tables)
        with _data_store("facet aggregation"):
            facets = default_registry.compute_all_facets(context)
            facets["year_range"] = year_range_facet(self.db, self.buildings)
            facets["audio_guides_count"] = audio_guides_count(self.db, self.tables.reviews)
            facets["total_reviews"] = reviews_count(self.db, self.tables.reviews)
        return facets

    def _prefetch_ids(self, step: Prefetch) -> Set[str]:
        return {row[0] for row in self.db.execute(step.statement).all() if row[0] is not None}

    def _count_total(self, query: Select) -> int:
        """Count total results for a query."""
        count_query = select(func.count()).select_from(query.subquery())
        return int(self.db.execute(count_query).scalar_one())

    def _hydrate_items(self, rows: List[Row]) -> List[Dict[str, Any]]:
        """Hydrate building rows with their accessibility tags."""
        if not rows:
            return []

        ids = [r.id for r in rows]
        acc = self.tables.accessibility
        tag_map: Dict[str, List[str]] = {bid: [] for bid in ids}
        for r in self.db.execute(
            select(acc.c.building_id, acc.c.tag).where(acc.c.building_id.in_(ids)).order_by(acc.c.tag)
        ).all():
            tag_map[r.building_id].append(r.tag)

        return [
            {
                "id": r.id,
                "name": r.name,
                "architect": r.architect,
                "architectural_style": r.architectural_style,
                "year_built": r.year_built,
                "city": r.city,
                "country": r.country,
                "address": r.address,
                "latitude": r.latitude,
                "longitude": r.longitude,
                "image_url": r.image_url,
                "rating": r.rating,
                "review_count": int(r.review_count or 0),
                "view_count": int(r.view_count or 0),
                "created_at": r.created_at,
                "description": r.description,
                "accessibility": tag_map.get(r.id, []),
            }
            for r in rows
        ]
