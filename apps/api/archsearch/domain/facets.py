"""
Domain model for facets - treating facets as first-class entities.

A facet knows which dimension of the building record set it describes
and how to count its distinct values. The registry computes the facet
vocabulary that drives filter options and autocomplete.
"""

from abc import ABC, abstractmethod
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import func, select


class FacetType(Enum):
    """Types of facets supported by the system."""
    SIMPLE_COUNT = "simple_count"
    TAG_COUNT = "tag_count"


@dataclass
class FacetValue:
    """A single facet value with its count."""
    value: str
    count: int


@dataclass
class FacetResult:
    """Result of computing a facet."""
    facet_name: str
    facet_type: FacetType
    values: List[FacetValue]
    total_count: int


@dataclass
class FacetContext:
    """Context object providing dependencies for facet computation."""
    db: Any  # Database session
    tables: Any  # BuildingTables


def merge_counts(rows: Iterable[Tuple[Optional[str], int]]) -> List[FacetValue]:
    """
    Merge raw (value, count) rows into facet values.

    Values are whitespace-trimmed so that "Art Deco " and "Art Deco" are one
    value; empty values and zero counts are dropped. Sorted by count
    descending, then value.
    """
    counts: Counter = Counter()
    for value, count in rows:
        if value is None:
            continue
        value = str(value).strip()
        if value and count:
            counts[value] += int(count)
    return [
        FacetValue(value=value, count=count)
        for value, count in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
    ]


class Facet(ABC):
    """Abstract base class for all facets."""

    def __init__(self, name: str, facet_type: FacetType):
        self.name = name
        self.facet_type = facet_type

    @abstractmethod
    def compute(self, context: FacetContext) -> FacetResult:
        """Compute the facet values over the record set."""
        pass

    def _result(self, values: List[FacetValue]) -> FacetResult:
        return FacetResult(
            facet_name=self.name,
            facet_type=self.facet_type,
            values=values,
            total_count=sum(v.count for v in values),
        )


class ColumnCountFacet(Facet):
    """Counts buildings per distinct value of a buildings column."""

    def __init__(self, name: str, column: str):
        super().__init__(name, FacetType.SIMPLE_COUNT)
        self.column = column

    def compute(self, context: FacetContext) -> FacetResult:
        col = context.tables.buildings.c[self.column]
        rows = context.db.execute(
            select(col, func.count()).where(col.isnot(None)).group_by(col)
        ).all()
        return self._result(merge_counts(rows))


class StylesFacet(ColumnCountFacet):
    def __init__(self):
        super().__init__("styles", "architectural_style")


class ArchitectsFacet(ColumnCountFacet):
    def __init__(self):
        super().__init__("architects", "architect")


class CitiesFacet(ColumnCountFacet):
    def __init__(self):
        super().__init__("cities", "city")


class AccessibilityFacet(Facet):
    """Counts buildings per accessibility tag."""

    def __init__(self):
        super().__init__("accessibility", FacetType.TAG_COUNT)

    def compute(self, context: FacetContext) -> FacetResult:
        acc = context.tables.accessibility
        rows = context.db.execute(
            select(acc.c.tag, func.count(func.distinct(acc.c.building_id))).group_by(acc.c.tag)
        ).all()
        return self._result(merge_counts(rows))


class FacetRegistry:
    """Registry and coordinator for all facets."""

    def __init__(self):
        self._facets: Dict[str, Facet] = {}
        self._register_default_facets()

    def _register_default_facets(self):
        self.register(StylesFacet())
        self.register(ArchitectsFacet())
        self.register(CitiesFacet())
        self.register(AccessibilityFacet())

    def register(self, facet: Facet):
        self._facets[facet.name] = facet

    def get_facet(self, name: str) -> Optional[Facet]:
        return self._facets.get(name)

    def get_all_facets(self) -> List[Facet]:
        return list(self._facets.values())

    def compute_all_facets(self, context: FacetContext) -> Dict[str, List[Dict[str, Any]]]:
        """Compute all facets in API format. Failures propagate to the caller."""
        return {
            facet.name: [{"value": v.value, "count": v.count} for v in facet.compute(context).values]
            for facet in self._facets.values()
        }


# Global registry instance
default_registry = FacetRegistry()
