"""Autocomplete suggestions built from top records and the facet vocabulary."""

from typing import Any, Iterable, List, Mapping, Set, Tuple, Union

from archsearch.core.enums import SuggestionKind
from archsearch.core.text import normalize_text
from archsearch.repositories.buildings_repo import BuildingsRepository
from archsearch.schemas.search_response import BuildingHit, Facet, SearchMetadata, Suggestion
from archsearch.services.metadata import MetadataAggregator

MAX_SUGGESTIONS = 8
BUILDING_LIMIT = 3
FACET_LIMITS = (
    (SuggestionKind.architect, "architects", 2),
    (SuggestionKind.style, "styles", 2),
    (SuggestionKind.city, "cities", 2),
)
TOP_RECORDS = 5

Record = Union[BuildingHit, Mapping[str, Any]]


def _field(record: Record, name: str) -> Any:
    if isinstance(record, Mapping):
        return record.get(name)
    return getattr(record, name, None)


def _facet_label(value: str, count: int) -> str:
    noun = "building" if count == 1 else "buildings"
    return f"{value} ({count} {noun})"


def create_suggestions(query: str, metadata: SearchMetadata, records: Iterable[Record] = (),
                       limit: int = MAX_SUGGESTIONS) -> List[Suggestion]:
    """
    Compose suggestions for a partial query.

    Order: up to 3 building names, then up to 2 architects, 2 styles and 2
    cities from the facet vocabulary, truncated to ``limit``. Matching is
    normalized substring containment. A blank query yields no suggestions.
    """
    needle = normalize_text(query)
    if not needle:
        return []

    suggestions: List[Suggestion] = []
    seen: Set[Tuple[SuggestionKind, str]] = set()

    def add(suggestion: Suggestion) -> None:
        key = (suggestion.kind, normalize_text(suggestion.value))
        if key not in seen:
            seen.add(key)
            suggestions.append(suggestion)

    buildings = [r for r in records if needle in normalize_text(_field(r, "name") or "")]
    for record in buildings[:BUILDING_LIMIT]:
        add(Suggestion(
            kind=SuggestionKind.building,
            value=_field(record, "name"),
            label=_field(record, "name"),
            record_id=_field(record, "id"),
            distance_km=_field(record, "distance_km"),
        ))

    for kind, attr, cap in FACET_LIMITS:
        facets: List[Facet] = getattr(metadata, attr)
        for facet in [f for f in facets if needle in normalize_text(f.value)][:cap]:
            add(Suggestion(kind=kind, value=facet.value, label=_facet_label(facet.value, facet.count),
                           count=facet.count))

    return suggestions[:limit]


class SuggestionService:
    def __init__(self, repo: BuildingsRepository, aggregator: MetadataAggregator,
                 limit: int = MAX_SUGGESTIONS):
        self.repo = repo
        self.aggregator = aggregator
        self.limit = limit

    def suggest(self, query: str) -> List[Suggestion]:
        if not normalize_text(query):
            return []
        records = self.repo.top_records(query, limit=TOP_RECORDS)
        metadata = self.aggregator.get(self.repo)
        return create_suggestions(query, metadata, records, limit=self.limit)
