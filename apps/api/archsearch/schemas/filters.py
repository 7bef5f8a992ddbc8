"""
Filter state for a search session.

``FilterState`` is immutable: every update produces a new, re-validated
instance (see ``FilterState.updated``). What counts as a field's default
is decided in one place, ``is_default``. The history store, the URL codec
and the active filter count all rely on it.
"""

from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from archsearch.core.enums import SortMode

YEAR_MIN_SENTINEL = 0
YEAR_MAX_SENTINEL = 3000
DEFAULT_MAX_DISTANCE_KM = 10.0

ACCESSIBILITY_OPTIONS: Dict[str, str] = {
    "wheelchair": "Wheelchair accessible",
    "blind": "Accessible for visually impaired",
    "deaf": "Accessible for hearing impaired",
    "limited_mobility": "Limited mobility",
    "elevator": "Has elevator",
    "ramp": "Has ramp",
    "parking": "Accessible parking",
}

SORT_OPTIONS: List[Dict[str, str]] = [{"value": m.value, "label": m.label()} for m in SortMode]

# Not counted as filters on their own: they only parameterize near_me.
_GEO_PARAMETERS = ("max_distance_km", "user_location")


class Location(BaseModel):
    model_config = ConfigDict(frozen=True)

    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class FilterState(BaseModel):
    model_config = ConfigDict(frozen=True)

    styles: FrozenSet[str] = frozenset()
    architects: FrozenSet[str] = frozenset()
    cities: FrozenSet[str] = frozenset()
    year_range: Tuple[int, int] = (YEAR_MIN_SENTINEL, YEAR_MAX_SENTINEL)
    min_rating: float = Field(default=0.0, ge=0, le=5)
    has_photo: Optional[bool] = None
    has_audio: Optional[bool] = None
    accessibility: FrozenSet[str] = frozenset()
    sort_by: SortMode = SortMode.relevance
    near_me: bool = False
    search_in_reviews: bool = False
    max_distance_km: float = Field(default=DEFAULT_MAX_DISTANCE_KM, gt=0)
    user_location: Optional[Location] = None

    @field_validator("styles", "architects", "cities", "accessibility", mode="before")
    @classmethod
    def _strip_values(cls, value: Any) -> Any:
        if value is None:
            return frozenset()
        if isinstance(value, str):
            value = value.split(",")
        return frozenset(v.strip() for v in value if v and v.strip())

    @model_validator(mode="after")
    def _check_year_range(self) -> "FilterState":
        low, high = self.year_range
        if low > high:
            raise ValueError(f"year_range minimum {low} exceeds maximum {high}")
        return self

    def updated(self, **changes: Any) -> "FilterState":
        """Return a new validated state with ``changes`` applied."""
        data = self.model_dump()
        data.update(changes)
        return FilterState.model_validate(data)

    def non_default_fields(self) -> Dict[str, Any]:
        return {
            name: getattr(self, name)
            for name in type(self).model_fields
            if not is_default(name, getattr(self, name))
        }

    def is_pristine(self) -> bool:
        return not self.non_default_fields()

    @property
    def geo_active(self) -> bool:
        return self.near_me and self.user_location is not None

    @property
    def effective_sort(self) -> SortMode:
        """Distance ordering degrades to name ordering without a position."""
        if self.sort_by == SortMode.distance and not self.geo_active:
            return SortMode.name
        return self.sort_by


FIELD_DEFAULTS: Dict[str, Any] = {
    name: field.get_default(call_default_factory=True)
    for name, field in FilterState.model_fields.items()
}


def is_default(field: str, value: Any) -> bool:
    """Whether ``value`` is the default for filter ``field``."""
    if field not in FIELD_DEFAULTS:
        raise KeyError(f"unknown filter field: {field}")
    default = FIELD_DEFAULTS[field]
    if isinstance(default, frozenset):
        return not value
    if field == "year_range":
        low, high = value
        return low <= YEAR_MIN_SENTINEL and high >= YEAR_MAX_SENTINEL
    if field in ("min_rating", "max_distance_km"):
        return float(value) == float(default)
    return value == default


def active_filters_count(filters: FilterState) -> int:
    """Number of filters that narrow or reorder the result set."""
    return sum(1 for name in filters.non_default_fields() if name not in _GEO_PARAMETERS)


def reset_filters() -> FilterState:
    return FilterState()
