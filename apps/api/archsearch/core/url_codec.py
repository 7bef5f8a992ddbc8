"""
Shareable search links.

Maps ``(q, FilterState)`` to a flat string-keyed parameter set and back.
Fields at their default value are left out; a missing key decodes to the
default. Key names and value formats (comma-joined lists, ``true``/``false``)
are the compatibility surface for bookmarked links. Inside a list value,
``%`` and ``,`` are percent-escaped.
"""

from typing import Any, Callable, Dict, FrozenSet, Mapping, Tuple
from urllib.parse import unquote

from pydantic import ValidationError

from archsearch.core.enums import SortMode
from archsearch.core.logger import get_logger
from archsearch.schemas.filters import (
    YEAR_MAX_SENTINEL,
    YEAR_MIN_SENTINEL,
    FilterState,
    Location,
)

logger = get_logger(__name__)

LIST_KEYS = {
    "styles": "styles",
    "architects": "architects",
    "cities": "cities",
    "accessibility": "accessibility",
}


def _escape(value: str) -> str:
    return value.replace("%", "%25").replace(",", "%2C")


def _split(raw: str) -> FrozenSet[str]:
    """Comma-separated values; each value is unescaped after splitting."""
    return frozenset(unquote(v) for v in raw.split(",") if v.strip())


def _number(value: float) -> str:
    value = float(value)
    return str(int(value)) if value.is_integer() else repr(value)


def _boolean(raw: str) -> bool:
    lowered = raw.strip().lower()
    if lowered not in ("true", "false"):
        raise ValueError(f"not a boolean: {raw!r}")
    return lowered == "true"


def encode(q: str, filters: FilterState) -> Dict[str, str]:
    params: Dict[str, str] = {}
    if q and q.strip():
        params["q"] = q.strip()

    non_default = filters.non_default_fields()
    for field, key in LIST_KEYS.items():
        if field in non_default:
            params[key] = ",".join(_escape(v) for v in sorted(non_default[field]))
    if "year_range" in non_default:
        low, high = filters.year_range
        if low > YEAR_MIN_SENTINEL:
            params["year_from"] = str(low)
        if high < YEAR_MAX_SENTINEL:
            params["year_to"] = str(high)
    if "min_rating" in non_default:
        params["min_rating"] = _number(filters.min_rating)
    if "has_photo" in non_default:
        params["has_photo"] = str(filters.has_photo).lower()
    if "has_audio" in non_default:
        params["has_audio"] = str(filters.has_audio).lower()
    if "sort_by" in non_default:
        params["sort"] = filters.sort_by.value
    if "near_me" in non_default:
        params["near_me"] = "true"
    if "search_in_reviews" in non_default:
        params["search_reviews"] = "true"
    if "max_distance_km" in non_default:
        params["max_distance"] = _number(filters.max_distance_km)
    if "user_location" in non_default:
        params["lat"] = _number(filters.user_location.latitude)
        params["lon"] = _number(filters.user_location.longitude)
    return params


def _read(params: Mapping[str, str], key: str, parse: Callable[[str], Any], fields: Dict[str, Any],
          field: str) -> None:
    raw = params.get(key)
    if raw is None or raw == "":
        return
    try:
        fields[field] = parse(raw)
    except ValueError:
        logger.debug("Ignoring malformed %s=%r in search link", key, raw)


def decode(params: Mapping[str, str]) -> Tuple[str, FilterState]:
    """Inverse of ``encode``; malformed values fall back to the field default."""
    q = (params.get("q") or "").strip()
    fields: Dict[str, Any] = {}

    for field, key in LIST_KEYS.items():
        _read(params, key, _split, fields, field)

    bounds: Dict[str, Any] = {}
    _read(params, "year_from", int, bounds, "low")
    _read(params, "year_to", int, bounds, "high")
    if bounds:
        low = bounds.get("low", YEAR_MIN_SENTINEL)
        high = bounds.get("high", YEAR_MAX_SENTINEL)
        if low <= high:
            fields["year_range"] = (low, high)
        else:
            logger.debug("Ignoring inverted year range %s..%s in search link", low, high)

    _read(params, "min_rating", float, fields, "min_rating")
    _read(params, "has_photo", _boolean, fields, "has_photo")
    _read(params, "has_audio", _boolean, fields, "has_audio")
    _read(params, "sort", SortMode, fields, "sort_by")
    _read(params, "near_me", _boolean, fields, "near_me")
    _read(params, "search_reviews", _boolean, fields, "search_in_reviews")
    _read(params, "max_distance", float, fields, "max_distance_km")

    coords: Dict[str, Any] = {}
    _read(params, "lat", float, coords, "latitude")
    _read(params, "lon", float, coords, "longitude")
    if len(coords) == 2:
        try:
            fields["user_location"] = Location(**coords)
        except ValidationError:
            logger.debug("Ignoring out-of-range coordinates %s in search link", coords)

    # Drop individually invalid values (e.g. min_rating=9) rather than the whole link
    for field in list(fields):
        try:
            FilterState(**{field: fields[field]})
        except ValidationError:
            logger.debug("Ignoring invalid %s=%r in search link", field, fields[field])
            del fields[field]
    return q, FilterState(**fields)
