from enum import StrEnum


class SortMode(StrEnum):
    relevance = "relevance"
    rating    = "rating"
    year      = "year"
    name      = "name"
    distance  = "distance"
    recent    = "recent"

    def label(self) -> str:
        return {
            SortMode.relevance: "By relevance",
            SortMode.rating:    "By rating",
            SortMode.year:      "By construction year",
            SortMode.name:      "Alphabetically",
            SortMode.distance:  "By distance",
            SortMode.recent:    "Recently added",
        }[self]


class SuggestionKind(StrEnum):
    building  = "building"
    architect = "architect"
    style     = "style"
    city      = "city"


class SearchStatus(StrEnum):
    idle         = "idle"
    pending      = "pending"
    loading_more = "loading_more"
    success      = "success"
    error        = "error"


class GeoErrorReason(StrEnum):
    permission_denied    = "permission_denied"
    position_unavailable = "position_unavailable"
    timeout              = "timeout"
    unsupported          = "unsupported"
