from datetime import datetime
from pydantic import BaseModel, Field
from typing import List, Optional, Tuple

from archsearch.core.enums import SuggestionKind

# Year range reported when no record carries a construction year
EMPTY_YEAR_MIN = 1000

class BuildingHit(BaseModel):
    id: str
    name: str
    architect: Optional[str] = None
    architectural_style: Optional[str] = None
    year_built: Optional[int] = None
    city: Optional[str] = None
    country: Optional[str] = None
    address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    image_url: Optional[str] = None
    rating: Optional[float] = None
    review_count: int = 0
    view_count: int = 0
    created_at: Optional[datetime] = None
    description: Optional[str] = None
    accessibility: List[str] = []
    distance_km: Optional[float] = None

class Hits(BaseModel):
    total: int
    items: List[BuildingHit]
    page: int
    page_size: int
    has_more: bool

class SearchResponse(BaseModel):
    hits: Hits
    active_filters: int = 0

class Facet(BaseModel):
    value: str
    count: int

class SearchMetadata(BaseModel):
    styles: List[Facet] = []
    architects: List[Facet] = []
    cities: List[Facet] = []
    accessibility: List[Facet] = []
    year_range: Tuple[int, int] = Field(default_factory=lambda: (EMPTY_YEAR_MIN, datetime.now().year))
    rating_range: Tuple[float, float] = (0, 5)
    audio_guides_count: int = 0
    total_reviews: int = 0

class Suggestion(BaseModel):
    kind: SuggestionKind
    value: str
    label: str
    count: Optional[int] = None
    record_id: Optional[str] = None
    distance_km: Optional[float] = None

class FilterOption(BaseModel):
    value: str
    label: str

class SearchOptions(BaseModel):
    """Fixed choices offered by the filter panel, independent of the data store."""
    sort: List[FilterOption]
    accessibility: List[FilterOption]
