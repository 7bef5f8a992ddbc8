from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from archsearch.core.config import ArchsearchSettings
from archsearch.core.url_codec import decode
from archsearch.dependencies import get_app_settings, get_db, get_metadata_aggregator
from archsearch.repositories.buildings_repo import BuildingsRepository
from archsearch.schemas.search_request import PageSpec, SearchRequest
from archsearch.schemas.filters import ACCESSIBILITY_OPTIONS, SORT_OPTIONS
from archsearch.schemas.search_response import (
    BuildingHit,
    FilterOption,
    SearchMetadata,
    SearchOptions,
    SearchResponse,
    Suggestion,
)
from archsearch.services.metadata import MetadataAggregator
from archsearch.services.search_service import SearchService
from archsearch.services.suggestions import SuggestionService

router = APIRouter(prefix="/search", tags=["search"])

def _service(db: Session, settings: ArchsearchSettings) -> SearchService:
    repo = BuildingsRepository(db)
    return SearchService(repo=repo, default_page_size=settings.page_size,
                         max_page_size=settings.max_page_size)

@router.post("", response_model=SearchResponse)
def search_endpoint(body: SearchRequest, db: Session = Depends(get_db),
                    settings: ArchsearchSettings = Depends(get_app_settings)) -> SearchResponse:
    return _service(db, settings).execute(body)

@router.get("", response_model=SearchResponse)
def search_link_endpoint(request: Request,
                         page: int = Query(1, ge=1),
                         page_size: Optional[int] = Query(None, ge=1),
                         db: Session = Depends(get_db),
                         settings: ArchsearchSettings = Depends(get_app_settings)) -> SearchResponse:
    """Search from a shareable link: filters are read from URL-codec query params."""
    q, filters = decode(request.query_params)
    body = SearchRequest(q=q, filters=filters, page=PageSpec(number=page, size=page_size))
    return _service(db, settings).execute(body)

@router.get("/suggestions", response_model=List[Suggestion])
def suggestions_endpoint(q: str = "", db: Session = Depends(get_db),
                         aggregator: MetadataAggregator = Depends(get_metadata_aggregator),
                         settings: ArchsearchSettings = Depends(get_app_settings)) -> List[Suggestion]:
    svc = SuggestionService(BuildingsRepository(db), aggregator, limit=settings.suggestion_limit)
    return svc.suggest(q)

@router.get("/records", response_model=List[BuildingHit])
def records_endpoint(q: str = "", limit: int = Query(5, ge=1, le=50),
                     db: Session = Depends(get_db)) -> List[BuildingHit]:
    return [BuildingHit(**item) for item in BuildingsRepository(db).top_records(q, limit=limit)]

@router.get("/metadata", response_model=SearchMetadata)
def metadata_endpoint(refresh: bool = False, db: Session = Depends(get_db),
                      aggregator: MetadataAggregator = Depends(get_metadata_aggregator)) -> SearchMetadata:
    repo = BuildingsRepository(db)
    return aggregator.refresh(repo) if refresh else aggregator.get(repo)

@router.get("/options", response_model=SearchOptions)
def options_endpoint() -> SearchOptions:
    return SearchOptions(
        sort=[FilterOption(**option) for option in SORT_OPTIONS],
        accessibility=[FilterOption(value=value, label=label)
                       for value, label in ACCESSIBILITY_OPTIONS.items()],
    )
