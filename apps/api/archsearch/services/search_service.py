from archsearch.core.exceptions import InvalidFilterError
from archsearch.core.pagination import compute_has_more
from archsearch.repositories.buildings_repo import BuildingsRepository
from archsearch.schemas.filters import active_filters_count
from archsearch.schemas.search_request import SearchRequest
from archsearch.schemas.search_response import BuildingHit, Hits, SearchResponse

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

class SearchService:
    def __init__(self, repo: BuildingsRepository, default_page_size: int = DEFAULT_PAGE_SIZE,
                 max_page_size: int = MAX_PAGE_SIZE):
        self.repo = repo
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size

    def execute(self, req: SearchRequest) -> SearchResponse:
        """Execute search based on the request and return SearchResponse."""
        page = req.page.number
        page_size = req.page.size or self.default_page_size
        if page_size > self.max_page_size:
            raise InvalidFilterError(
                f"page size {page_size} exceeds maximum {self.max_page_size}",
                details={"max_page_size": self.max_page_size},
            )

        # Use repository for all data access
        items, total = self.repo.search_buildings(
            filters=req.filters,
            page=page,
            page_size=page_size,
            text_query=req.q,
        )

        return SearchResponse(
            hits=Hits(
                total=total,
                items=[BuildingHit(**item) for item in items],
                page=page,
                page_size=page_size,
                has_more=compute_has_more(len(items), page, page_size, total),
            ),
            active_filters=active_filters_count(req.filters),
        )
