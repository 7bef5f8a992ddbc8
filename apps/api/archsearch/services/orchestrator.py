"""
Client-side search session.

``SearchOrchestrator`` owns the current query and FilterState, the result
buffer and the pagination cursor for one user session. It debounces
keystrokes on two independent channels (primary search and suggestions).

Overlapping completions are resolved with generation numbers: every
primary search takes a new generation, and a completion only mutates the
session if its generation is still current. A superseded request is
never aborted, its result is just ignored.
"""

import asyncio
from typing import Awaitable, Callable, Dict, List, Mapping, Optional, Protocol, Set, Tuple

from archsearch.core.config import ArchsearchSettings, get_settings
from archsearch.core.enums import GeoErrorReason, SearchStatus, SortMode
from archsearch.core.exceptions import ArchsearchError, GeolocationError
from archsearch.core.geo import LocationProvider, annotate_distances, apply_geo_filter
from archsearch.core.logger import get_logger
from archsearch.core.pagination import compute_has_more
from archsearch.core.text import normalize_text
from archsearch.core.url_codec import decode, encode
from archsearch.schemas.filters import FilterState, active_filters_count, reset_filters
from archsearch.schemas.search_response import BuildingHit, Hits, SearchMetadata, Suggestion
from archsearch.services.history import FileStorage, HistoryEntry, KeyValueStorage, SearchHistoryStore
from archsearch.services.suggestions import MAX_SUGGESTIONS, TOP_RECORDS, create_suggestions

logger = get_logger(__name__)

Action = Callable[[], Awaitable[None]]


class SearchBackend(Protocol):
    """Data access used by the orchestrator; failures raise ``ArchsearchError``."""

    async def search(self, q: str, filters: FilterState, page: int, page_size: int) -> Hits: ...

    async def top_records(self, q: str, limit: int) -> List[BuildingHit]: ...

    async def metadata(self, refresh: bool = False) -> SearchMetadata: ...


class Debouncer:
    """Runs the most recently scheduled action once ``delay`` seconds pass quietly.

    Rescheduling cancels a pending timer. An action that has already started
    is left running.
    """

    def __init__(self, delay: float):
        self.delay = delay
        self._timer: Optional[asyncio.Task] = None
        self._running: Set[asyncio.Task] = set()

    @property
    def scheduled(self) -> bool:
        return self._timer is not None and not self._timer.done()

    def schedule(self, action: Action) -> None:
        self.cancel()
        self._timer = asyncio.get_running_loop().create_task(self._fire(action))

    def cancel(self) -> None:
        if self.scheduled:
            self._timer.cancel()
        self._timer = None

    async def _fire(self, action: Action) -> None:
        await asyncio.sleep(self.delay)
        task = asyncio.get_running_loop().create_task(action())
        self._running.add(task)
        task.add_done_callback(self._running.discard)

    async def wait(self) -> None:
        """Wait until no timer is pending and every fired action has finished."""
        while True:
            pending = [t for t in self._running if not t.done()]
            if self.scheduled:
                pending.append(self._timer)
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    def close(self) -> None:
        self.cancel()
        for task in list(self._running):
            task.cancel()
        self._running.clear()


class SearchOrchestrator:
    """Stateful controller for one search session."""

    def __init__(
        self,
        backend: SearchBackend,
        *,
        history: Optional[SearchHistoryStore] = None,
        page_size: int = 20,
        search_delay: float = 0.3,
        suggest_delay: float = 0.15,
        suggestion_limit: int = MAX_SUGGESTIONS,
        initial_query: str = "",
        initial_filters: Optional[FilterState] = None,
    ) -> None:
        self.backend = backend
        self.history = history or SearchHistoryStore(storage=None)
        self.page_size = page_size
        self.suggestion_limit = suggestion_limit

        # search state
        self.query = initial_query
        self.filters = initial_filters or FilterState()
        self.status = SearchStatus.idle
        self.error: Optional[str] = None

        # result buffer and pagination
        self.results: List[BuildingHit] = []
        self.total_count = 0
        self.page = 0
        self.has_more = False

        # autocomplete
        self.suggestions: List[Suggestion] = []
        self.suggestions_loading = False

        self.metadata = SearchMetadata()
        self.geo_error: Optional[GeoErrorReason] = None

        self._search = Debouncer(search_delay)
        self._suggest = Debouncer(suggest_delay)
        self._generation = 0
        self._suggest_generation = 0
        self._settled: Optional[Tuple[str, FilterState]] = None
        self._seen_ids: Set[str] = set()

    @classmethod
    def from_settings(cls, backend: SearchBackend, settings: Optional[ArchsearchSettings] = None,
                      storage: Optional[KeyValueStorage] = None, **kwargs) -> "SearchOrchestrator":
        settings = settings or get_settings()
        if storage is None and settings.history_dir:
            storage = FileStorage(settings.history_dir)
        return cls(
            backend,
            history=SearchHistoryStore(storage, limit=settings.history_limit),
            page_size=settings.page_size,
            search_delay=settings.search_debounce_ms / 1000,
            suggest_delay=settings.suggest_debounce_ms / 1000,
            suggestion_limit=settings.suggestion_limit,
            **kwargs,
        )

    @classmethod
    def from_url(cls, backend: SearchBackend, params: Mapping[str, str], **kwargs) -> "SearchOrchestrator":
        """Session restored from a shared search link."""
        q, filters = decode(params)
        return cls(backend, initial_query=q, initial_filters=filters, **kwargs)

    async def __aenter__(self) -> "SearchOrchestrator":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Derived views

    @property
    def url_params(self) -> Dict[str, str]:
        return encode(self.query, self.filters)

    @property
    def active_filters_count(self) -> int:
        return active_filters_count(self.filters)

    @property
    def search_history(self) -> List[HistoryEntry]:
        return self.history.entries()

    @property
    def loading(self) -> bool:
        return self.status in (SearchStatus.pending, SearchStatus.loading_more)

    # ------------------------------------------------------------------
    # Mutations

    def update_query(self, query: str) -> None:
        self.query = query
        self._search.schedule(self._run_search)
        if normalize_text(query):
            self._suggest.schedule(self._run_suggestions)
        else:
            self._suggest.cancel()
            self._suggest_generation += 1
            self.suggestions = []
            self.suggestions_loading = False

    def update_filters(self, **changes) -> None:
        self.filters = self.filters.updated(**changes)
        self._search.schedule(self._run_search)

    def clear_filters(self) -> None:
        self.filters = reset_filters()
        self._search.schedule(self._run_search)

    # ------------------------------------------------------------------
    # Lifecycle

    async def start(self) -> None:
        """Load the facet vocabulary, then run the initial search."""
        await self.load_metadata()
        await self.search_now()

    async def search_now(self) -> None:
        self._search.cancel()
        await self._run_search()

    async def refresh(self) -> None:
        await asyncio.gather(self.search_now(), self.load_metadata(refresh=True))

    async def load_metadata(self, refresh: bool = False) -> None:
        try:
            self.metadata = await self.backend.metadata(refresh=refresh)
        except ArchsearchError as e:
            logger.warning("Failed to load search metadata: %s", e.message)

    async def locate(self, provider: LocationProvider) -> bool:
        """Ask for the user's position and enable distance filtering."""
        try:
            location = await provider.locate()
        except GeolocationError as e:
            logger.warning("Geolocation failed (%s): %s", e.reason, e.message)
            self.geo_error = e.reason
            return False
        self.geo_error = None
        self.update_filters(user_location=location, near_me=True)
        return True

    async def wait_idle(self) -> None:
        await self._search.wait()
        await self._suggest.wait()

    def close(self) -> None:
        self._search.close()
        self._suggest.close()

    # ------------------------------------------------------------------
    # Primary search channel

    async def _run_search(self) -> None:
        self._generation += 1
        generation = self._generation
        query, filters = self.query, self.filters
        self.status = SearchStatus.pending
        self.error = None

        try:
            hits = await self.backend.search(query, filters, 1, self.page_size)
        except ArchsearchError as e:
            if generation != self._generation:
                logger.debug("Ignoring failure of superseded search %d", generation)
                return
            logger.warning("Search failed: %s", e.message)
            self.results, self.total_count, self.page, self.has_more = [], 0, 0, False
            self._seen_ids = set()
            self._settled = None
            self.status = SearchStatus.error
            self.error = e.message
            return

        if generation != self._generation:
            logger.debug("Discarding stale results of search %d (current %d)", generation, self._generation)
            return

        self._seen_ids = set()
        self.results = self._accept([], hits.items, filters)
        self.total_count = hits.total
        self.page = 1
        self.has_more = compute_has_more(len(hits.items), 1, self.page_size, hits.total)
        self._settled = (query, filters)
        self.status = SearchStatus.success
        self.history.record(query, filters)

    async def load_more(self) -> bool:
        """Append the next page for the settled search. Returns False when rejected or stale."""
        if self.status != SearchStatus.success or not self.has_more or self._settled is None:
            return False
        if self._search.scheduled or self._settled != (self.query, self.filters):
            logger.debug("load_more rejected: a search for different filters is pending")
            return False

        generation = self._generation
        query, filters = self._settled
        next_page = self.page + 1
        self.status = SearchStatus.loading_more
        self.error = None

        try:
            hits = await self.backend.search(query, filters, next_page, self.page_size)
        except ArchsearchError as e:
            if generation != self._generation:
                return False
            logger.warning("Loading page %d failed: %s", next_page, e.message)
            # buffer and paging state are intact, so the same page can be retried
            self.status = SearchStatus.success
            self.error = e.message
            return False

        if generation != self._generation:
            logger.debug("Discarding page %d of superseded search %d", next_page, generation)
            return False

        self.results = self._accept(self.results, hits.items, filters)
        self.total_count = hits.total
        self.page = next_page
        self.has_more = compute_has_more(len(hits.items), next_page, self.page_size, hits.total)
        self.status = SearchStatus.success
        return True

    def _accept(self, buffer: List[BuildingHit], items: List[BuildingHit],
                filters: FilterState) -> List[BuildingHit]:
        fresh = []
        for item in apply_geo_filter(items, filters):
            if item.id not in self._seen_ids:
                self._seen_ids.add(item.id)
                fresh.append(item)
        merged = [*buffer, *fresh]
        if filters.geo_active and filters.sort_by == SortMode.distance:
            merged.sort(key=lambda item: item.distance_km)
        return merged

    # ------------------------------------------------------------------
    # Suggestion channel

    async def _run_suggestions(self) -> None:
        self._suggest_generation += 1
        generation = self._suggest_generation
        query = self.query
        self.suggestions_loading = True

        try:
            records = await self.backend.top_records(query, TOP_RECORDS)
        except ArchsearchError as e:
            logger.warning("Failed to load suggestions: %s", e.message)
            return
        finally:
            if generation == self._suggest_generation:
                self.suggestions_loading = False

        if generation != self._suggest_generation:
            return
        if self.filters.geo_active:
            records = annotate_distances(records, self.filters.user_location)
        self.suggestions = create_suggestions(query, self.metadata, records, limit=self.suggestion_limit)
