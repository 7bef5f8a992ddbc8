from typing import Optional

from archsearch.core.exceptions import DataStoreError
from archsearch.core.logger import get_logger
from archsearch.repositories.buildings_repo import BuildingsRepository
from archsearch.schemas.search_response import SearchMetadata

logger = get_logger(__name__)


class MetadataAggregator:
    """
    Owns the facet vocabulary snapshot.

    Facets only drive filter options, so a stale snapshot is preferred to an
    empty one: a failed refresh keeps the previous snapshot.
    """

    def __init__(self) -> None:
        self._snapshot: Optional[SearchMetadata] = None

    @property
    def current(self) -> SearchMetadata:
        return self._snapshot if self._snapshot is not None else SearchMetadata()

    @property
    def loaded(self) -> bool:
        return self._snapshot is not None

    def refresh(self, repo: BuildingsRepository) -> SearchMetadata:
        try:
            facets = repo.compute_facets()
        except DataStoreError as e:
            logger.warning("Failed to load search metadata, keeping previous snapshot: %s", e.message)
            return self.current

        self._snapshot = SearchMetadata(**facets)
        logger.info(
            "Search metadata refreshed: %d styles, %d architects, %d cities",
            len(self._snapshot.styles), len(self._snapshot.architects), len(self._snapshot.cities),
        )
        return self._snapshot

    def get(self, repo: BuildingsRepository) -> SearchMetadata:
        """Current snapshot, computed on first use."""
        if self._snapshot is None:
            return self.refresh(repo)
        return self._snapshot
