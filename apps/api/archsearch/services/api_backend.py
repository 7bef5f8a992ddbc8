"""HTTP implementation of the orchestrator's search backend."""

from typing import Any, List

import httpx
from pydantic import TypeAdapter, ValidationError

from archsearch.core.exceptions import DataStoreError
from archsearch.core.logger import get_logger
from archsearch.schemas.filters import FilterState
from archsearch.schemas.search_request import PageSpec, SearchRequest
from archsearch.schemas.search_response import BuildingHit, Hits, SearchMetadata, SearchResponse

logger = get_logger(__name__)

_records_adapter = TypeAdapter(List[BuildingHit])


class ApiSearchBackend:
    """
    Talks to the search API over an ``httpx.AsyncClient``.

    The client is owned by the caller; transport, status and payload
    failures all surface as ``DataStoreError``.
    """

    def __init__(self, client: httpx.AsyncClient, prefix: str = "/api/v1"):
        self.client = client
        self.prefix = prefix.rstrip("/")

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        url = f"{self.prefix}{path}"
        try:
            response = await self.client.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            detail = _detail(e.response)
            logger.warning("%s %s returned %d: %s", method, url, e.response.status_code, detail)
            raise DataStoreError(
                detail or "Search error: request failed",
                details={"status_code": e.response.status_code},
            ) from e
        except httpx.HTTPError as e:
            logger.warning("%s %s failed: %s", method, url, e)
            raise DataStoreError("Search error: service unreachable", details={"error": str(e)}) from e
        return response.json()

    async def search(self, q: str, filters: FilterState, page: int, page_size: int) -> Hits:
        body = SearchRequest(q=q, filters=filters, page=PageSpec(number=page, size=page_size))
        payload = await self._request("POST", "/search", json=body.model_dump(mode="json"))
        try:
            return SearchResponse.model_validate(payload).hits
        except ValidationError as e:
            raise DataStoreError("Search error: malformed response", details={"error": str(e)}) from e

    async def top_records(self, q: str, limit: int) -> List[BuildingHit]:
        payload = await self._request("GET", "/search/records", params={"q": q, "limit": limit})
        try:
            return _records_adapter.validate_python(payload)
        except ValidationError as e:
            raise DataStoreError("Search error: malformed response", details={"error": str(e)}) from e

    async def metadata(self, refresh: bool = False) -> SearchMetadata:
        params = {"refresh": "true"} if refresh else {}
        payload = await self._request("GET", "/search/metadata", params=params)
        try:
            return SearchMetadata.model_validate(payload)
        except ValidationError as e:
            raise DataStoreError("Search error: malformed response", details={"error": str(e)}) from e


def _detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict) and isinstance(body.get("detail"), str):
        return body["detail"]
    return response.text
