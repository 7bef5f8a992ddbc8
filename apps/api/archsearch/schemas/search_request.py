from pydantic import BaseModel, Field
from typing import Optional

from archsearch.schemas.filters import FilterState

class PageSpec(BaseModel):
    number: int = Field(default=1, ge=1)
    size: Optional[int] = Field(default=None, ge=1)

class SearchRequest(BaseModel):
    q: str = ""
    filters: FilterState = FilterState()
    page: PageSpec = PageSpec()
