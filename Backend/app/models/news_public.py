from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class NewsItem(BaseModel):
    """Public-facing news article payload."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    title: str
    url: str = Field(description="Feed link; Google News links are tracking redirects.")
    published_at: Optional[datetime] = None
    source: str
    snippet: str = ""
    source_url: str = ""
    publisher_url: str = ""
    publisher_domain: str = ""


class SearchResponse(BaseModel):
    """Response for GET /search."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    ok: bool = True
    results: List[NewsItem]
    rss_url: str
