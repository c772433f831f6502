from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.models.news_public import SearchResponse
from services.search_service import SearchService, get_search_service, parse_sites

router = APIRouter(tags=["search"])


@router.get("/search", response_model=SearchResponse)
async def search(
    q: str = Query("", max_length=300, description="Free-text query."),
    sites: str = Query("", description="Comma separated domains, e.g. g1.globo.com,odia.ig.com.br"),
    resolve: Optional[bool] = Query(
        default=None,
        description="Resolve Google redirect links to publisher URLs (default from settings).",
    ),
    service: SearchService = Depends(get_search_service),
) -> SearchResponse:
    result = await service.search(q, parse_sites(sites), resolve=resolve)
    return SearchResponse(results=result.items, rss_url=result.rss_url)
