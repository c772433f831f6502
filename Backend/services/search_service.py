"""
Google News RSS search service.

Builds a Google News search URL (user query AND an OR of site: filters),
fetches the feed, extracts items and optionally resolves each Google redirect
link to the real publisher. Nothing is stored.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional
from urllib.parse import urlencode

from app.config import Settings, get_settings
from app.core.logging import get_logger
from app.models.news_public import NewsItem
from services.feed_extractor import iter_feed_items
from services.redirect_resolver import is_redirect_host, resolve_many
from services.upstream_client import UpstreamClient

logger = get_logger().bind(module="search_service")

GOOGLE_NEWS_RSS_URL = "https://news.google.com/rss/search"

_SCHEME_RE = re.compile(r"^[a-z][a-z0-9+.-]*://", re.IGNORECASE)


def normalize_site(domain: str) -> str:
    """'https://www.G1.globo.com/rj/' → 'g1.globo.com'"""
    value = (domain or "").strip().lower()
    value = _SCHEME_RE.sub("", value)
    value = value.split("/", 1)[0].split("?", 1)[0].split("#", 1)[0]
    if value.startswith("www."):
        value = value[4:]
    return value.strip()


def parse_sites(raw: Optional[str]) -> List[str]:
    """Comma list → normalized, de-duplicated domains (order kept)."""
    sites: List[str] = []
    for part in (raw or "").split(","):
        site = normalize_site(part)
        if site and site not in sites:
            sites.append(site)
    return sites


def build_search_query(q: Optional[str], sites: Iterable[str] = (), *, default: str = "") -> str:
    query = (q or "").strip()
    site_expr = " OR ".join(f"site:{s}" for s in sites if s)
    if site_expr:
        return f"({query}) ({site_expr})" if query else f"({site_expr})"
    return query or default


def build_rss_url(query: str, *, language: str, country: str, edition: str) -> str:
    params = {"q": query, "hl": language, "gl": country, "ceid": edition}
    return f"{GOOGLE_NEWS_RSS_URL}?{urlencode(params)}"


@dataclass
class SearchResult:
    items: List[NewsItem]
    rss_url: str


class SearchService:
    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def rss_url_for(self, q: Optional[str], sites: Iterable[str]) -> str:
        query = build_search_query(q, sites, default=self.settings.SEARCH_DEFAULT_QUERY)
        return build_rss_url(
            query,
            language=self.settings.SEARCH_LANGUAGE,
            country=self.settings.SEARCH_COUNTRY,
            edition=self.settings.SEARCH_EDITION,
        )

    async def _fetch_feed(self, rss_url: str) -> bytes:
        # single attempt: search failures go straight back to the caller
        async with UpstreamClient(
            label="Google News RSS",
            user_agent=self.settings.USER_AGENT,
            timeout_s=self.settings.FEED_TIMEOUT_S,
            max_attempts=1,
        ) as client:
            response = await client.fetch(
                rss_url,
                headers={"Accept": "application/rss+xml, application/xml;q=0.9, */*;q=0.8"},
            )
        return response.content

    async def _attach_publishers(self, items: List[NewsItem]) -> List[NewsItem]:
        targets = [i for i, item in enumerate(items) if is_redirect_host(item.url)]
        if not targets:
            return items
        links = await resolve_many(
            [items[i].url for i in targets],
            concurrency=self.settings.RESOLVER_CONCURRENCY,
            timeout_s=self.settings.RESOLVER_TIMEOUT_S,
            user_agent=self.settings.USER_AGENT,
        )
        enriched = list(items)
        for i, link in zip(targets, links):
            enriched[i] = items[i].model_copy(
                update={"publisher_url": link.publisher_url, "publisher_domain": link.publisher_domain}
            )
        logger.info(
            "search_publishers_resolved",
            attempted=len(targets),
            resolved=sum(1 for link in links if link.resolved),
        )
        return enriched

    async def search(
        self,
        q: Optional[str],
        sites: Iterable[str] = (),
        *,
        resolve: Optional[bool] = None,
    ) -> SearchResult:
        """
        Run one Google News search.

        Raises:
            UpstreamHttpError / UpstreamTimeoutError: feed fetch failed
            FeedParseError: body was not a feed
        """
        rss_url = self.rss_url_for(q, list(sites))
        body = await self._fetch_feed(rss_url)
        items = list(iter_feed_items(body, limit=self.settings.SEARCH_MAX_ITEMS))

        if resolve is None:
            resolve = self.settings.SEARCH_RESOLVE_PUBLISHERS
        if resolve:
            items = await self._attach_publishers(items)

        logger.info("search_success", items_returned=len(items), resolve=resolve)
        return SearchResult(items=items, rss_url=rss_url)


# Global instance
_search_service: Optional[SearchService] = None


def get_search_service() -> SearchService:
    """Get or create the global search service instance."""
    global _search_service
    if _search_service is None:
        _search_service = SearchService(get_settings())
    return _search_service
