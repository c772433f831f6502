"""
Publisher link resolver for Google News items.

Google News wraps every article link in a news.google.com tracking URL. The
resolver follows that URL and reports where it finally lands. It never raises:
any failure (timeout, network error, a redirect that stays on Google) yields an
empty PublisherLink, and the item is served without publisher fields.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import List, Optional, Sequence
from urllib.parse import urlparse

import httpx

from app.core.logging import get_logger

logger = get_logger().bind(module="redirect_resolver")

# Hosts known to wrap the real publisher link behind a redirect.
REDIRECT_HOSTS = frozenset({"news.google.com"})

DEFAULT_TIMEOUT_S = 4.5
DEFAULT_CONCURRENCY = 3
DEFAULT_USER_AGENT = "radar-operacional/1.0"


@dataclass(frozen=True)
class PublisherLink:
    publisher_url: str = ""
    publisher_domain: str = ""

    @property
    def resolved(self) -> bool:
        return bool(self.publisher_url)


EMPTY_LINK = PublisherLink()


def host_of(url: str) -> str:
    """Lowercase host of ``url`` (no port), or "" when it has none."""
    try:
        return (urlparse(url).hostname or "").lower()
    except ValueError:
        return ""


def publisher_domain(url: str) -> str:
    host = host_of(url)
    if host.startswith("www."):
        host = host[4:]
    return host


def is_redirect_host(url: str) -> bool:
    return host_of(url) in REDIRECT_HOSTS


async def _final_url(client: httpx.AsyncClient, url: str) -> str:
    # only the landing URL matters; the publisher page body is never read
    async with client.stream("GET", url, follow_redirects=True) as response:
        return str(response.url)


async def _follow(client: httpx.AsyncClient, url: str, timeout_s: float) -> str:
    return await asyncio.wait_for(_final_url(client, url), timeout=timeout_s)


async def resolve_publisher(
    url: str,
    *,
    client: Optional[httpx.AsyncClient] = None,
    timeout_s: float = DEFAULT_TIMEOUT_S,
    user_agent: str = DEFAULT_USER_AGENT,
) -> PublisherLink:
    """
    Return the publisher URL/domain behind ``url``.

    Non-redirect hosts come back unchanged without any network call.
    """
    url = (url or "").strip()
    if not url:
        return EMPTY_LINK
    if not is_redirect_host(url):
        domain = publisher_domain(url)
        return PublisherLink(url, domain) if domain else EMPTY_LINK

    try:
        if client is not None:
            final_url = await _follow(client, url, timeout_s)
        else:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(timeout_s),
                headers={"User-Agent": user_agent},
            ) as own_client:
                final_url = await _follow(own_client, url, timeout_s)
    except (httpx.HTTPError, httpx.InvalidURL, asyncio.TimeoutError) as exc:
        logger.debug("publisher_resolve_failed", url=url[:100], error=exc.__class__.__name__)
        return EMPTY_LINK

    if is_redirect_host(final_url):
        # still on Google: the wrapper did not redirect (or looped)
        logger.debug("publisher_resolve_unresolved", url=url[:100])
        return EMPTY_LINK
    domain = publisher_domain(final_url)
    if not domain:
        return EMPTY_LINK
    return PublisherLink(final_url, domain)


async def resolve_many(
    urls: Sequence[str],
    *,
    concurrency: int = DEFAULT_CONCURRENCY,
    timeout_s: float = DEFAULT_TIMEOUT_S,
    user_agent: str = DEFAULT_USER_AGENT,
) -> List[PublisherLink]:
    """
    Resolve ``urls`` with at most ``concurrency`` requests in flight.
    Result i belongs to urls[i] regardless of completion order.
    """
    sem = asyncio.Semaphore(max(1, concurrency))

    async with httpx.AsyncClient(
        timeout=httpx.Timeout(timeout_s),
        headers={"User-Agent": user_agent},
    ) as client:

        async def _one(u: str) -> PublisherLink:
            async with sem:
                return await resolve_publisher(u, client=client, timeout_s=timeout_s)

        return list(await asyncio.gather(*(_one(u) for u in urls)))
