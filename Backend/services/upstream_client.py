from __future__ import annotations

import asyncio
from typing import Any, Mapping, Optional

import httpx

from app.core.errors import ParseError, UpstreamError, UpstreamHttpError, UpstreamTimeoutError
from app.core.logging import get_logger

logger = get_logger()


class UpstreamClient:
    """
    Shared HTTP client for the outbound collaborators (feed, weather providers).

    Every attempt is bounded by ``timeout_s``; failed attempts are retried up to
    ``max_attempts`` in total with a fixed ``retry_pause_s`` in between. The last
    failure is raised as an UpstreamError subclass.
    """

    def __init__(
        self,
        *,
        label: str,
        user_agent: str,
        timeout_s: float = 8.0,
        max_attempts: int = 1,
        retry_pause_s: float = 0.25,
    ) -> None:
        self.label = label
        self.user_agent = user_agent
        self.timeout_s = timeout_s
        self.max_attempts = max(1, max_attempts)
        self.retry_pause_s = max(0.0, retry_pause_s)
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "UpstreamClient":
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout_s),
            headers={"User-Agent": self.user_agent},
            follow_redirects=True,
        )
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._client:
            await self._client.aclose()

    async def _attempt(
        self,
        url: str,
        params: Optional[Mapping[str, Any]],
        headers: Optional[Mapping[str, str]],
    ) -> httpx.Response:
        assert self._client is not None
        try:
            response = await asyncio.wait_for(
                self._client.get(url, params=params, headers=headers),
                timeout=self.timeout_s,
            )
        except (httpx.TimeoutException, asyncio.TimeoutError) as exc:
            raise UpstreamTimeoutError(f"{self.label}: tempo de resposta esgotado.") from exc
        except httpx.HTTPError as exc:
            raise UpstreamHttpError(
                f"{self.label}: falha de conexão.",
                details=exc.__class__.__name__,
            ) from exc
        if not response.is_success:
            raise UpstreamHttpError(
                f"{self.label} HTTP {response.status_code}",
                status=response.status_code,
                details=response.text,
            )
        return response

    async def fetch(
        self,
        url: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> httpx.Response:
        """
        GET ``url`` with the retry policy.

        Raises:
            UpstreamHttpError / UpstreamTimeoutError: when every attempt failed
        """
        if self._client is None:
            raise RuntimeError(f"{self.__class__.__name__} HTTP client not initialized")

        last_exc: Optional[UpstreamError] = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await self._attempt(url, params, headers)
            except UpstreamError as exc:
                last_exc = exc
                logger.warning(
                    "upstream_attempt_failed",
                    upstream=self.label,
                    attempt=attempt,
                    max_attempts=self.max_attempts,
                    error=exc.message,
                )
                if attempt < self.max_attempts:
                    await asyncio.sleep(self.retry_pause_s)

        assert last_exc is not None
        raise last_exc

    async def fetch_json(
        self,
        url: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        response = await self.fetch(url, params=params, headers={"Accept": "application/json"})
        try:
            return response.json()
        except ValueError as exc:
            raise ParseError(f"{self.label}: resposta JSON inválida.", details=response.text) from exc
