"""
HTTP surface: health, estágio, search, weather, CORS.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from app.config import Settings, clamp_estagio, get_settings
from app.core.errors import UpstreamTimeoutError
from app.main import app
from app.models.weather_public import WeatherReading
from services.search_service import SearchService, get_search_service
from services.weather_providers import ClimatempoProvider, OpenMeteoProvider
from services.weather_service import WeatherService, get_weather_service

client = TestClient(app)

RSS_RE = re.compile(r"https://news\.google\.com/rss/search\?.*")
OPEN_METEO_RE = re.compile(r"https://api\.open-meteo\.com/v1/forecast\?.*")

FEED = """<rss version="2.0"><channel><title>t</title>
<item>
  <title>Trânsito intenso na Ponte Rio-Niterói</title>
  <link>https://odia.ig.com.br/rio/ponte.html</link>
  <pubDate>Mon, 19 Oct 2026 09:15:00 GMT</pubDate>
  <description>Fila de 5 km &lt;b&gt;sentido Niterói&lt;/b&gt;</description>
  <source url="https://odia.ig.com.br">O Dia</source>
</item>
</channel></rss>"""


@pytest.fixture(autouse=True)
def _clear_overrides():
    yield
    app.dependency_overrides.clear()


def _use_settings(**values) -> Settings:
    settings = Settings(**values)
    app.dependency_overrides[get_settings] = lambda: settings
    return settings


def test_get_health_endpoint():
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["ok"] is True
    assert data["uptime"] >= 0
    assert response.headers["x-request-id"]


@pytest.mark.parametrize(
    "raw, expected",
    [("7", 5), ("0", 1), ("3", 3), (None, 2), ("abc", 2), ("4.0", 4), ("-2", 1)],
)
def test_clamp_estagio(raw, expected):
    assert clamp_estagio(raw) == expected


def test_estagio_is_clamped():
    _use_settings(ESTAGIO="7")

    response = client.get("/cor/estagio")

    assert response.status_code == 200
    assert response.json() == {"ok": True, "estagio": 5}


def test_search_endpoint(httpx_mock):
    service = SearchService(Settings(SEARCH_RESOLVE_PUBLISHERS=False))
    app.dependency_overrides[get_search_service] = lambda: service
    httpx_mock.add_response(url=RSS_RE, text=FEED)

    response = client.get("/search", params={"q": "trânsito", "sites": "odia.ig.com.br, www.g1.globo.com"})

    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True
    assert "site%3Aodia.ig.com.br+OR+site%3Ag1.globo.com" in body["rssUrl"]
    assert body["results"] == [
        {
            "title": "Trânsito intenso na Ponte Rio-Niterói",
            "url": "https://odia.ig.com.br/rio/ponte.html",
            "publishedAt": "2026-10-19T09:15:00Z",
            "source": "O Dia",
            "snippet": "Fila de 5 km sentido Niterói",
            "sourceUrl": "https://odia.ig.com.br",
            "publisherUrl": "",
            "publisherDomain": "",
        }
    ]


def test_search_endpoint_resolve_param_enables_direct_links(httpx_mock):
    service = SearchService(Settings(SEARCH_RESOLVE_PUBLISHERS=False))
    app.dependency_overrides[get_search_service] = lambda: service
    httpx_mock.add_response(url=RSS_RE, text=FEED)

    response = client.get("/search", params={"q": "ponte", "resolve": "true"})

    item = response.json()["results"][0]
    # not a Google redirect: nothing to follow, publisher fields stay empty
    assert (item["publisherUrl"], item["publisherDomain"]) == ("", "")
    assert len(httpx_mock.get_requests()) == 1


def test_search_upstream_failure_is_502(httpx_mock):
    service = SearchService(Settings())
    app.dependency_overrides[get_search_service] = lambda: service
    httpx_mock.add_response(url=RSS_RE, status_code=429, text="Too Many Requests")

    response = client.get("/search", params={"q": "trânsito"})

    assert response.status_code == 502
    assert response.json() == {
        "ok": False,
        "error": "Google News RSS HTTP 429",
        "details": "Too Many Requests",
    }


def test_weather_endpoint(httpx_mock):
    service = WeatherService(OpenMeteoProvider(Settings(WEATHER_RETRY_PAUSE_S=0)))
    app.dependency_overrides[get_weather_service] = lambda: service
    httpx_mock.add_response(
        url=OPEN_METEO_RE,
        json={
            "current": {"weather_code": 61, "temperature_2m": 20.5},
            "daily": {"temperature_2m_min": [18], "temperature_2m_max": [24]},
        },
    )

    response = client.get("/weather", params={"lat": -22.8776, "lon": -43.3043})

    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True
    assert body["cond"] == "Chuva"
    assert (body["min"], body["max"]) == (18, 24)
    assert body["place"] == "Água Santa • RJ"
    assert body["stale"] is False
    assert "error" not in body
    assert body["updatedAt"]


class _FailingAfterFirst:
    name = "flaky"

    def __init__(self) -> None:
        self.calls = 0

    async def fetch(self, request):
        self.calls += 1
        if self.calls == 1:
            return WeatherReading(
                place="Água Santa • RJ",
                condition="Nublado",
                min=19.0,
                max=26.0,
                updated_at=datetime(2026, 10, 19, 11, 0, tzinfo=timezone.utc),
            )
        raise UpstreamTimeoutError("Open-Meteo: tempo de resposta esgotado.")


def test_weather_serves_stale_after_failure():
    service = WeatherService(_FailingAfterFirst())
    app.dependency_overrides[get_weather_service] = lambda: service

    first = client.get("/weather").json()
    second = client.get("/weather")

    assert second.status_code == 200
    body = second.json()
    assert body["stale"] is True
    assert body["error"] == "Open-Meteo: tempo de resposta esgotado."
    assert (body["cond"], body["min"], body["max"]) == (first["cond"], first["min"], first["max"])


def test_weather_failure_without_cache_is_502(httpx_mock):
    service = WeatherService(OpenMeteoProvider(Settings(WEATHER_RETRY_PAUSE_S=0)))
    app.dependency_overrides[get_weather_service] = lambda: service
    httpx_mock.add_response(url=OPEN_METEO_RE, status_code=500, text="boom")
    httpx_mock.add_response(url=OPEN_METEO_RE, status_code=500, text="boom")

    response = client.get("/weather")

    assert response.status_code == 502
    assert response.json() == {"ok": False, "error": "Open-Meteo HTTP 500", "details": "boom"}


def test_weather_missing_token_is_500():
    service = WeatherService(ClimatempoProvider(Settings(WEATHER_PROVIDER="climatempo", CLIMATEMPO_TOKEN=None)))
    app.dependency_overrides[get_weather_service] = lambda: service

    response = client.get("/weather", params={"city": "Rio de Janeiro", "state": "RJ"})

    assert response.status_code == 500
    body = response.json()
    assert body["ok"] is False
    assert "CLIMATEMPO_TOKEN" in body["error"]


def test_invalid_params_are_422():
    response = client.get("/weather", params={"lat": "north"})

    assert response.status_code == 422
    assert response.json()["ok"] is False


def test_cors_allowed_origin():
    service = WeatherService(_FailingAfterFirst())
    app.dependency_overrides[get_weather_service] = lambda: service

    response = client.get("/weather", headers={"Origin": "https://lbarbosadeveloper.github.io"})

    assert response.headers["access-control-allow-origin"] == "https://lbarbosadeveloper.github.io"


def test_cors_preflight():
    response = client.options(
        "/search",
        headers={
            "Origin": "http://localhost:5500",
            "Access-Control-Request-Method": "GET",
        },
    )

    assert response.status_code in (200, 204)
    assert response.headers["access-control-allow-origin"] == "http://localhost:5500"


def test_cors_disallowed_origin():
    response = client.get("/health", headers={"Origin": "https://evil.example"})

    assert response.status_code == 200
    assert "access-control-allow-origin" not in response.headers


class _BrokenSearch:
    async def search(self, q, sites, *, resolve=None):
        raise RuntimeError("unexpected")


def test_unexpected_error_is_500_with_cors():
    app.dependency_overrides[get_search_service] = lambda: _BrokenSearch()
    lenient = TestClient(app, raise_server_exceptions=False)

    response = lenient.get(
        "/search",
        params={"q": "trânsito"},
        headers={"Origin": "https://lbarbosadeveloper.github.io"},
    )

    assert response.status_code == 500
    assert response.json() == {"ok": False, "error": "Erro interno."}
    assert response.headers["access-control-allow-origin"] == "https://lbarbosadeveloper.github.io"
