"""Test configuration and fixtures."""

from typing import Any, Callable, Dict, Optional

import httpx
import pytest

from weather_eval.generation.agents import MockAgent
from weather_eval.services.registry import (
    CITY_TRANSLATOR_AGENT,
    WEATHER_AGENT,
    ServiceRegistry,
    build_registry,
)

GEOCODING = {
    "tokyo": {"name": "Tokyo", "latitude": 35.69, "longitude": 139.69},
    "paris": {"name": "Paris", "latitude": 48.85, "longitude": 2.35},
    "sao paulo": {"name": "São Paulo", "latitude": -23.55, "longitude": -46.63},
    "new york": {"name": "New York", "latitude": 40.71, "longitude": -74.01},
}

TRANSLATIONS = {
    "東京": "Tokyo",
    "São Paulo": "São Paulo",
    "New York": "New York",
}

ACTIVITIES_TEXT = "🌡️ WEATHER SUMMARY\n• Conditions: Clear sky\n\n🌅 MORNING ACTIVITIES\n• Walk along the river"


@pytest.fixture
def forecast_payload() -> Dict[str, Any]:
    """Raw forecast API response."""
    return {
        "current": {"time": "2024-05-01T09:00", "precipitation": 0.0, "weathercode": 0},
        "hourly": {
            "precipitation_probability": [10, 40, 25],
            "temperature_2m": [14.5, 21.0, 18.2],
        },
    }


@pytest.fixture
def open_meteo_handler(forecast_payload) -> Callable[[httpx.Request], httpx.Response]:
    """Routes geocoding and forecast requests to canned responses."""
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/search"):
            name = request.url.params.get("name", "").lower()
            result = GEOCODING.get(name)
            return httpx.Response(200, json={"results": [result]} if result else {})
        if request.url.path.endswith("/forecast"):
            return httpx.Response(200, json=forecast_payload)
        return httpx.Response(404)
    return handler


@pytest.fixture
def http_client(open_meteo_handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(open_meteo_handler))


def translate(prompt: str) -> str:
    city = prompt.rsplit("Place name:", 1)[-1].strip()
    return TRANSLATIONS.get(city, city) + "\nextra commentary"


@pytest.fixture
def agents() -> Dict[str, MockAgent]:
    return {
        CITY_TRANSLATOR_AGENT: MockAgent("City Translator Agent", translate),
        WEATHER_AGENT: MockAgent("Weather Agent", ACTIVITIES_TEXT),
    }


@pytest.fixture
def make_registry(http_client, agents) -> Callable[..., ServiceRegistry]:
    """Factory building a registry over mock HTTP and mock agents."""
    def factory(agents_override: Optional[Dict[str, MockAgent]] = None, client: Optional[httpx.AsyncClient] = None) -> ServiceRegistry:
        return build_registry(
            agents=agents if agents_override is None else agents_override,
            http_client=client or http_client,
        )
    return factory


@pytest.fixture
def registry(make_registry) -> ServiceRegistry:
    return make_registry()
