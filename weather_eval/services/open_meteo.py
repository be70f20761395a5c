"""
Clients for the Open-Meteo geocoding and forecast APIs.

Both clients share one ``httpx.AsyncClient``; transport-level retries are
configured on that client, not here.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx
import structlog

from weather_eval.config.settings import OpenMeteoSettings
from weather_eval.errors import LocationNotFoundError, WeatherServiceError

logger = structlog.get_logger(__name__)

# WMO weather interpretation codes
WEATHER_CONDITIONS: Dict[int, str] = {
    0: "Clear sky",
    1: "Mainly clear",
    2: "Partly cloudy",
    3: "Overcast",
    45: "Foggy",
    48: "Depositing rime fog",
    51: "Light drizzle",
    53: "Moderate drizzle",
    55: "Dense drizzle",
    61: "Slight rain",
    63: "Moderate rain",
    65: "Heavy rain",
    71: "Slight snow fall",
    73: "Moderate snow fall",
    75: "Heavy snow fall",
    95: "Thunderstorm",
}

UNKNOWN_CONDITION = "Unknown"


def weather_condition(code: Any) -> str:
    """Map a WMO weather code to a description; unknown codes map to "Unknown"."""
    try:
        return WEATHER_CONDITIONS.get(int(code), UNKNOWN_CONDITION)
    except (TypeError, ValueError):
        return UNKNOWN_CONDITION


@dataclass(frozen=True)
class Location:
    """A geocoded place."""
    name: str
    latitude: float
    longitude: float


@dataclass(frozen=True)
class ForecastSummary:
    """Forecast values derived from the raw hourly series."""
    max_temp: float
    min_temp: float
    precipitation_chance: float
    condition: str


def build_http_client(settings: Optional[OpenMeteoSettings] = None, **kwargs) -> httpx.AsyncClient:
    """Shared async HTTP client with retrying transport."""
    settings = settings or OpenMeteoSettings()
    transport = kwargs.pop("transport", None) or httpx.AsyncHTTPTransport(retries=settings.retries)
    return httpx.AsyncClient(transport=transport, timeout=settings.timeout, **kwargs)


async def _get_json(client: httpx.AsyncClient, url: str, params: Dict[str, Any]) -> Dict[str, Any]:
    try:
        response = await client.get(url, params=params)
        response.raise_for_status()
        return response.json()
    except httpx.HTTPStatusError as e:
        raise WeatherServiceError(
            f"{url} returned status {e.response.status_code}"
        ) from e
    except httpx.HTTPError as e:
        raise WeatherServiceError(f"Request to {url} failed: {e}") from e
    except ValueError as e:
        raise WeatherServiceError(f"{url} returned invalid JSON") from e


class GeocodingClient:
    """Resolves a place name to coordinates."""

    def __init__(self, client: httpx.AsyncClient, settings: Optional[OpenMeteoSettings] = None):
        self.client = client
        self.settings = settings or OpenMeteoSettings()

    async def search(self, name: str) -> Location:
        """
        Look up the best match for ``name``.

        Raises:
            LocationNotFoundError: If the service returns no results
            WeatherServiceError: On HTTP or payload errors
        """
        data = await _get_json(
            self.client,
            self.settings.geocoding_url,
            {"name": name, "count": 1, "language": "en"},
        )
        results = data.get("results") or []
        if not results:
            raise LocationNotFoundError(name)

        first = results[0]
        try:
            location = Location(
                name=str(first["name"]),
                latitude=float(first["latitude"]),
                longitude=float(first["longitude"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise WeatherServiceError(f"Malformed geocoding result for '{name}'") from e

        logger.debug("location_resolved", query=name, location=location.name)
        return location


class ForecastClient:
    """Fetches current conditions and the hourly forecast."""

    def __init__(self, client: httpx.AsyncClient, settings: Optional[OpenMeteoSettings] = None):
        self.client = client
        self.settings = settings or OpenMeteoSettings()

    async def fetch(self, latitude: float, longitude: float) -> Dict[str, Any]:
        return await _get_json(
            self.client,
            self.settings.forecast_url,
            {
                "latitude": latitude,
                "longitude": longitude,
                "current": "precipitation,weathercode",
                "timezone": "auto",
                "hourly": "precipitation_probability,temperature_2m",
            },
        )

    async def summary(self, latitude: float, longitude: float) -> ForecastSummary:
        return summarize_forecast(await self.fetch(latitude, longitude))


def summarize_forecast(data: Dict[str, Any]) -> ForecastSummary:
    """
    Derive the forecast summary from a raw forecast payload.

    ``max_temp``/``min_temp`` come from the hourly temperature series,
    ``precipitation_chance`` is the largest hourly probability (0 when
    there is none) and ``condition`` maps the current weather code.

    Raises:
        WeatherServiceError: If the payload has no temperature series
    """
    hourly = data.get("hourly") or {}
    temperatures: List[float] = [t for t in hourly.get("temperature_2m") or [] if t is not None]
    if not temperatures:
        raise WeatherServiceError("Forecast payload has no hourly temperatures")

    probabilities = [p for p in hourly.get("precipitation_probability") or [] if p is not None]
    current = data.get("current") or {}

    return ForecastSummary(
        max_temp=float(max(temperatures)),
        min_temp=float(min(temperatures)),
        precipitation_chance=float(max([0, *probabilities])),
        condition=weather_condition(current.get("weathercode")),
    )
