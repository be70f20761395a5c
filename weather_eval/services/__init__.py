from .open_meteo import (
    ForecastClient,
    ForecastSummary,
    GeocodingClient,
    Location,
    WEATHER_CONDITIONS,
    build_http_client,
    summarize_forecast,
    weather_condition,
)
from .registry import (
    CITY_TRANSLATOR_AGENT,
    WEATHER_AGENT,
    ServiceRegistry,
    build_default_agents,
    build_registry,
)

__all__ = [
    "CITY_TRANSLATOR_AGENT",
    "WEATHER_AGENT",
    "WEATHER_CONDITIONS",
    "ForecastClient",
    "ForecastSummary",
    "GeocodingClient",
    "Location",
    "ServiceRegistry",
    "build_default_agents",
    "build_http_client",
    "build_registry",
    "summarize_forecast",
    "weather_condition",
]
