"""
Explicit wiring of agents, services and pipelines.

A registry is built once per process run and handed to the pipeline as its
step context and to the task adapter. Lookups are read-only.
"""

from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional

import httpx
import structlog

from weather_eval.config.settings import Settings
from weather_eval.errors import ServiceNotFoundError
from weather_eval.generation.agents import ChatAgent, OpenAIChatAgent
from weather_eval.services.open_meteo import ForecastClient, GeocodingClient, build_http_client

logger = structlog.get_logger(__name__)

CITY_TRANSLATOR_AGENT = "cityTranslatorAgent"
WEATHER_AGENT = "weatherAgent"

CITY_TRANSLATOR_INSTRUCTIONS = """
You convert a place name into its English ASCII spelling.
Rules:
- Reply with the place name only, no punctuation or explanation.
- Remove accents and diacritical marks (São Paulo -> Sao Paulo).
- If the name is already English, return it unchanged.
- If unsure, return the input unchanged.
"""

WEATHER_AGENT_INSTRUCTIONS = """
You are a weather assistant that suggests activities based on a forecast.
- Include precipitation chance, temperature range and notable conditions.
- Be concise but informative.
- Follow any output format the user requests.
"""


class ServiceRegistry:
    """
    Named agents, services and pipelines for one process run.

    Example:
        >>> async with build_registry(settings) as registry:
        ...     pipeline = registry.get_pipeline("weather-workflow")
        ...     run = await pipeline.run({"city": "Tokyo"}, registry)
    """

    def __init__(
        self,
        agents: Optional[Mapping[str, ChatAgent]] = None,
        services: Optional[Mapping[str, Any]] = None,
        pipelines: Optional[Mapping[str, Any]] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self._agents: Dict[str, ChatAgent] = dict(agents or {})
        self._services: Dict[str, Any] = dict(services or {})
        self._pipelines: Dict[str, Any] = dict(pipelines or {})
        self._http_client = http_client

    @property
    def agents(self) -> Mapping[str, ChatAgent]:
        return MappingProxyType(self._agents)

    @property
    def pipelines(self) -> Mapping[str, Any]:
        return MappingProxyType(self._pipelines)

    def has_agent(self, name: str) -> bool:
        return name in self._agents

    def get_agent(self, name: str) -> ChatAgent:
        try:
            return self._agents[name]
        except KeyError:
            raise ServiceNotFoundError("agent", name) from None

    def unavailable_agents(self) -> List[str]:
        """Names of registered agents that cannot currently be called."""
        return sorted(name for name, agent in self._agents.items() if not agent.is_available())

    def get_service(self, name: str) -> Any:
        try:
            return self._services[name]
        except KeyError:
            raise ServiceNotFoundError("service", name) from None

    def get_pipeline(self, name: str) -> Any:
        try:
            return self._pipelines[name]
        except KeyError:
            raise ServiceNotFoundError("pipeline", name) from None

    async def aclose(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self) -> "ServiceRegistry":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()


def build_default_agents(settings: Settings) -> Dict[str, ChatAgent]:
    """OpenAI-backed translator and weather agents."""
    return {
        CITY_TRANSLATOR_AGENT: OpenAIChatAgent(
            "City Translator Agent", CITY_TRANSLATOR_INSTRUCTIONS.strip(), settings.llm
        ),
        WEATHER_AGENT: OpenAIChatAgent(
            "Weather Agent", WEATHER_AGENT_INSTRUCTIONS.strip(), settings.llm
        ),
    }


def build_registry(
    settings: Optional[Settings] = None,
    agents: Optional[Mapping[str, ChatAgent]] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> ServiceRegistry:
    """
    Wire the weather pipeline and its collaborators.

    Args:
        settings: Application settings; defaults when omitted
        agents: Agents by name; OpenAI agents are built when omitted
        http_client: Shared HTTP client; built from settings when omitted

    Returns:
        ServiceRegistry owning the HTTP client
    """
    # imported here to avoid a cycle: the weather steps use the registry names
    from weather_eval.weather.workflow import build_weather_pipeline

    settings = settings or Settings()
    if agents is None:
        agents = build_default_agents(settings)
    client = http_client or build_http_client(settings.open_meteo)

    pipeline = build_weather_pipeline()
    registry = ServiceRegistry(
        agents=agents,
        services={
            "geocoder": GeocodingClient(client, settings.open_meteo),
            "forecast": ForecastClient(client, settings.open_meteo),
        },
        pipelines={pipeline.id: pipeline},
        http_client=client,
    )
    logger.info("registry_built", agents=sorted(agents), pipelines=[pipeline.id])
    return registry
