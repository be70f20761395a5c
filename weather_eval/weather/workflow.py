"""
Weather workflow: normalize city name -> fetch weather -> plan activities.
"""

import json
from datetime import datetime, timezone

import structlog
from pydantic import BaseModel, Field

from weather_eval.errors import ServiceNotFoundError, StepExecutionError
from weather_eval.generation.agents import drain_text, first_line, strip_diacritics
from weather_eval.pipeline import Pipeline, StepContext, create_step
from weather_eval.services.registry import CITY_TRANSLATOR_AGENT, WEATHER_AGENT

logger = structlog.get_logger(__name__)

WEATHER_PIPELINE_ID = "weather-workflow"
NORMALIZE_CITY = "normalize-city"
FETCH_WEATHER = "fetch-weather"
PLAN_ACTIVITIES = "plan-activities"


class CityInput(BaseModel):
    city: str = Field(description="The city to get the weather for")


class CityOutput(BaseModel):
    city: str


class Forecast(BaseModel):
    date: str
    max_temp: float
    min_temp: float
    precipitation_chance: float
    condition: str
    location: str
    weather_available: bool = Field(description="True when forecast data was retrieved")


class ActivitiesOutput(BaseModel):
    activities: str


def build_normalize_prompt(city: str) -> str:
    return (
        "Convert the place name to its English ASCII spelling. "
        "Reply with the place name only.\n"
        f"Place name: {city}"
    )


def build_activities_prompt(forecast: Forecast) -> str:
    """Prompt asking the weather agent for activity suggestions."""
    payload = json.dumps(forecast.model_dump(exclude={"weather_available"}), indent=2, ensure_ascii=False)
    return f"""Suggest activities in {forecast.location} based on the forecast below:
{payload}

Use this format:

📅 [Day and date]
═══════════════════════════

🌡️ WEATHER SUMMARY
• Conditions: [brief description]
• Temperature: [min/max °C]
• Precipitation: [X% chance]

🌅 MORNING ACTIVITIES
Outdoor:
• [Activity] - [short description with a specific place or route]
  Best timing: [time range]
  Note: [weather consideration]

🌞 AFTERNOON ACTIVITIES
Outdoor:
• [Activity] - [short description with a specific place or route]
  Best timing: [time range]
  Note: [weather consideration]

🏠 INDOOR ALTERNATIVES
• [Activity] - [specific venue]
  Ideal for: [weather trigger]

⚠️ SPECIAL CONSIDERATIONS
• [Weather warnings, UV index, wind, etc.]

Guidelines:
- 2-3 time-specific outdoor activities
- 1-2 indoor backup options
- Prefer indoor options when precipitation chance is 50% or more
- Name real places in the location
- Match activity intensity to the temperature
- Keep it concise"""


@create_step(NORMALIZE_CITY, CityInput, CityOutput)
async def normalize_city(data: CityInput, ctx: StepContext) -> CityOutput:
    """Normalize the city name to English ASCII using the translator agent."""
    if not ctx.has_agent(CITY_TRANSLATOR_AGENT):
        return CityOutput(city=data.city)

    agent = ctx.get_agent(CITY_TRANSLATOR_AGENT)
    try:
        text = await drain_text(
            agent.stream([{"role": "user", "content": build_normalize_prompt(data.city)}])
        )
    except Exception as e:
        # translation is best effort; the geocoder may still resolve the raw name
        logger.warning("city_normalization_failed", city=data.city, error=str(e))
        return CityOutput(city=data.city)

    normalized = strip_diacritics(first_line(text) or data.city)
    return CityOutput(city=normalized)


@create_step(FETCH_WEATHER, CityOutput, Forecast)
async def fetch_weather(data: CityOutput, ctx: StepContext) -> Forecast:
    """Fetch the weather forecast for a city."""
    geocoder = ctx.get_service("geocoder")
    forecast_client = ctx.get_service("forecast")

    location = await geocoder.search(data.city)
    summary = await forecast_client.summary(location.latitude, location.longitude)

    return Forecast(
        date=datetime.now(timezone.utc).isoformat(),
        max_temp=summary.max_temp,
        min_temp=summary.min_temp,
        precipitation_chance=summary.precipitation_chance,
        condition=summary.condition,
        location=location.name,
        weather_available=True,
    )


@create_step(PLAN_ACTIVITIES, Forecast, ActivitiesOutput)
async def plan_activities(data: Forecast, ctx: StepContext) -> ActivitiesOutput:
    """Suggest activities based on weather conditions."""
    try:
        agent = ctx.get_agent(WEATHER_AGENT)
    except ServiceNotFoundError as e:
        raise StepExecutionError(PLAN_ACTIVITIES, e, message="weather agent not found") from e

    text = await drain_text(
        agent.stream([{"role": "user", "content": build_activities_prompt(data)}])
    )
    return ActivitiesOutput(activities=text)


def build_weather_pipeline() -> Pipeline:
    """Assemble and commit the three-step weather pipeline."""
    return Pipeline.assemble(
        WEATHER_PIPELINE_ID,
        [normalize_city, fetch_weather, plan_activities],
        input_schema=CityInput,
        output_schema=ActivitiesOutput,
    )
