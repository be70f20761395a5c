"""
Task adapter running the weather pipeline for one dataset item.

The adapter never raises: a failed run or an unexpected error yields
``WeatherTaskOutput.failed()`` so a single bad item cannot abort a batch.
"""

from typing import Optional

import structlog
from pydantic import BaseModel, ConfigDict

from weather_eval.errors import TaskAdapterFailure
from weather_eval.eval.schemas import DatasetItem
from weather_eval.pipeline import Pipeline, Run, StepContext
from weather_eval.weather.workflow import (
    FETCH_WEATHER,
    PLAN_ACTIVITIES,
    WEATHER_PIPELINE_ID,
    ActivitiesOutput,
    Forecast,
)

logger = structlog.get_logger(__name__)


class WeatherTaskOutput(BaseModel):
    """Fixed-shape output consumed by the item evaluators."""
    model_config = ConfigDict(frozen=True)

    activities: str = ""
    location: str = ""
    has_weather_info: bool = False
    has_activities: bool = False

    @classmethod
    def failed(cls) -> "WeatherTaskOutput":
        return cls()


def extract_output(run: Run) -> WeatherTaskOutput:
    """
    Build the task output from a finished run.

    Weather availability and location come from the ``fetch-weather``
    outcome; the activity flag from ``plan-activities``.
    """
    if run.status != "success":
        return WeatherTaskOutput.failed()

    forecast = run.output_of(FETCH_WEATHER)
    has_weather_info = isinstance(forecast, Forecast) and forecast.weather_available
    location = forecast.location if isinstance(forecast, Forecast) else ""

    plan = run.output_of(PLAN_ACTIVITIES)
    activities = plan.activities if isinstance(plan, ActivitiesOutput) else ""

    return WeatherTaskOutput(
        activities=activities,
        location=location,
        has_weather_info=has_weather_info,
        has_activities=bool(activities.strip()),
    )


class WeatherTask:
    """
    Callable ``(DatasetItem) -> WeatherTaskOutput`` for the experiment runner.

    Example:
        >>> task = WeatherTask(registry.get_pipeline("weather-workflow"), registry)
        >>> output = await task(item)
    """

    def __init__(self, pipeline: Pipeline, context: StepContext):
        self.pipeline = pipeline
        self.context = context

    @classmethod
    def from_registry(cls, registry, pipeline_id: str = WEATHER_PIPELINE_ID) -> "WeatherTask":
        return cls(registry.get_pipeline(pipeline_id), registry)

    async def __call__(self, item: DatasetItem) -> WeatherTaskOutput:
        city: Optional[str] = item.input.get("city")
        try:
            if not isinstance(city, str) or not city.strip():
                raise TaskAdapterFailure(f"Dataset item has no city: {item.input!r}")
            run = await self.pipeline.run({"city": city}, self.context)
        except Exception as e:
            logger.error("task_failed", city=city, error=str(e))
            return WeatherTaskOutput.failed()

        output = extract_output(run)
        if run.status != "success":
            logger.warning("workflow_failed", city=city, status=run.status, error=str(run.error))
        else:
            logger.info(
                "workflow_completed",
                city=city,
                location=output.location,
                has_weather_info=output.has_weather_info,
                has_activities=output.has_activities,
            )
        return output
