"""
Weather workflow, its task adapter and sample dataset.
"""

from .dataset import (
    WEATHER_DATASET_DESCRIPTION,
    WEATHER_DATASET_ITEMS,
    WEATHER_DATASET_NAME,
    weather_dataset,
)
from .task import WeatherTask, WeatherTaskOutput, extract_output
from .workflow import (
    FETCH_WEATHER,
    NORMALIZE_CITY,
    PLAN_ACTIVITIES,
    WEATHER_PIPELINE_ID,
    ActivitiesOutput,
    CityInput,
    CityOutput,
    Forecast,
    build_weather_pipeline,
    fetch_weather,
    normalize_city,
    plan_activities,
)

__all__ = [
    "FETCH_WEATHER",
    "NORMALIZE_CITY",
    "PLAN_ACTIVITIES",
    "WEATHER_DATASET_DESCRIPTION",
    "WEATHER_DATASET_ITEMS",
    "WEATHER_DATASET_NAME",
    "WEATHER_PIPELINE_ID",
    "ActivitiesOutput",
    "CityInput",
    "CityOutput",
    "Forecast",
    "WeatherTask",
    "WeatherTaskOutput",
    "build_weather_pipeline",
    "extract_output",
    "fetch_weather",
    "normalize_city",
    "plan_activities",
    "weather_dataset",
]
