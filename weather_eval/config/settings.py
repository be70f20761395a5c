"""Application settings and configuration schema."""

import os
from typing import Mapping, Optional

from pydantic import BaseModel, Field


class LLMSettings(BaseModel):
    """Chat model used by both agents."""
    model: str = "gpt-4o-mini"
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    temperature: float = 0.2
    timeout: float = 60.0
    max_retries: int = 2


class OpenMeteoSettings(BaseModel):
    """Geocoding and forecast endpoints."""
    geocoding_url: str = "https://geocoding-api.open-meteo.com/v1/search"
    forecast_url: str = "https://api.open-meteo.com/v1/forecast"
    timeout: float = 10.0
    retries: int = 2


class ExperimentSettings(BaseModel):
    """Experiment runner defaults."""
    max_concurrency: int = Field(default=3, ge=1)
    item_timeout: Optional[float] = None
    dataset_dir: str = "data/datasets"
    runs_dir: str = "runs"
    trace_path: Optional[str] = None


class Settings(BaseModel):
    """Main application settings."""
    llm: LLMSettings = LLMSettings()
    open_meteo: OpenMeteoSettings = OpenMeteoSettings()
    experiment: ExperimentSettings = ExperimentSettings()
    log_level: str = "INFO"
    log_json: bool = False

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Build settings from environment variables.

        Unset variables keep their defaults; malformed numbers raise a
        pydantic ValidationError.
        """
        env = os.environ if environ is None else environ

        llm = {}
        if env.get("OPENAI_API_KEY"):
            llm["api_key"] = env["OPENAI_API_KEY"]
        if env.get("OPENAI_BASE_URL"):
            llm["base_url"] = env["OPENAI_BASE_URL"]
        if env.get("WX_LLM_MODEL"):
            llm["model"] = env["WX_LLM_MODEL"]

        experiment = {}
        if env.get("WX_MAX_CONCURRENCY"):
            experiment["max_concurrency"] = env["WX_MAX_CONCURRENCY"]
        if env.get("WX_DATASET_DIR"):
            experiment["dataset_dir"] = env["WX_DATASET_DIR"]
        if env.get("WX_RUNS_DIR"):
            experiment["runs_dir"] = env["WX_RUNS_DIR"]
        if env.get("WX_TRACE_PATH"):
            experiment["trace_path"] = env["WX_TRACE_PATH"]

        data = {
            "llm": LLMSettings(**llm),
            "experiment": ExperimentSettings(**experiment),
        }
        if env.get("WX_LOG_LEVEL"):
            data["log_level"] = env["WX_LOG_LEVEL"].upper()
        if env.get("WX_LOG_JSON"):
            data["log_json"] = env["WX_LOG_JSON"].lower() in {"1", "true", "yes"}
        return cls(**data)
