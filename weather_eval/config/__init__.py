from .settings import ExperimentSettings, LLMSettings, OpenMeteoSettings, Settings

__all__ = ["ExperimentSettings", "LLMSettings", "OpenMeteoSettings", "Settings"]
