"""
Evaluation harness for the weather pipeline.

Provides dataset storage, the concurrent experiment runner, item and run
evaluators, telemetry, and reporting.
"""

from .schemas import (
    Dataset,
    DatasetItem,
    ItemMetadata,
    ItemResult,
    RunReport,
    Score,
)
from .datasets import JsonlDatasetStore, load_dataset_from_path
from .item_evaluators import (
    ITEM_EVALUATORS,
    activity_generation,
    levenshtein_distance,
    location_translation,
    name_similarity,
    overall_success,
    weather_data_retrieval,
)
from .run_evaluators import (
    RUN_EVALUATORS,
    activity_generation_rate,
    average_success_rate,
    average_translation_accuracy,
    mean_score_evaluator,
    weather_retrieval_rate,
)
from .runner import evaluate_item, run_experiment, run_experiment_sync
from .reporter import format_report, save_report
from .telemetry import TraceRecorder, configure_logging, new_run_id

__all__ = [
    "Dataset",
    "DatasetItem",
    "ItemMetadata",
    "ItemResult",
    "RunReport",
    "Score",
    "JsonlDatasetStore",
    "load_dataset_from_path",
    "ITEM_EVALUATORS",
    "activity_generation",
    "levenshtein_distance",
    "location_translation",
    "name_similarity",
    "overall_success",
    "weather_data_retrieval",
    "RUN_EVALUATORS",
    "activity_generation_rate",
    "average_success_rate",
    "average_translation_accuracy",
    "mean_score_evaluator",
    "weather_retrieval_rate",
    "evaluate_item",
    "run_experiment",
    "run_experiment_sync",
    "format_report",
    "save_report",
    "TraceRecorder",
    "configure_logging",
    "new_run_id",
]
