"""
Run-level evaluators: aggregate item scores across a whole run.
"""

import statistics
from typing import Any, Callable, List, Sequence

from .schemas import ItemResult, Score

RunEvaluator = Callable[[Sequence[ItemResult]], Any]


def collect_scores(item_results: Sequence[ItemResult], name: str) -> List[float]:
    """Values of the named item score across all results."""
    return [
        evaluation.value
        for result in item_results
        for evaluation in result.evaluations
        if evaluation.name == name
    ]


def mean_score_evaluator(
    source: str,
    name: str,
    no_scores_comment: str,
    describe: Callable[[float, List[float]], str],
) -> RunEvaluator:
    """
    Build a run evaluator averaging one item score.

    Args:
        source: Name of the item score to average
        name: Name of the produced run score
        no_scores_comment: Comment used when no item has the source score
        describe: Builds the comment from the mean and the values

    Returns:
        Run evaluator returning the arithmetic mean (0 when no scores)
    """
    def evaluate(item_results: Sequence[ItemResult]) -> Score:
        values = collect_scores(item_results, source)
        if not values:
            return Score(name=name, value=0.0, comment=no_scores_comment)
        average = statistics.fmean(values)
        return Score(name=name, value=average, comment=describe(average, values))

    evaluate.__name__ = name
    evaluate.score_name = name
    return evaluate


def _passed(values: List[float]) -> int:
    return sum(1 for v in values if v == 1.0)


average_success_rate = mean_score_evaluator(
    "overall_success",
    "avg_success_rate",
    "No success scores found",
    lambda avg, values: f"Average success rate: {avg:.1%} ({_passed(values)}/{len(values)} passed)",
)

average_translation_accuracy = mean_score_evaluator(
    "location_translation",
    "avg_translation_accuracy",
    "No translation scores found",
    lambda avg, values: f"Average translation accuracy: {avg:.1%}",
)

weather_retrieval_rate = mean_score_evaluator(
    "weather_data_retrieval",
    "weather_retrieval_rate",
    "No weather retrieval scores found",
    lambda avg, values: f"Weather retrieval rate: {avg:.1%} ({_passed(values)}/{len(values)} successful)",
)

activity_generation_rate = mean_score_evaluator(
    "activity_generation",
    "activity_generation_rate",
    "No activity generation scores found",
    lambda avg, values: f"Activity generation rate: {avg:.1%} ({_passed(values)}/{len(values)} successful)",
)


RUN_EVALUATORS: List[RunEvaluator] = [
    average_success_rate,
    average_translation_accuracy,
    weather_retrieval_rate,
    activity_generation_rate,
]
