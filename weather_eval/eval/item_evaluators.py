"""
Item-level evaluators for the weather workflow.

Each evaluator is called as ``evaluator(input, output, expected_output,
metadata)`` and returns a Score. ``score_name`` names the score an
evaluator produces, also when it fails.
"""

from typing import Any, Callable, Dict, List, Optional

from .schemas import ItemMetadata, Score

ItemEvaluator = Callable[[Dict[str, Any], Any, Dict[str, Any], Optional[ItemMetadata]], Any]


def score_name(name: str) -> Callable[[ItemEvaluator], ItemEvaluator]:
    """Attach the produced score name to an evaluator."""
    def wrap(fn: ItemEvaluator) -> ItemEvaluator:
        fn.score_name = name
        return fn
    return wrap


def evaluator_name(evaluator: Any) -> str:
    return getattr(evaluator, "score_name", None) or getattr(evaluator, "__name__", type(evaluator).__name__)


def _field(data: Any, name: str, default: Any = None) -> Any:
    if isinstance(data, dict):
        return data.get(name, default)
    return getattr(data, name, default)


def levenshtein_distance(a: str, b: str) -> int:
    """Classic edit distance (insert, delete, substitute all cost 1)."""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, 1):
        current = [i]
        for j, cb in enumerate(b, 1):
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + (ca != cb),
            ))
        previous = current
    return previous[-1]


def name_similarity(actual: str, expected: str) -> float:
    """
    Fuzzy match of two place names in [0, 1].

    Names are case-folded and trimmed. Equal names or containment in either
    direction score 1.0, otherwise ``1 - distance / max_length``. An empty
    name is contained only in another empty name.
    """
    a = actual.casefold().strip()
    b = expected.casefold().strip()
    if a == b:
        return 1.0
    if a and b and (a in b or b in a):
        return 1.0
    max_length = max(len(a), len(b))
    return max(0.0, 1.0 - levenshtein_distance(a, b) / max_length)


@score_name("weather_data_retrieval")
def weather_data_retrieval(input, output, expected_output, metadata=None) -> Score:
    """Checks if weather information was successfully retrieved."""
    success = bool(_field(output, "has_weather_info", False))
    return Score(
        name="weather_data_retrieval",
        value=1.0 if success else 0.0,
        data_type="BOOLEAN",
        comment=(
            f"Successfully retrieved weather for {_field(output, 'location', '')}"
            if success
            else "Failed to retrieve weather data"
        ),
    )


@score_name("activity_generation")
def activity_generation(input, output, expected_output, metadata=None) -> Score:
    """Checks if activity suggestions were generated."""
    success = bool(_field(output, "has_activities", False))
    activities = _field(output, "activities", "") or ""
    return Score(
        name="activity_generation",
        value=1.0 if success else 0.0,
        data_type="BOOLEAN",
        comment=(
            f"Generated {len(activities)} characters of activity suggestions"
            if success
            else "Failed to generate activities"
        ),
    )


@score_name("location_translation")
def location_translation(input, output, expected_output, metadata=None) -> Score:
    """Checks the resolved location against the expected place name."""
    actual = _field(output, "location", "") or ""
    expected = expected_output.get("location_in_japanese", "")
    return Score(
        name="location_translation",
        value=name_similarity(actual, expected),
        data_type="NUMERIC",
        comment=f'Input: "{input.get("city", "")}" -> Output: "{actual}" (expected: "{expected}")',
    )


@score_name("overall_success")
def overall_success(input, output, expected_output, metadata=None) -> Score:
    """Combines weather retrieval and activity generation against expectations."""
    weather_ok = bool(_field(output, "has_weather_info", False)) == bool(expected_output.get("has_weather_info", True))
    activities_ok = bool(_field(output, "has_activities", False)) == bool(expected_output.get("has_activities", True))
    success = weather_ok and activities_ok

    if success:
        comment = "All checks passed"
    else:
        failed = [name for name, ok in (("weather", weather_ok), ("activities", activities_ok)) if not ok]
        comment = f"Failed checks: {', '.join(failed)} (weather: {weather_ok}, activities: {activities_ok})"

    return Score(
        name="overall_success",
        value=1.0 if success else 0.0,
        data_type="BOOLEAN",
        comment=comment,
    )


ITEM_EVALUATORS: List[ItemEvaluator] = [
    weather_data_retrieval,
    activity_generation,
    location_translation,
    overall_success,
]
