"""
Exception taxonomy for the weather pipeline and evaluation harness.

Failures below the item boundary (step, task adapter, item evaluator) are
caught and turned into degraded data. Failures above it (contract checks at
assembly, run evaluators, dataset fetch) propagate to the caller.
"""

from typing import Any, List, Optional


class WeatherEvalError(Exception):
    """Base class for all errors raised by this package."""


class ContractViolation(WeatherEvalError):
    """A pipeline could not be assembled from the given steps."""


class SchemaMismatchError(ContractViolation):
    """Adjacent step contracts are incompatible."""

    def __init__(self, producer: str, consumer: str, problems: List[str]):
        self.producer = producer
        self.consumer = consumer
        self.problems = list(problems)
        super().__init__(
            f"Output of '{producer}' does not satisfy input of '{consumer}': "
            + "; ".join(self.problems)
        )


class PipelineCommittedError(ContractViolation):
    """Raised when a committed pipeline is modified, or an open one is run."""


class StepExecutionError(WeatherEvalError):
    """A single step failed at run time."""

    def __init__(self, step_id: str, cause: Optional[BaseException] = None, message: str = ""):
        self.step_id = step_id
        self.cause = cause
        detail = message or (f"{type(cause).__name__}: {cause}" if cause else "step failed")
        super().__init__(f"Step '{step_id}' failed: {detail}")


class ServiceError(WeatherEvalError):
    """An external service returned an unusable response."""


class LocationNotFoundError(ServiceError):
    """The geocoding service returned no results for a place name."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Location '{name}' not found")


class WeatherServiceError(ServiceError):
    """The forecast service failed or returned a malformed payload."""


class ServiceNotFoundError(WeatherEvalError, KeyError):
    """A named agent, service or pipeline is not registered."""

    def __init__(self, kind: str, name: str):
        self.kind = kind
        self.name = name
        super().__init__(f"{kind} '{name}' is not registered")

    def __str__(self) -> str:
        return self.args[0]


class TaskAdapterFailure(WeatherEvalError):
    """The task adapter could not produce a usable output for an item."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__(message)


class EvaluatorFailure(WeatherEvalError):
    """An item evaluator raised while scoring one item."""

    def __init__(self, name: str, cause: BaseException):
        self.name = name
        self.cause = cause
        super().__init__(f"Evaluator '{name}' failed: {type(cause).__name__}: {cause}")


class RunEvaluationError(WeatherEvalError):
    """A run-level evaluator raised; fatal to the whole experiment."""

    def __init__(self, name: str, cause: Any):
        self.name = name
        self.cause = cause
        super().__init__(f"Run evaluator '{name}' failed: {type(cause).__name__}: {cause}")


RunEvaluatorFailure = RunEvaluationError


class DatasetNotFoundError(WeatherEvalError, FileNotFoundError):
    """A dataset is not present in the dataset store."""
