"""
Experiment runner that drives a dataset through a task adapter.

Items run on a bounded pool of asyncio workers. Each item's task call and
its sequential evaluator pass form one unit of work; results are stored by
dataset index so the report keeps dataset order.
"""

import asyncio
import inspect
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence

import structlog

from weather_eval.errors import EvaluatorFailure, RunEvaluationError, TaskAdapterFailure

from .item_evaluators import evaluator_name
from .schemas import Dataset, DatasetItem, ItemResult, RunReport, Score
from .telemetry import TraceRecorder, new_run_id

logger = structlog.get_logger(__name__)

TaskFn = Callable[[DatasetItem], Any]


async def _call(fn: Callable[..., Any], *args: Any) -> Any:
    result = fn(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


def _as_score(value: Any) -> Score:
    if isinstance(value, Score):
        return value
    return Score.model_validate(value)


def _degraded_scores(item_evaluators: Sequence[Any], reason: str) -> List[Score]:
    return [
        Score(name=evaluator_name(evaluator), value=0.0, comment=reason)
        for evaluator in item_evaluators
    ]


async def _run_task(task: TaskFn, item: DatasetItem, item_timeout: Optional[float]) -> Any:
    try:
        if item_timeout is None:
            return await _call(task, item)
        return await asyncio.wait_for(_call(task, item), timeout=item_timeout)
    except asyncio.TimeoutError as e:
        raise TaskAdapterFailure(f"Task timed out after {item_timeout}s", e) from e
    except TaskAdapterFailure:
        raise
    except Exception as e:
        raise TaskAdapterFailure(f"Task failed: {type(e).__name__}: {e}", e) from e


async def _evaluate(evaluator: Any, item: DatasetItem, output: Any) -> Score:
    try:
        return _as_score(await _call(
            evaluator, item.input, output, item.expected_output, item.metadata
        ))
    except Exception as e:
        failure = EvaluatorFailure(evaluator_name(evaluator), e)
        logger.warning("evaluator_failed", evaluator=failure.name, error=str(e))
        return Score(name=failure.name, value=0.0, comment=str(failure))


async def evaluate_item(
    index: int,
    item: DatasetItem,
    task: TaskFn,
    item_evaluators: Sequence[Any],
    item_timeout: Optional[float] = None,
) -> ItemResult:
    """
    Run the task for one item, then its evaluators in declared order.

    Never raises for task or evaluator errors; they degrade the result.
    """
    start = time.perf_counter()
    try:
        output = await _run_task(task, item, item_timeout)
    except TaskAdapterFailure as e:
        logger.warning("task_failed", index=index, error=str(e))
        return ItemResult(
            index=index,
            item=item,
            output=None,
            evaluations=_degraded_scores(item_evaluators, str(e)),
            error=str(e),
            duration_ms=(time.perf_counter() - start) * 1000,
        )

    evaluations = []
    for evaluator in item_evaluators:
        evaluations.append(await _evaluate(evaluator, item, output))

    return ItemResult(
        index=index,
        item=item,
        output=output,
        evaluations=tuple(evaluations),
        duration_ms=(time.perf_counter() - start) * 1000,
    )


async def run_experiment(
    dataset: Dataset,
    task: TaskFn,
    item_evaluators: Sequence[Any] = (),
    run_evaluators: Sequence[Any] = (),
    max_concurrency: int = 1,
    metadata: Optional[Dict[str, Any]] = None,
    name: Optional[str] = None,
    description: str = "",
    item_timeout: Optional[float] = None,
    recorder: Optional[TraceRecorder] = None,
    run_id: Optional[str] = None,
) -> RunReport:
    """
    Evaluate a dataset by running each item through the task adapter.

    Args:
        dataset: Dataset whose items are evaluated
        task: Sync or async callable ``(DatasetItem) -> output``
        item_evaluators: Called per item as ``(input, output, expected_output, metadata)``
        run_evaluators: Called once with all item results, in dataset order
        max_concurrency: Maximum number of items in flight
        metadata: Free-form run metadata copied into the report
        name: Experiment name; defaults to the dataset name and date
        description: Experiment description
        item_timeout: Optional per-item task timeout in seconds
        recorder: Optional trace sink receiving one span per item
        run_id: Optional run ID; auto-generated if not provided

    Returns:
        RunReport with one ItemResult per dataset item

    Raises:
        ValueError: If max_concurrency is below 1
        RunEvaluationError: If a run evaluator raises

    Example:
        >>> report = await run_experiment(
        ...     dataset,
        ...     WeatherTask.from_registry(registry),
        ...     item_evaluators=ITEM_EVALUATORS,
        ...     run_evaluators=RUN_EVALUATORS,
        ...     max_concurrency=3,
        ... )
        >>> print(report.format())
    """
    if max_concurrency < 1:
        raise ValueError(f"max_concurrency must be >= 1, got {max_concurrency}")

    run_id = run_id or new_run_id()
    started_at = datetime.now(timezone.utc)
    name = name or f"{dataset.name} - {started_at.date().isoformat()}"
    items = list(dataset.items)

    logger.info(
        "experiment_started",
        run_id=run_id,
        experiment=name,
        dataset=dataset.name,
        items=len(items),
        max_concurrency=max_concurrency,
    )

    results: List[Optional[ItemResult]] = [None] * len(items)
    queue: asyncio.Queue = asyncio.Queue()
    for index, item in enumerate(items):
        queue.put_nowait((index, item))

    async def process(index: int, item: DatasetItem) -> ItemResult:
        if recorder is None:
            return await evaluate_item(index, item, task, item_evaluators, item_timeout)
        async with recorder.span("experiment_item", run_id=run_id, index=index, input=item.input) as span:
            result = await evaluate_item(index, item, task, item_evaluators, item_timeout)
            span["error"] = result.error
            span["scores"] = {s.name: s.value for s in result.evaluations}
            return result

    async def worker() -> None:
        while True:
            try:
                index, item = queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            # an item is stored only once all of its evaluators have run
            results[index] = await process(index, item)
            logger.info(
                "item_completed",
                run_id=run_id,
                index=index,
                error=results[index].error,
                duration_ms=round(results[index].duration_ms, 2),
            )

    workers = [asyncio.create_task(worker()) for _ in range(min(max_concurrency, len(items)))]
    try:
        await asyncio.gather(*workers)
    except BaseException:
        for w in workers:
            w.cancel()
        await asyncio.gather(*workers, return_exceptions=True)
        raise

    item_results = tuple(results)

    run_scores = []
    for evaluator in run_evaluators:
        try:
            run_scores.append(_as_score(await _call(evaluator, item_results)))
        except Exception as e:
            raise RunEvaluationError(evaluator_name(evaluator), e) from e

    report = RunReport(
        run_id=run_id,
        name=name,
        description=description,
        dataset_name=dataset.name,
        item_results=list(item_results),
        run_scores=run_scores,
        metadata=dict(metadata or {}),
        started_at=started_at,
        finished_at=datetime.now(timezone.utc),
    )

    logger.info(
        "experiment_completed",
        run_id=run_id,
        experiment=name,
        items=len(item_results),
        run_scores={s.name: round(s.value, 4) for s in run_scores},
    )
    return report


def run_experiment_sync(*args: Any, **kwargs: Any) -> RunReport:
    """Blocking wrapper around :func:`run_experiment` for scripts."""
    return asyncio.run(run_experiment(*args, **kwargs))
