"""
Unit tests for the experiment runner.
"""

import asyncio
import random

import pytest

from weather_eval.errors import RunEvaluationError
from weather_eval.eval.item_evaluators import ITEM_EVALUATORS, score_name
from weather_eval.eval.run_evaluators import RUN_EVALUATORS
from weather_eval.eval.runner import run_experiment, run_experiment_sync
from weather_eval.eval.schemas import Dataset, DatasetItem, Score
from weather_eval.eval.telemetry import TraceRecorder
from weather_eval.weather import WeatherTask, weather_dataset
from weather_eval.weather.task import WeatherTaskOutput


def _dataset(n, name="test_dataset"):
    return Dataset(
        name=name,
        items=[
            DatasetItem(
                id=f"q{i}",
                input={"city": f"city-{i}"},
                expected_output={"has_weather_info": True, "has_activities": True},
            )
            for i in range(n)
        ],
    )


async def echo_task(item):
    # later items finish first
    await asyncio.sleep(0.001 * (10 - int(item.id[1:])))
    return {"city": item.input["city"]}


@score_name("echo")
def echo_evaluator(input, output, expected_output, metadata):
    return Score(name="echo", value=1.0, comment=output["city"])


@score_name("length")
async def async_length_evaluator(input, output, expected_output, metadata):
    await asyncio.sleep(0)
    return {"name": "length", "value": float(len(output["city"]))}


@score_name("broken")
def broken_evaluator(input, output, expected_output, metadata):
    raise ValueError("bad evaluator")


@pytest.mark.asyncio
class TestRunExperiment:
    """Test run_experiment."""

    async def test_report_preserves_dataset_order(self):
        dataset = _dataset(10)
        report = await run_experiment(dataset, echo_task, [echo_evaluator], max_concurrency=4)

        assert len(report.item_results) == len(dataset.items)
        for i, result in enumerate(report.item_results):
            assert result.index == i
            assert result.item == dataset.items[i]
            assert result.output == {"city": f"city-{i}"}
            assert result.evaluations[0].comment == f"city-{i}"

    async def test_concurrency_bound(self):
        in_flight = 0
        peak = 0
        rng = random.Random(7)
        delays = [rng.uniform(0.001, 0.02) for _ in range(10)]

        async def slow_task(item):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            try:
                await asyncio.sleep(delays[int(item.id[1:])])
            finally:
                in_flight -= 1
            return {"city": item.input["city"]}

        report = await run_experiment(_dataset(10), slow_task, [echo_evaluator], max_concurrency=3)

        assert peak <= 3
        assert peak > 1
        assert len(report.item_results) == 10

    async def test_evaluators_run_in_declared_order(self):
        report = await run_experiment(
            _dataset(3), echo_task, [async_length_evaluator, echo_evaluator], max_concurrency=2
        )
        for result in report.item_results:
            assert [s.name for s in result.evaluations] == ["length", "echo"]
            assert result.evaluations[0].value == float(len(result.output["city"]))

    async def test_task_failure_is_isolated(self):
        async def flaky(item):
            if item.id == "q1":
                raise ConnectionError("upstream down")
            return {"city": item.input["city"]}

        report = await run_experiment(_dataset(3), flaky, [echo_evaluator, async_length_evaluator], max_concurrency=2)

        failed = report.item_results[1]
        assert failed.error is not None
        assert "upstream down" in failed.error
        assert failed.output is None
        assert [s.name for s in failed.evaluations] == ["echo", "length"]
        assert all(s.value == 0.0 for s in failed.evaluations)
        assert all("upstream down" in s.comment for s in failed.evaluations)

        assert report.item_results[0].error is None
        assert report.item_results[2].evaluations[0].value == 1.0

    async def test_evaluator_failure_degrades_single_score(self):
        report = await run_experiment(
            _dataset(2), echo_task, [echo_evaluator, broken_evaluator, async_length_evaluator]
        )
        for result in report.item_results:
            names = [s.name for s in result.evaluations]
            assert names == ["echo", "broken", "length"]
            broken = result.evaluations[1]
            assert broken.value == 0.0
            assert "bad evaluator" in broken.comment
            assert result.evaluations[2].value > 0
            assert result.error is None

    async def test_task_timeout(self):
        async def hangs(item):
            if item.id == "q0":
                await asyncio.sleep(5)
            return {"city": item.input["city"]}

        report = await run_experiment(_dataset(2), hangs, [echo_evaluator], max_concurrency=2, item_timeout=0.05)

        assert "timed out" in report.item_results[0].error
        assert report.item_results[0].evaluations[0].value == 0.0
        assert report.item_results[1].error is None

    async def test_sync_task(self):
        def sync_task(item):
            return {"city": item.input["city"].upper()}

        report = await run_experiment(_dataset(2), sync_task, [echo_evaluator])
        assert report.item_results[1].output == {"city": "CITY-1"}

    async def test_run_evaluators_see_all_items(self):
        seen = []

        def counting(item_results):
            seen.append(len(item_results))
            return Score(name="count", value=float(len(item_results)))

        report = await run_experiment(_dataset(5), echo_task, [echo_evaluator], [counting], max_concurrency=3)

        assert seen == [5]
        assert report.run_score("count").value == 5.0

    async def test_run_evaluators_receive_immutable_results(self):
        def tampering(item_results):
            with pytest.raises(TypeError):
                item_results[0] = None
            with pytest.raises(AttributeError):
                item_results[0].evaluations.append(Score(name="extra", value=1.0))
            return Score(name="checked", value=1.0)

        report = await run_experiment(_dataset(2), echo_task, [echo_evaluator], [tampering])

        assert report.run_score("checked").value == 1.0
        assert all(isinstance(r.evaluations, tuple) for r in report.item_results)
        assert [s.name for s in report.item_results[0].evaluations] == ["echo"]

    async def test_run_evaluator_failure_is_fatal(self):
        def failing(item_results):
            raise ZeroDivisionError("boom")

        with pytest.raises(RunEvaluationError) as exc_info:
            await run_experiment(_dataset(2), echo_task, [echo_evaluator], [failing])
        assert exc_info.value.name == "failing"
        assert isinstance(exc_info.value.cause, ZeroDivisionError)

    async def test_empty_dataset(self):
        report = await run_experiment(_dataset(0), echo_task, ITEM_EVALUATORS, RUN_EVALUATORS, max_concurrency=3)

        assert report.item_results == []
        assert [s.name for s in report.run_scores] == [
            "avg_success_rate",
            "avg_translation_accuracy",
            "weather_retrieval_rate",
            "activity_generation_rate",
        ]
        assert all(s.value == 0 for s in report.run_scores)
        assert report.run_scores[0].comment == "No success scores found"

    async def test_cancellation_waits_for_workers(self):
        started = []
        cleaned_up = []

        async def hangs(item):
            started.append(item.id)
            try:
                await asyncio.sleep(5)
            finally:
                cleaned_up.append(item.id)

        run = asyncio.create_task(run_experiment(_dataset(10), hangs, max_concurrency=3))
        while len(started) < 3:
            await asyncio.sleep(0.001)
        run.cancel()

        with pytest.raises(asyncio.CancelledError):
            await run
        assert sorted(cleaned_up) == sorted(started)
        assert len(started) == 3

    async def test_invalid_concurrency(self):
        with pytest.raises(ValueError):
            await run_experiment(_dataset(1), echo_task, max_concurrency=0)

    async def test_report_metadata(self):
        report = await run_experiment(
            _dataset(1), echo_task, name="exp", description="desc", metadata={"model": "m"}, run_id="abc"
        )
        assert report.name == "exp"
        assert report.description == "desc"
        assert report.metadata == {"model": "m"}
        assert report.run_id == "abc"
        assert report.dataset_name == "test_dataset"
        assert report.finished_at >= report.started_at

    async def test_default_name_uses_dataset(self):
        report = await run_experiment(_dataset(1, name="cities"), echo_task)
        assert report.name.startswith("cities - ")

    async def test_recorder_receives_item_spans(self):
        recorder = TraceRecorder()
        await run_experiment(_dataset(3), echo_task, [echo_evaluator], max_concurrency=2, recorder=recorder)

        spans = recorder.events
        assert len(spans) == 3
        assert {s["index"] for s in spans} == {0, 1, 2}
        assert all(s["name"] == "experiment_item" for s in spans)
        assert all(s["scores"] == {"echo": 1.0} for s in spans)

    async def test_same_scores_across_concurrency_limits(self, registry):
        task = WeatherTask.from_registry(registry)
        dataset = weather_dataset()

        serial = await run_experiment(dataset, task, ITEM_EVALUATORS, RUN_EVALUATORS, max_concurrency=1)
        parallel = await run_experiment(dataset, task, ITEM_EVALUATORS, RUN_EVALUATORS, max_concurrency=4)

        def values(report):
            return [[(s.name, s.value) for s in r.evaluations] for r in report.item_results]

        assert values(serial) == values(parallel)
        assert [(s.name, s.value) for s in serial.run_scores] == [(s.name, s.value) for s in parallel.run_scores]

    async def test_weather_dataset_end_to_end(self, registry):
        report = await run_experiment(
            weather_dataset(),
            WeatherTask.from_registry(registry),
            ITEM_EVALUATORS,
            RUN_EVALUATORS,
            max_concurrency=3,
        )

        assert len(report.item_results) == 5
        assert report.score_values("overall_success") == [1.0] * 5
        assert report.run_score("avg_success_rate").value == 1.0
        assert report.run_score("weather_retrieval_rate").comment == "Weather retrieval rate: 100.0% (5/5 successful)"
        assert isinstance(report.item_results[0].output, WeatherTaskOutput)


def test_run_experiment_sync():
    report = run_experiment_sync(_dataset(2), echo_task, [echo_evaluator], max_concurrency=2)
    assert [r.output["city"] for r in report.item_results] == ["city-0", "city-1"]
