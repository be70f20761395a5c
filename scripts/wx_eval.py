"""
CLI for running the weather workflow experiment.

Usage:
    python scripts/wx_eval.py
    python scripts/wx_eval.py --name "Weather baseline" --max-concurrency 5
    python scripts/wx_eval.py --mock --out runs/
"""

import argparse
import asyncio
import sys
from datetime import datetime, timezone

from weather_eval.config import Settings
from weather_eval.errors import DatasetNotFoundError, RunEvaluationError
from weather_eval.eval import (
    ITEM_EVALUATORS,
    RUN_EVALUATORS,
    JsonlDatasetStore,
    TraceRecorder,
    configure_logging,
    run_experiment,
    save_report,
)
from weather_eval.generation import MockAgent
from weather_eval.services import CITY_TRANSLATOR_AGENT, WEATHER_AGENT, build_registry
from weather_eval.weather import WEATHER_DATASET_NAME, WeatherTask

MOCK_ACTIVITIES = (
    "🌡️ WEATHER SUMMARY\n• Conditions: mild\n\n"
    "🌅 MORNING ACTIVITIES\n• Walk in the central park\n\n"
    "🏠 INDOOR ALTERNATIVES\n• City museum"
)


def mock_agents():
    """Offline agents: the translator echoes the city, the planner returns a fixed plan."""
    def translate(prompt: str) -> str:
        return prompt.rsplit("Place name:", 1)[-1].strip()

    return {
        CITY_TRANSLATOR_AGENT: MockAgent("City Translator Agent", translate),
        WEATHER_AGENT: MockAgent("Weather Agent", MOCK_ACTIVITIES),
    }


async def run(args, settings: Settings) -> int:
    store = JsonlDatasetStore(args.dataset_dir)
    try:
        dataset = store.get(args.dataset)
    except DatasetNotFoundError as e:
        print(f"Error: {e}")
        return 1
    print(f"Loaded {len(dataset.items)} items from {args.dataset}")

    name = args.name or f"Weather Workflow Experiment - {datetime.now(timezone.utc).date().isoformat()}"
    print("\nExperiment configuration:")
    print(f"  Name: {name}")
    print(f"  Description: {args.description}")
    print(f"  Dataset: {args.dataset}")
    print(f"  Items: {len(dataset.items)}")
    print(f"  Item evaluators: {len(ITEM_EVALUATORS)}")
    print(f"  Run evaluators: {len(RUN_EVALUATORS)}")
    print(f"  Max concurrency: {args.max_concurrency}")

    recorder = TraceRecorder(settings.experiment.trace_path)
    agents = mock_agents() if args.mock else None

    try:
        async with build_registry(settings, agents=agents) as registry:
            unavailable = registry.unavailable_agents()
            if unavailable:
                print(f"Error: agents not configured: {', '.join(unavailable)}")
                print("Set OPENAI_API_KEY or pass --mock to run offline")
                return 1
            report = await run_experiment(
                dataset,
                WeatherTask.from_registry(registry),
                item_evaluators=ITEM_EVALUATORS,
                run_evaluators=RUN_EVALUATORS,
                max_concurrency=args.max_concurrency,
                metadata={
                    "model": "mock" if args.mock else settings.llm.model,
                    "version": "1.0.0",
                    "executed_at": datetime.now(timezone.utc).isoformat(),
                },
                name=name,
                description=args.description,
                item_timeout=args.item_timeout,
                recorder=recorder,
            )
    except RunEvaluationError as e:
        print(f"Error during run evaluation: {e}")
        return 1
    finally:
        recorder.flush()

    print("\n" + "=" * 80)
    print("EXPERIMENT RESULTS")
    print("=" * 80 + "\n")
    print(report.format())

    out_dir = save_report(report, args.out)
    print(f"\nResults saved to: {out_dir}")
    return 0


def main(argv=None) -> int:
    settings = Settings.from_env()
    parser = argparse.ArgumentParser(
        description="Run the weather workflow experiment over a dataset"
    )
    parser.add_argument(
        "--dataset",
        type=str,
        default=WEATHER_DATASET_NAME,
        help="Dataset name (looks for <dataset-dir>/<dataset>.jsonl)",
    )
    parser.add_argument(
        "--dataset-dir",
        type=str,
        default=settings.experiment.dataset_dir,
        help="Directory holding dataset JSONL files",
    )
    parser.add_argument(
        "--name",
        type=str,
        default=None,
        help="Experiment name",
    )
    parser.add_argument(
        "--description",
        type=str,
        default="Evaluating weather workflow performance on diverse city names",
        help="Experiment description",
    )
    parser.add_argument(
        "--max-concurrency",
        type=int,
        default=settings.experiment.max_concurrency,
        help="Number of items run in parallel",
    )
    parser.add_argument(
        "--item-timeout",
        type=float,
        default=settings.experiment.item_timeout,
        help="Per-item timeout in seconds",
    )
    parser.add_argument(
        "--out",
        type=str,
        default=settings.experiment.runs_dir,
        help="Output directory for results",
    )
    parser.add_argument(
        "--mock",
        action="store_true",
        help="Use scripted agents instead of the OpenAI API",
    )
    args = parser.parse_args(argv)

    configure_logging(settings.log_level, settings.log_json)
    return asyncio.run(run(args, settings))


if __name__ == "__main__":
    sys.exit(main())
