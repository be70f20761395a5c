"""
CLI for creating the weather workflow evaluation dataset.

Usage:
    python scripts/wx_create_dataset.py
    python scripts/wx_create_dataset.py --dataset-dir data/datasets --name weather-workflow-evaluation
"""

import argparse
import sys

from weather_eval.config import Settings
from weather_eval.eval import JsonlDatasetStore, configure_logging
from weather_eval.weather import (
    WEATHER_DATASET_DESCRIPTION,
    WEATHER_DATASET_ITEMS,
    WEATHER_DATASET_NAME,
)


def main(argv=None) -> int:
    settings = Settings.from_env()
    parser = argparse.ArgumentParser(
        description="Create and populate the weather workflow evaluation dataset"
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
        default=WEATHER_DATASET_NAME,
        help="Dataset name",
    )
    args = parser.parse_args(argv)

    configure_logging(settings.log_level, settings.log_json)
    store = JsonlDatasetStore(args.dataset_dir)

    if store.exists(args.name):
        print(f"Error: dataset '{args.name}' already exists in {args.dataset_dir}")
        return 1

    print(f"Creating dataset: {args.name}")
    store.create_dataset(args.name, WEATHER_DATASET_DESCRIPTION)

    total = len(WEATHER_DATASET_ITEMS)
    for index, item in enumerate(WEATHER_DATASET_ITEMS, 1):
        meta = item.metadata
        print(f"  [{index}/{total}] Adding: {item.input['city']}")
        if meta is not None:
            print(f"     Language: {meta.language}, Difficulty: {meta.difficulty}")
        store.add_item(
            args.name,
            input=item.input,
            expected_output=item.expected_output,
            metadata=meta,
        )

    print(f"\nDataset '{args.name}' created with {total} items in {args.dataset_dir}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
