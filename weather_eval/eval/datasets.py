"""
Dataset store backed by JSONL files.

Each dataset is ``<base_dir>/<name>.jsonl`` (one item per line) next to a
``<name>.meta.json`` descriptor holding its description.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import structlog

from weather_eval.errors import DatasetNotFoundError

from .schemas import Dataset, DatasetItem, ItemMetadata

logger = structlog.get_logger(__name__)


def _read_items(path: Path) -> List[DatasetItem]:
    items = []
    with open(path, "r", encoding="utf-8") as f:
        for line_num, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue
            try:
                data = json.loads(line)
                items.append(DatasetItem(**data))
            except json.JSONDecodeError as e:
                raise ValueError(f"Invalid JSON on line {line_num} of {path}: {e}") from e
            except Exception as e:
                raise ValueError(f"Invalid DatasetItem on line {line_num} of {path}: {e}") from e
    return items


class JsonlDatasetStore:
    """
    Local dataset store.

    Example:
        >>> store = JsonlDatasetStore("data/datasets")
        >>> store.create_dataset("weather", "City inputs")
        >>> store.add_item("weather", {"city": "Tokyo"}, {"has_weather_info": True})
        >>> store.get("weather").items[0].input
        {'city': 'Tokyo'}
    """

    def __init__(self, base_dir: Union[str, Path]):
        self.base_dir = Path(base_dir)

    def _items_path(self, name: str) -> Path:
        return self.base_dir / f"{name}.jsonl"

    def _meta_path(self, name: str) -> Path:
        return self.base_dir / f"{name}.meta.json"

    def exists(self, name: str) -> bool:
        return self._meta_path(name).exists() or self._items_path(name).exists()

    def list_datasets(self) -> List[str]:
        if not self.base_dir.exists():
            return []
        return sorted(p.name[: -len(".meta.json")] for p in self.base_dir.glob("*.meta.json"))

    def create_dataset(self, name: str, description: str = "") -> Dataset:
        """
        Create an empty dataset, or update the description of an existing one.
        """
        self.base_dir.mkdir(parents=True, exist_ok=True)
        meta = {"name": name, "description": description}
        self._meta_path(name).write_text(json.dumps(meta, ensure_ascii=False, indent=2), encoding="utf-8")
        self._items_path(name).touch()
        logger.info("dataset_created", dataset=name, path=str(self._items_path(name)))
        return Dataset(name=name, description=description, items=[])

    def add_item(
        self,
        dataset_name: str,
        input: Dict[str, Any],
        expected_output: Optional[Dict[str, Any]] = None,
        metadata: Optional[Union[ItemMetadata, Dict[str, Any]]] = None,
        id: Optional[str] = None,
    ) -> DatasetItem:
        """
        Append one item to a dataset.

        Raises:
            DatasetNotFoundError: If the dataset has not been created
        """
        if not self.exists(dataset_name):
            raise DatasetNotFoundError(f"Dataset not found: {dataset_name}")

        if isinstance(metadata, dict):
            metadata = ItemMetadata(**metadata)
        item = DatasetItem(
            id=id,
            input=input,
            expected_output=expected_output or {},
            metadata=metadata,
        )
        with open(self._items_path(dataset_name), "a", encoding="utf-8") as f:
            f.write(item.model_dump_json(exclude_none=True) + "\n")
        return item

    def get(self, name: str) -> Dataset:
        """
        Load a dataset with all of its items.

        Raises:
            DatasetNotFoundError: If the dataset does not exist
            ValueError: If a line is malformed
        """
        items_path = self._items_path(name)
        if not items_path.exists():
            raise DatasetNotFoundError(
                f"Dataset file not found: {items_path}\n"
                f"Create it first with create_dataset('{name}')"
            )

        description = ""
        meta_path = self._meta_path(name)
        if meta_path.exists():
            description = json.loads(meta_path.read_text(encoding="utf-8")).get("description", "")

        return Dataset(name=name, description=description, items=_read_items(items_path))


def load_dataset_from_path(path: Union[str, Path]) -> Dataset:
    """
    Load a dataset from an explicit JSONL path.

    Args:
        path: Path to JSONL file

    Returns:
        Dataset named after the file stem
    """
    path = Path(path)
    if not path.exists():
        raise DatasetNotFoundError(f"Dataset file not found: {path}")
    return Dataset(name=path.stem, items=_read_items(path))
