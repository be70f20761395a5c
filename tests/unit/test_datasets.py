"""
Unit tests for the JSONL dataset store.
"""

import json

import pytest

from weather_eval.errors import DatasetNotFoundError
from weather_eval.eval.datasets import JsonlDatasetStore, load_dataset_from_path
from weather_eval.eval.schemas import ItemMetadata


class TestJsonlDatasetStore:
    """Test JsonlDatasetStore."""

    def test_create_and_get_empty(self, tmp_path):
        store = JsonlDatasetStore(tmp_path / "datasets")
        created = store.create_dataset("weather", "City inputs")

        assert created.items == []
        assert store.exists("weather")
        loaded = store.get("weather")
        assert loaded.name == "weather"
        assert loaded.description == "City inputs"
        assert loaded.items == []

    def test_add_items_keeps_order(self, tmp_path):
        store = JsonlDatasetStore(tmp_path)
        store.create_dataset("weather")
        store.add_item("weather", {"city": "Tokyo"}, {"location_in_japanese": "東京"}, id="tokyo")
        store.add_item(
            "weather",
            {"city": "Paris"},
            metadata={"language": "en", "difficulty": "easy", "source": "manual"},
        )

        dataset = store.get("weather")
        assert [item.input["city"] for item in dataset.items] == ["Tokyo", "Paris"]
        assert dataset.items[0].id == "tokyo"
        assert dataset.items[0].expected_output == {"location_in_japanese": "東京"}
        assert dataset.items[1].expected_output == {}
        assert dataset.items[1].metadata.difficulty == "easy"

    def test_non_ascii_is_written_verbatim(self, tmp_path):
        store = JsonlDatasetStore(tmp_path)
        store.create_dataset("weather")
        store.add_item("weather", {"city": "東京"})

        assert "東京" in (tmp_path / "weather.jsonl").read_text(encoding="utf-8")

    def test_add_item_to_missing_dataset(self, tmp_path):
        store = JsonlDatasetStore(tmp_path)
        with pytest.raises(DatasetNotFoundError):
            store.add_item("missing", {"city": "Tokyo"})

    def test_get_missing_dataset(self, tmp_path):
        store = JsonlDatasetStore(tmp_path)
        with pytest.raises(DatasetNotFoundError):
            store.get("missing")
        # also usable as a FileNotFoundError
        with pytest.raises(FileNotFoundError):
            store.get("missing")

    def test_recreate_updates_description(self, tmp_path):
        store = JsonlDatasetStore(tmp_path)
        store.create_dataset("weather", "first")
        store.add_item("weather", {"city": "Tokyo"})
        store.create_dataset("weather", "second")

        dataset = store.get("weather")
        assert dataset.description == "second"
        assert len(dataset.items) == 1

    def test_list_datasets(self, tmp_path):
        store = JsonlDatasetStore(tmp_path)
        assert JsonlDatasetStore(tmp_path / "nope").list_datasets() == []
        store.create_dataset("b")
        store.create_dataset("a")
        assert store.list_datasets() == ["a", "b"]

    def test_invalid_line_reports_line_number(self, tmp_path):
        store = JsonlDatasetStore(tmp_path)
        store.create_dataset("weather")
        with open(tmp_path / "weather.jsonl", "a", encoding="utf-8") as f:
            f.write(json.dumps({"input": {"city": "Tokyo"}}) + "\n")
            f.write("\n")
            f.write("{not json\n")

        with pytest.raises(ValueError, match="line 3"):
            store.get("weather")

    def test_item_without_input_is_rejected(self, tmp_path):
        store = JsonlDatasetStore(tmp_path)
        store.create_dataset("weather")
        (tmp_path / "weather.jsonl").write_text(json.dumps({"id": "x"}) + "\n", encoding="utf-8")

        with pytest.raises(ValueError, match="Invalid DatasetItem on line 1"):
            store.get("weather")


class TestLoadDatasetFromPath:
    """Test load_dataset_from_path."""

    def test_load(self, tmp_path):
        path = tmp_path / "cities.jsonl"
        path.write_text(
            "\n".join(json.dumps({"input": {"city": c}}) for c in ["Tokyo", "Paris"]) + "\n",
            encoding="utf-8",
        )
        dataset = load_dataset_from_path(path)
        assert dataset.name == "cities"
        assert len(dataset.items) == 2

    def test_missing(self, tmp_path):
        with pytest.raises(DatasetNotFoundError):
            load_dataset_from_path(tmp_path / "missing.jsonl")


def test_item_metadata_allows_extra_fields():
    metadata = ItemMetadata(language="ja", source="manual")
    assert metadata.language == "ja"
    assert metadata.model_dump()["source"] == "manual"
