"""
Sample dataset for the weather workflow experiment.

Inputs mix English, Japanese and accented city names; the expected
location is the Japanese spelling of the place.
"""

from typing import List

from weather_eval.eval.schemas import Dataset, DatasetItem, ItemMetadata

WEATHER_DATASET_NAME = "weather-workflow-evaluation"
WEATHER_DATASET_DESCRIPTION = (
    "Weather workflow evaluation over multilingual city name inputs"
)


def _item(city: str, expected_location: str, language: str, difficulty: str, description: str) -> DatasetItem:
    return DatasetItem(
        input={"city": city},
        expected_output={
            "has_weather_info": True,
            "has_activities": True,
            "location_in_japanese": expected_location,
        },
        metadata=ItemMetadata(language=language, difficulty=difficulty, description=description),
    )


WEATHER_DATASET_ITEMS: List[DatasetItem] = [
    _item("Tokyo", "東京", "en", "easy", "Major city in English (baseline)"),
    _item("Paris", "パリ", "en", "easy", "European city in English (baseline)"),
    _item("東京", "東京", "ja", "medium", "City name written in Japanese"),
    _item("São Paulo", "サンパウロ", "pt", "medium", "Accented name; diacritics must be dropped"),
    _item("New York", "ニューヨーク", "en", "easy", "Multi-word city name"),
]


def weather_dataset() -> Dataset:
    return Dataset(
        name=WEATHER_DATASET_NAME,
        description=WEATHER_DATASET_DESCRIPTION,
        items=WEATHER_DATASET_ITEMS,
    )
