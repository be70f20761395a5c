"""
Pydantic schemas for evaluation harness.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ItemMetadata(BaseModel):
    """Optional descriptive metadata of a dataset item."""
    model_config = ConfigDict(frozen=True, extra="allow")

    language: Optional[str] = None
    difficulty: Optional[Literal["easy", "medium", "hard"]] = None
    description: Optional[str] = None


class DatasetItem(BaseModel):
    """Single evaluation item with input and expected output."""
    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    input: Dict[str, Any]
    expected_output: Dict[str, Any] = Field(default_factory=dict)
    metadata: Optional[ItemMetadata] = None


class Dataset(BaseModel):
    """Collection of evaluation items."""
    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ""
    items: List[DatasetItem] = Field(default_factory=list)


class Score(BaseModel):
    """A named score produced by an item or run evaluator."""
    model_config = ConfigDict(frozen=True)

    name: str
    value: float
    data_type: Literal["BOOLEAN", "NUMERIC"] = "NUMERIC"
    comment: str = ""

    @model_validator(mode="after")
    def _check_boolean_value(self) -> "Score":
        if self.data_type == "BOOLEAN" and self.value not in (0.0, 1.0):
            raise ValueError(f"BOOLEAN score '{self.name}' must be 0.0 or 1.0, got {self.value}")
        return self


class ItemResult(BaseModel):
    """Output and scores of one dataset item."""
    model_config = ConfigDict(frozen=True)

    index: int
    item: DatasetItem
    output: Optional[Any] = None
    evaluations: Tuple[Score, ...] = ()
    error: Optional[str] = None
    duration_ms: float = 0.0

    def score(self, name: str) -> Optional[Score]:
        for evaluation in self.evaluations:
            if evaluation.name == name:
                return evaluation
        return None


class RunReport(BaseModel):
    """Aggregated report of one experiment run."""
    model_config = ConfigDict(frozen=True)

    run_id: str
    name: str
    description: str = ""
    dataset_name: str
    item_results: List[ItemResult]
    run_scores: List[Score]
    metadata: Dict[str, Any] = Field(default_factory=dict)
    started_at: datetime
    finished_at: datetime

    def score_values(self, name: str) -> List[float]:
        """Values of the named item score across all items, in item order."""
        return [
            evaluation.value
            for result in self.item_results
            for evaluation in result.evaluations
            if evaluation.name == name
        ]

    def run_score(self, name: str) -> Optional[Score]:
        for score in self.run_scores:
            if score.name == name:
                return score
        return None

    def format(self) -> str:
        from .reporter import format_report
        return format_report(self)
