"""
Pipeline engine: an ordered chain of steps with contract checks.

Contracts are checked once when the pipeline is committed. At run time the
engine validates data at every step boundary, routes each step's output to
the next step and stops at the first failure.
"""

import time
import uuid
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Literal, Mapping, Optional, Sequence, Type

import structlog
from pydantic import BaseModel, ValidationError

from weather_eval.errors import (
    ContractViolation,
    PipelineCommittedError,
    StepExecutionError,
)
from weather_eval.eval.telemetry import log_step
from weather_eval.pipeline.contracts import check_compatible
from weather_eval.pipeline.step import Step, StepContext

logger = structlog.get_logger(__name__)

RunStatus = Literal["pending", "success", "failed"]
OutcomeStatus = Literal["success", "failed"]


@dataclass(frozen=True)
class StepOutcome:
    """Result of one step within a run."""
    step_id: str
    status: OutcomeStatus
    output: Optional[BaseModel] = None
    error: Optional[StepExecutionError] = None
    duration_ms: float = 0.0


class Run:
    """
    Record of a single pipeline invocation.

    Only the owning pipeline's execution loop records outcomes. Once the
    status is terminal the record no longer changes.
    """

    def __init__(self, pipeline_id: str, run_id: Optional[str] = None):
        self.run_id = run_id or str(uuid.uuid4())
        self.pipeline_id = pipeline_id
        self._status: RunStatus = "pending"
        self._steps: Dict[str, StepOutcome] = {}
        self._result: Optional[BaseModel] = None
        self._error: Optional[StepExecutionError] = None
        self._started = time.perf_counter()
        self._duration_ms = 0.0

    @property
    def status(self) -> RunStatus:
        return self._status

    @property
    def steps(self) -> Mapping[str, StepOutcome]:
        """Step-id keyed view of completed outcomes."""
        return MappingProxyType(self._steps)

    @property
    def result(self) -> Optional[BaseModel]:
        return self._result

    @property
    def error(self) -> Optional[StepExecutionError]:
        return self._error

    @property
    def duration_ms(self) -> float:
        return self._duration_ms

    def outcome(self, step_id: str) -> Optional[StepOutcome]:
        return self._steps.get(step_id)

    def succeeded(self, step_id: str) -> bool:
        outcome = self._steps.get(step_id)
        return outcome is not None and outcome.status == "success"

    def output_of(self, step_id: str) -> Optional[BaseModel]:
        """Output of a step, or None if it did not run or failed."""
        outcome = self._steps.get(step_id)
        if outcome is None or outcome.status != "success":
            return None
        return outcome.output

    def _record(self, outcome: StepOutcome) -> None:
        if self._status != "pending":
            raise RuntimeError(f"Run {self.run_id} is already {self._status}")
        self._steps[outcome.step_id] = outcome

    def _finish(
        self,
        status: OutcomeStatus,
        result: Optional[BaseModel] = None,
        error: Optional[StepExecutionError] = None,
    ) -> None:
        if self._status != "pending":
            raise RuntimeError(f"Run {self.run_id} is already {self._status}")
        self._status = status
        self._result = result
        self._error = error
        self._duration_ms = (time.perf_counter() - self._started) * 1000

    def __repr__(self) -> str:
        return f"Run(pipeline_id='{self.pipeline_id}', status='{self._status}', steps={list(self._steps)})"


def _coerce(data: Any, schema: Type[BaseModel]) -> BaseModel:
    if isinstance(data, schema):
        return data
    if isinstance(data, BaseModel):
        data = data.model_dump()
    return schema.model_validate(data)


class Pipeline:
    """
    Ordered chain of steps.

    Build with :meth:`assemble`, or with :meth:`create` followed by
    :meth:`then` calls and a final :meth:`commit`. A committed pipeline is
    immutable and may be run any number of times.
    """

    def __init__(
        self,
        id: str,
        input_schema: Optional[Type[BaseModel]] = None,
        output_schema: Optional[Type[BaseModel]] = None,
    ):
        self._id = id
        self._input_schema = input_schema
        self._output_schema = output_schema
        self._pending: List[Step] = []
        self._steps: Sequence[Step] = ()
        self._committed = False

    @classmethod
    def create(
        cls,
        id: str,
        input_schema: Optional[Type[BaseModel]] = None,
        output_schema: Optional[Type[BaseModel]] = None,
    ) -> "Pipeline":
        return cls(id, input_schema, output_schema)

    @classmethod
    def assemble(
        cls,
        id: str,
        steps: Iterable[Step],
        input_schema: Optional[Type[BaseModel]] = None,
        output_schema: Optional[Type[BaseModel]] = None,
    ) -> "Pipeline":
        """
        Build and commit a pipeline in one call.

        Raises:
            SchemaMismatchError: If adjacent step contracts are incompatible
            ContractViolation: If there are no steps or step ids repeat
        """
        pipeline = cls(id, input_schema, output_schema)
        for step in steps:
            pipeline.then(step)
        return pipeline.commit()

    @property
    def id(self) -> str:
        return self._id

    @property
    def steps(self) -> Sequence[Step]:
        return self._steps if self._committed else tuple(self._pending)

    @property
    def committed(self) -> bool:
        return self._committed

    @property
    def input_schema(self) -> Type[BaseModel]:
        return self._input_schema or self.steps[0].input_schema

    @property
    def output_schema(self) -> Type[BaseModel]:
        return self._output_schema or self.steps[-1].output_schema

    def then(self, step: Step) -> "Pipeline":
        if self._committed:
            raise PipelineCommittedError(f"Pipeline '{self._id}' is committed; build a new pipeline instead")
        self._pending.append(step)
        return self

    def commit(self) -> "Pipeline":
        if self._committed:
            raise PipelineCommittedError(f"Pipeline '{self._id}' is already committed")
        self._validate(self._pending)
        self._steps = tuple(self._pending)
        self._pending = []
        self._committed = True
        return self

    def _validate(self, steps: List[Step]) -> None:
        if not steps:
            raise ContractViolation(f"Pipeline '{self._id}' has no steps")

        seen = set()
        for step in steps:
            if step.id in seen:
                raise ContractViolation(f"Duplicate step id '{step.id}' in pipeline '{self._id}'")
            seen.add(step.id)

        if self._input_schema is not None:
            check_compatible(self._input_schema, steps[0].input_schema, f"{self._id}:input", steps[0].id)

        for producer, consumer in zip(steps, steps[1:]):
            check_compatible(producer.output_schema, consumer.input_schema, producer.id, consumer.id)

        if self._output_schema is not None:
            check_compatible(steps[-1].output_schema, self._output_schema, steps[-1].id, f"{self._id}:output")

    async def run(
        self,
        initial_input: Any,
        context: StepContext,
        run_id: Optional[str] = None,
    ) -> Run:
        """
        Execute every step in order.

        Each step receives the previous step's output. The first failure
        ends the run with status ``failed``; later steps get no outcome.

        Args:
            initial_input: Model or mapping matching the first step's input
            context: Service lookup handed to every step
            run_id: Optional id; generated when omitted

        Returns:
            Terminal Run record
        """
        if not self._committed:
            raise PipelineCommittedError(f"Pipeline '{self._id}' must be committed before it can run")

        run = Run(self._id, run_id)
        data: Any = initial_input

        for step in self._steps:
            start = time.perf_counter()
            try:
                step_input = _coerce(data, step.input_schema)
                raw = await step.execute(step_input, context)
                output = _coerce(raw, step.output_schema)
            except StepExecutionError as e:
                error = e
            except ValidationError as e:
                error = StepExecutionError(step.id, e, message=f"contract validation failed: {e.error_count()} error(s)")
            except Exception as e:
                error = StepExecutionError(step.id, e)
            else:
                duration_ms = (time.perf_counter() - start) * 1000
                run._record(StepOutcome(step.id, "success", output=output, duration_ms=duration_ms))
                log_step(run.run_id, step.id, round(duration_ms, 2), {"pipeline": self._id, "status": "success"})
                data = output
                continue

            if error.__cause__ is None and error.cause is not None:
                error.__cause__ = error.cause
            duration_ms = (time.perf_counter() - start) * 1000
            run._record(StepOutcome(step.id, "failed", error=error, duration_ms=duration_ms))
            run._finish("failed", error=error)
            logger.warning(
                "step_failed",
                run_id=run.run_id,
                pipeline=self._id,
                step=step.id,
                error=str(error),
                duration_ms=round(duration_ms, 2),
            )
            return run

        run._finish("success", result=data)
        return run

    def __repr__(self) -> str:
        return f"Pipeline(id='{self._id}', steps={[s.id for s in self.steps]}, committed={self._committed})"


def assemble(
    id: str,
    steps: Iterable[Step],
    input_schema: Optional[Type[BaseModel]] = None,
    output_schema: Optional[Type[BaseModel]] = None,
) -> Pipeline:
    """Module-level shortcut for :meth:`Pipeline.assemble`."""
    return Pipeline.assemble(id, steps, input_schema, output_schema)
