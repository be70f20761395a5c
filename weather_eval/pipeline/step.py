"""
Step definition: a named unit of work with typed input and output contracts.
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping, Protocol, Type, Union

from pydantic import BaseModel


class StepContext(Protocol):
    """Read-only access to the named services a step may call."""

    def get_agent(self, name: str) -> Any: ...

    def has_agent(self, name: str) -> bool: ...

    def get_service(self, name: str) -> Any: ...


StepResult = Union[BaseModel, Mapping[str, Any]]
StepFn = Callable[[Any, StepContext], Awaitable[StepResult]]


@dataclass(frozen=True)
class Step:
    """
    A stateless pipeline step.

    ``execute`` receives input already validated against ``input_schema``
    and a context handle. It returns a model or mapping which the pipeline
    validates against ``output_schema``. Steps do not retry.
    """
    id: str
    input_schema: Type[BaseModel]
    output_schema: Type[BaseModel]
    execute: StepFn
    description: str = ""


def create_step(
    id: str,
    input_schema: Type[BaseModel],
    output_schema: Type[BaseModel],
    description: str = "",
) -> Callable[[StepFn], Step]:
    """
    Decorator turning an async function into a Step.

    Example:
        >>> @create_step("echo", CityInput, CityOutput)
        ... async def echo(data, ctx):
        ...     return {"city": data.city}
    """
    def wrap(fn: StepFn) -> Step:
        return Step(
            id=id,
            input_schema=input_schema,
            output_schema=output_schema,
            execute=fn,
            description=description or (fn.__doc__ or "").strip(),
        )
    return wrap
