"""
Compatibility checks between step contracts.

A contract is a pydantic model class. A producer satisfies a consumer when
every required consumer field is produced with an assignable type. Extra
producer fields are allowed and dropped at the boundary.
"""

import inspect
import types
from typing import Any, List, Literal, Optional, Type, Union, get_args, get_origin

from pydantic import BaseModel

from weather_eval.errors import SchemaMismatchError

# pydantic coerces these losslessly, so they are treated as assignable
_NUMERIC_WIDENING = {(int, float)}


def _is_union(tp: Any) -> bool:
    origin = get_origin(tp)
    return origin is Union or origin is types.UnionType


def _describe(tp: Any) -> str:
    return getattr(tp, "__name__", None) or repr(tp)


def type_satisfies(produced: Any, expected: Any) -> bool:
    """Return True if a value annotated ``produced`` may fill ``expected``."""
    if expected is Any or produced == expected:
        return True

    if _is_union(produced):
        return all(type_satisfies(arg, expected) for arg in get_args(produced))
    if _is_union(expected):
        return any(type_satisfies(produced, arg) for arg in get_args(expected))

    if get_origin(produced) is Literal:
        values = get_args(produced)
        if get_origin(expected) is Literal:
            return set(values) <= set(get_args(expected))
        return all(type_satisfies(type(v), expected) for v in values)

    produced_origin = get_origin(produced)
    expected_origin = get_origin(expected)
    if produced_origin is not None or expected_origin is not None:
        if (produced_origin or produced) != (expected_origin or expected):
            return False
        produced_args, expected_args = get_args(produced), get_args(expected)
        if not expected_args:
            return True
        if len(produced_args) != len(expected_args):
            return False
        return all(type_satisfies(p, e) for p, e in zip(produced_args, expected_args))

    if inspect.isclass(produced) and inspect.isclass(expected):
        if issubclass(produced, expected):
            return True
        if issubclass(produced, BaseModel) and issubclass(expected, BaseModel):
            return not contract_problems(produced, expected)
        return (produced, expected) in _NUMERIC_WIDENING

    return False


def contract_problems(producer: Type[BaseModel], consumer: Type[BaseModel]) -> List[str]:
    """
    List the reasons ``producer`` output cannot be fed to ``consumer``.

    Args:
        producer: Output contract of the upstream step
        consumer: Input contract of the downstream step

    Returns:
        Human-readable problems; empty when the contracts are compatible
    """
    if producer is consumer:
        return []

    problems = []
    produced_fields = producer.model_fields
    for name, field in consumer.model_fields.items():
        if name not in produced_fields:
            if field.is_required():
                problems.append(f"missing required field '{name}'")
            continue
        produced_type = produced_fields[name].annotation
        if not type_satisfies(produced_type, field.annotation):
            problems.append(
                f"field '{name}' is {_describe(produced_type)}, "
                f"expected {_describe(field.annotation)}"
            )
    return problems


def check_compatible(
    producer: Type[BaseModel],
    consumer: Type[BaseModel],
    producer_name: Optional[str] = None,
    consumer_name: Optional[str] = None,
) -> None:
    """
    Raise SchemaMismatchError if ``producer`` cannot feed ``consumer``.
    """
    problems = contract_problems(producer, consumer)
    if problems:
        raise SchemaMismatchError(
            producer_name or producer.__name__,
            consumer_name or consumer.__name__,
            problems,
        )
