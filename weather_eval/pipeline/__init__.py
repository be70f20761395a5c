"""
Step chaining engine.

Provides typed steps, contract checks and the pipeline run loop.
"""

from .contracts import check_compatible, contract_problems, type_satisfies
from .engine import Pipeline, Run, StepOutcome, assemble
from .step import Step, StepContext, create_step

__all__ = [
    "Pipeline",
    "Run",
    "Step",
    "StepContext",
    "StepOutcome",
    "assemble",
    "check_compatible",
    "contract_problems",
    "create_step",
    "type_satisfies",
]
