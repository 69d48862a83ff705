"""
Step workflows: how a single step turns into container operations.

STEP_WORKFLOWS is checked in order and the first whose `applies` matches
the step runs it. Shell comes before action, so a step with both `run`
and `uses` runs its command.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from ..model import Step
from ..runtime import RunState, StepServices
from . import action, shell


@dataclass(frozen=True)
class StepWorkflow:
    name: str
    applies: Callable[[Step], bool]
    execute: Callable[[Step, RunState, StepServices], int]


SHELL = StepWorkflow(name="shell", applies=shell.applies, execute=shell.execute)
ACTION = StepWorkflow(name="action", applies=action.applies, execute=action.execute)

STEP_WORKFLOWS: Tuple[StepWorkflow, ...] = (SHELL, ACTION)


def select_step_workflow(
    step: Step,
    workflows: Tuple[StepWorkflow, ...] = STEP_WORKFLOWS,
) -> Optional[StepWorkflow]:
    for workflow in workflows:
        if workflow.applies(step):
            return workflow
    return None


__all__ = ["StepWorkflow", "SHELL", "ACTION", "STEP_WORKFLOWS", "select_step_workflow"]
