# analyzer.py
"""
Dry-run analysis: which jobs and steps would run, and why.

The analyzer walks jobs in dependency order, checks each job's `needs`
against the statuses recorded so far, evaluates `if:` conditions with the
expression evaluator, and records the job's verdict (success / skipped)
into the context so later jobs see it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

from .context import TriggerContext
from .dag import dependency_order
from .expressions import Evaluator, ExpressionError
from .logging import get_logger
from .model import Job, Step, Workflow

log = get_logger(__name__)

STATUS_SUCCESS = "success"
STATUS_SKIPPED = "skipped"

REASON_CONDITION_FALSE = "condition evaluated to false"

STEP_NAME_WIDTH = 40


# ---------------------------------------------------------------------
# Results (immutable once returned)
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class ConditionResult:
    expression: str
    value: bool
    trace: str


@dataclass(frozen=True)
class StepResult:
    name: str
    kind: str                 # "run" | "action"
    command: str = ""
    action: str = ""
    step_id: str = ""
    condition: Optional[ConditionResult] = None
    would_run: bool = True


@dataclass(frozen=True)
class JobResult:
    name: str
    runs_on: str
    needs: Tuple[str, ...] = ()
    condition: Optional[ConditionResult] = None
    would_run: bool = True
    skip_reason: str = ""
    steps: Tuple[StepResult, ...] = ()


@dataclass(frozen=True)
class AnalysisResult:
    workflow_name: str
    trigger: str
    context: TriggerContext
    jobs: Tuple[JobResult, ...] = ()

    @property
    def order(self) -> List[str]:
        return [j.name for j in self.jobs]

    @property
    def runnable_jobs(self) -> List[JobResult]:
        return [j for j in self.jobs if j.would_run]

    @property
    def skipped_jobs(self) -> List[JobResult]:
        return [j for j in self.jobs if not j.would_run]

    def job(self, name: str) -> JobResult:
        for j in self.jobs:
            if j.name == name:
                return j
        raise KeyError(name)


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------

def truncate_line(text: str, width: int = STEP_NAME_WIDTH) -> str:
    """First line of text, cut to width characters with a trailing '...'."""
    line = text.split("\n", 1)[0]
    if len(line) > width:
        return line[: width - 3] + "..."
    return line


def step_display_name(step: Step) -> str:
    if step.name:
        return step.name
    if step.run:
        return truncate_line(step.run)
    return step.uses


def evaluate_condition(evaluator: Evaluator, expression: str) -> ConditionResult:
    """
    Evaluate an `if:` expression without ever raising.

    Only a literal boolean true counts as true. Expression errors become a
    false condition whose trace starts with "error: ".
    """
    try:
        result = evaluator.evaluate(expression)
    except ExpressionError as e:
        log.debug("condition_error", expression=expression, error=str(e))
        return ConditionResult(expression=expression, value=False, trace=f"error: {e}")

    value = result.value is True
    return ConditionResult(expression=expression, value=value, trace=result.trace)


# ---------------------------------------------------------------------
# Analyzer
# ---------------------------------------------------------------------

class Analyzer:
    """
    Computes an AnalysisResult for one workflow and trigger context.

    analyze() works on a private snapshot of the context, so the caller's
    context is left untouched and several analyses may run at once.
    """

    def __init__(self, workflow: Workflow, context: TriggerContext):
        self.workflow = workflow
        self.context = context

    def analyze(self) -> AnalysisResult:
        """
        Raises:
            AnalysisError: the job graph has a cycle, a duplicate or a
                missing dependency.
        """
        ctx = self.context.snapshot()
        evaluator = Evaluator(ctx)

        order = dependency_order(self.workflow.jobs)
        log.debug("analysis_started", workflow=self.workflow.name, order=order)

        results: List[JobResult] = []
        for name in order:
            job_result = self._analyze_job(name, self.workflow.jobs[name], ctx, evaluator)
            results.append(job_result)

            status = STATUS_SUCCESS if job_result.would_run else STATUS_SKIPPED
            ctx.record_job(name, status)

        log.debug(
            "analysis_finished",
            workflow=self.workflow.name,
            runnable=sum(1 for j in results if j.would_run),
            skipped=sum(1 for j in results if not j.would_run),
        )

        return AnalysisResult(
            workflow_name=self.workflow.name,
            trigger=ctx.github.event_name,
            context=ctx,
            jobs=tuple(results),
        )

    def _analyze_job(
        self,
        name: str,
        job: Job,
        ctx: TriggerContext,
        evaluator: Evaluator,
    ) -> JobResult:
        needs = job.dependencies
        skip_reason = ""

        needs_satisfied = True
        for dep in needs:
            recorded = ctx.jobs.get(dep)
            if recorded is None or recorded.status != STATUS_SUCCESS:
                needs_satisfied = False
                status = recorded.status if recorded and recorded.status else "not run"
                skip_reason = f"dependency '{dep}' was {status}"
                break

        condition: Optional[ConditionResult] = None
        would_run = needs_satisfied
        if job.condition:
            condition = evaluate_condition(evaluator, job.condition)
            if not condition.value:
                would_run = False
                skip_reason = REASON_CONDITION_FALSE

        steps = tuple(self._analyze_step(step, evaluator) for step in job.steps)

        return JobResult(
            name=name,
            runs_on=str(job.runs_on),
            needs=tuple(needs),
            condition=condition,
            would_run=would_run,
            skip_reason=skip_reason,
            steps=steps,
        )

    def _analyze_step(self, step: Step, evaluator: Evaluator) -> StepResult:
        condition: Optional[ConditionResult] = None
        would_run = True
        if step.condition:
            condition = evaluate_condition(evaluator, step.condition)
            would_run = condition.value

        return StepResult(
            name=step_display_name(step),
            kind=step.kind,
            command=step.run,
            action=step.uses,
            step_id=step.id,
            condition=condition,
            would_run=would_run,
        )


def analyze(workflow: Workflow, context: TriggerContext) -> AnalysisResult:
    return Analyzer(workflow, context).analyze()
