# runner.py
"""
Local workflow execution.

The Executor walks an analysis plan and runs every job marked would-run,
one job at a time and one step at a time, stopping at the first failure.
Between steps it drains the GITHUB_ENV / GITHUB_OUTPUT side-channel files
so later steps and job outputs can see what earlier steps produced.
"""

from __future__ import annotations

import os
import threading
import time
from typing import Dict, Optional, Tuple

from .analyzer import (
    AnalysisResult,
    Analyzer,
    ConditionResult,
    JobResult,
    evaluate_condition,
    step_display_name,
)
from .context import TriggerContext
from .docker_client import ContainerRuntime
from .errors import (
    ActionMetadataError,
    CIError,
    ContainerRuntimeError,
    ExecutionError,
    GitError,
    RunCancelled,
    StepFailure,
    UnsupportedActionError,
)
from .expressions import Evaluator
from .logging import get_logger
from .model import Job, Step, Workflow
from .runtime import JobRun, RunState, SideChannel, SourceControl, StepRun, StepServices
from .settings import Settings
from .step_workflows import STEP_WORKFLOWS, StepWorkflow, select_step_workflow
from .substitution import substitute
from .ui.console import Console

log = get_logger(__name__)

ERROR_KINDS = (
    (StepFailure, "step_failed"),
    (RunCancelled, "cancelled"),
    (UnsupportedActionError, "unsupported_action"),
    (ActionMetadataError, "action_metadata"),
    (ContainerRuntimeError, "container_runtime"),
    (GitError, "git"),
)


def error_kind(exc: ExecutionError) -> str:
    for cls, kind in ERROR_KINDS:
        if isinstance(exc, cls):
            return kind
    return "execution"


def to_ci_error(exc: ExecutionError) -> CIError:
    details: Dict[str, object] = {}
    if isinstance(exc, StepFailure):
        details["exit_code"] = exc.exit_code
    return CIError(
        kind=error_kind(exc),
        job=exc.job or "",
        step=exc.step,
        message=exc.message,
        details=details,
    )


class Executor:
    """
    Runs a workflow against a container runtime.

    One Executor drives one run at a time; its RunState is created fresh by
    each execute() call and left on `self.state` for inspection afterwards.
    """

    def __init__(
        self,
        runtime: ContainerRuntime,
        git: SourceControl,
        *,
        settings: Optional[Settings] = None,
        console: Optional[Console] = None,
        working_dir: str = ".",
        workflows: Tuple[StepWorkflow, ...] = STEP_WORKFLOWS,
    ):
        self.runtime = runtime
        self.git = git
        self.settings = settings or Settings()
        self.console = console or Console()
        self.working_dir = os.path.abspath(working_dir)
        self.workflows = workflows
        self.state: Optional[RunState] = None

    def execute(
        self,
        workflow: Workflow,
        context: TriggerContext,
        analysis: Optional[AnalysisResult] = None,
        *,
        cancel: Optional[threading.Event] = None,
    ) -> Dict[str, JobRun]:
        """
        Execute every would-run job of the plan in plan order.

        The plan is computed from (workflow, context) when not given. Job
        and step results are recorded into `context` as they complete.

        Returns:
            job name -> JobRun for every job that ran.

        Raises:
            AnalysisError: the plan could not be computed.
            CIError: a job failed; carries the job, step and cause.
        """
        if analysis is None:
            analysis = Analyzer(workflow, context).analyze()

        services = StepServices(
            runtime=self.runtime,
            git=self.git,
            settings=self.settings,
            console=self.console,
            cancel=cancel or threading.Event(),
        )

        channel = SideChannel()
        try:
            channel.open()
        except OSError as e:
            raise CIError(
                kind="io",
                job="",
                step=None,
                message=f"creating side-channel files: {e}",
                details={},
            ) from e

        runs: Dict[str, JobRun] = {}
        self.state = RunState(working_dir=self.working_dir, side_channel=channel)
        try:
            for job_result in analysis.jobs:
                if not job_result.would_run:
                    context.record_job(job_result.name, "skipped")
                    continue
                runs[job_result.name] = self._execute_job(
                    workflow, job_result, self.state, services, context
                )
        except ExecutionError as e:
            raise to_ci_error(e) from e
        finally:
            channel.close()
            self.runtime.close()

        return runs

    # ------------------------------------------------------------------
    # Jobs
    # ------------------------------------------------------------------

    def _execute_job(
        self,
        workflow: Workflow,
        job_result: JobResult,
        state: RunState,
        services: StepServices,
        context: TriggerContext,
    ) -> JobRun:
        name = job_result.name
        job = workflow.jobs.get(name)
        if job is None:
            raise ExecutionError(f"job {name} not found in workflow", job=name)

        run = JobRun(name=name, job=job)
        state.job = run
        self.console.print_job_start(name)
        log.debug("job_started", job=name)

        # step conditions read the live context, including earlier steps' outputs and env
        evaluator = Evaluator(context)
        try:
            for index, step in enumerate(job.steps, start=1):
                label = step_display_name(step)
                self.console.print_step(index, len(job.steps), label)
                if step.condition:
                    condition = evaluate_condition(evaluator, step.condition)
                    if not condition.value:
                        self._skip_step(step, label, condition, context)
                        continue
                self._execute_step(step, label, state, services, context)
                self.console.print_step_success(label)
        except ExecutionError as e:
            run.status = "cancelled" if isinstance(e, RunCancelled) else "failure"
            run.finished_at = time.time()
            context.record_job(name, run.status)
            self.console.print_job_failure(name, run.duration)
            if e.job is None:
                e.job = name
            raise

        run.status = "success"
        run.finished_at = time.time()
        run.outputs = self.job_outputs(job, state)
        context.record_job(name, run.status, run.outputs)

        self.console.print_job_outputs(run.outputs)
        self.console.print_job_success(name, run.duration)
        log.debug("job_finished", job=name, status=run.status)
        return run

    @staticmethod
    def job_outputs(job: Job, state: RunState) -> Dict[str, str]:
        """Resolve the job's `outputs:` against recorded step outputs and dynamic env."""
        return {
            name: substitute(expression, state.step_outputs, state.dynamic_env)
            for name, expression in job.outputs.items()
        }

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _execute_step(
        self,
        step: Step,
        label: str,
        state: RunState,
        services: StepServices,
        context: TriggerContext,
    ) -> None:
        state.step = StepRun(step=step)

        workflow = select_step_workflow(step, self.workflows)
        if workflow is None:
            raise ExecutionError(f"no executor found for step: {label}", step=label)

        log.debug("step_started", step=label, workflow=workflow.name)
        try:
            exit_code = workflow.execute(step, state, services)
        except ExecutionError as e:
            self._fail_step(step, state, context, e)
            if e.step is None:
                e.step = label
            raise
        except OSError as e:
            error = ExecutionError(str(e), step=label)
            self._fail_step(step, state, context, error)
            raise error from e

        if exit_code != 0:
            failure = StepFailure(exit_code, step=label)
            self._fail_step(step, state, context, failure)
            raise failure

        try:
            env_values, output_values = state.side_channel.collect() if state.side_channel else ({}, {})
        except OSError as e:
            error = ExecutionError(f"reading side-channel files: {e}", step=label)
            self._fail_step(step, state, context, error)
            raise error from e

        state.merge_env(env_values)
        context.env.update(env_values)
        for key, value in env_values.items():
            self.console.print_env_set(key, value)
        if step.id:
            state.merge_outputs(step.id, output_values)
            for key, value in output_values.items():
                self.console.print_output_set(step.id, key, value)
        elif output_values:
            # nothing can address outputs of a step without an id
            log.debug("step_outputs_dropped", step=label, keys=sorted(output_values))

        state.step.outcome = "success"
        state.step.outputs = dict(output_values)
        if step.id:
            context.record_step(step.id, "success", state.step_outputs.get(step.id, {}))

    def _fail_step(
        self,
        step: Step,
        state: RunState,
        context: TriggerContext,
        error: ExecutionError,
    ) -> None:
        if state.step is not None:
            state.step.outcome = "failure"
        if step.id:
            context.record_step(step.id, "failure")
        self.console.print_failure(
            step_display_name(step),
            str(error),
            exit_code=error.exit_code if isinstance(error, StepFailure) else None,
        )

    def _skip_step(
        self,
        step: Step,
        label: str,
        condition: ConditionResult,
        context: TriggerContext,
    ) -> None:
        if step.id:
            context.record_step(step.id, "skipped")
        self.console.print_info("  STATUS: skipped (condition evaluated to false)")
        log.debug("step_skipped", step=label, trace=condition.trace)

