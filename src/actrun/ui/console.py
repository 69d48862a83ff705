"""Console output formatting for actrun."""

from __future__ import annotations

import sys
from typing import Optional, TextIO

from ..analyzer import AnalysisResult, ConditionResult, JobResult, StepResult


class Console:
    """
    Centralized console output formatting.

    Constructed by the CLI and handed to whatever needs to print; there is
    no module-level instance.
    """

    def __init__(self, debug: bool = False, out: Optional[TextIO] = None, err: Optional[TextIO] = None):
        """
        Initialize console formatter.

        Args:
            debug: If True, show detailed output including stack traces
            out: Stream for normal output (stdout when omitted)
            err: Stream for errors (stderr when omitted)
        """
        self.debug = debug
        self._out = out
        self._err = err

    @property
    def out(self) -> TextIO:
        return self._out if self._out is not None else sys.stdout

    @property
    def err(self) -> TextIO:
        return self._err if self._err is not None else sys.stderr

    def _print(self, text: str = "") -> None:
        print(text, file=self.out)

    def print_header(self, title: str) -> None:
        """Print a section header."""
        self._print(f"\n{title}")
        self._print("-" * len(title))

    # ------------------------------------------------------------------
    # Dry-run analysis
    # ------------------------------------------------------------------

    def print_analysis(self, result: AnalysisResult) -> None:
        """Print a full analysis: header, context, one block per job, summary."""
        github = result.context.github
        self._print(f"WORKFLOW: {result.workflow_name}")
        self._print(f"Trigger: {result.trigger}")

        self.print_header("CONTEXT")
        self._print(f"  github.ref        = {github.ref}")
        self._print(f"  github.event_name = {github.event_name}")
        self._print(f"  github.sha        = {github.sha[:7]}")
        self._print(f"  github.actor      = {github.actor}")
        self._print(f"  github.repository = {github.repository}")

        for job in result.jobs:
            self.print_job_analysis(job)

        will_run = len(result.runnable_jobs)
        skipped = len(result.skipped_jobs)
        summary = f"Summary: {will_run} job(s) will run"
        if skipped:
            summary += f", {skipped} skipped"
        self._print()
        self._print(summary)

    def print_job_analysis(self, job: JobResult) -> None:
        marker = "[OK]" if job.would_run else "[SKIP]"
        header = f"{marker} JOB: {job.name}"
        if not job.would_run:
            header += f" (SKIPPED: {job.skip_reason})"
        self._print()
        self._print(header)
        self._print(f"  runs-on: {job.runs_on}")
        if job.needs:
            self._print(f"  needs: [{', '.join(job.needs)}]")
        if job.condition is not None:
            self._print(f"  if: {_render_condition(job.condition)}")

        for step in job.steps:
            self.print_step_analysis(step, job_would_run=job.would_run)

    def print_step_analysis(self, step: StepResult, *, job_would_run: bool) -> None:
        if not job_would_run:
            marker = "."
        elif step.would_run:
            marker = "[OK]"
        else:
            marker = "[SKIP]"
        self._print(f"    {marker} {step.name}")
        if step.condition is not None:
            self._print(f"        if: {_render_condition(step.condition)}")
            if self.debug:
                self._print(f"        trace: {step.condition.trace}")

    # ------------------------------------------------------------------
    # Run progress
    # ------------------------------------------------------------------

    def print_run_started(self, workflow: str, working_dir: str, event: str, ref: str = "") -> None:
        """Print run start information."""
        self._print("\nRUN STARTED")
        self._print(f"Workflow: {workflow}")
        self._print(f"Working directory: {working_dir}")
        self._print(f"Event: {event}")
        if ref:
            self._print(f"Ref: {ref}")
        self._print()

    def print_job_start(self, name: str) -> None:
        """Print job start message."""
        self._print(f"\nJOB STARTED: {name}")

    def print_job_success(self, name: str, duration: float) -> None:
        self._print(f"JOB SUCCEEDED: {name} ({duration:.1f}s)")

    def print_job_failure(self, name: str, duration: float) -> None:
        self._print(f"JOB FAILED: {name} (after {duration:.1f}s)")

    def print_step(self, index: int, total: int, name: str) -> None:
        """Print step start message."""
        self._print(f"STEP {index}/{total}: {name}")

    def print_step_success(self, name: str) -> None:
        self._print(f"  STATUS: success ({name})")

    def print_failure(
        self,
        name: str,
        reason: str,
        exit_code: Optional[int] = None,
        hint: Optional[str] = None,
        is_job: bool = False,
    ) -> None:
        """
        Print failure message.

        Args:
            name: Job or step name
            reason: Failure reason/error message
            exit_code: Optional exit code
            hint: Optional hint for user
            is_job: If True, print "JOB FAILED", otherwise "STEP FAILED"
        """
        prefix = "JOB FAILED" if is_job else "STEP FAILED"
        self._print(f"{prefix}: {name}")
        if exit_code is not None:
            self._print(f"Exit code: {exit_code}")
        if hint:
            self._print(f"Hint: {hint}")
        if self.debug:
            self._print(f"Error details: {reason}")
        else:
            error_line = reason.split("\n")[0] if reason else "Unknown error"
            self._print(f"Error: {error_line}")

    def print_image_pull(self, image: str) -> None:
        self._print(f"  IMAGE: {image}")

    def print_container_output(self, output: str) -> None:
        text = output.rstrip("\n")
        if not text.strip():
            return
        for line in text.split("\n"):
            self._print(f"  | {line}")

    def print_env_set(self, key: str, value: str) -> None:
        self._print(f"  ENV: {key}={value}")

    def print_output_set(self, step_id: str, key: str, value: str) -> None:
        self._print(f"  OUTPUT: steps.{step_id}.outputs.{key}={value}")

    def print_job_outputs(self, outputs: dict[str, str]) -> None:
        if not outputs:
            return
        self._print("  JOB OUTPUTS:")
        for key, value in outputs.items():
            self._print(f"    {key}={value}")

    def print_workflow_result(self, workflow: str, success: bool) -> None:
        self._print("\n" + "=" * 40)
        status = "SUCCESS" if success else "FAILED"
        self._print(f"WORKFLOW {status}: {workflow}")
        self._print("=" * 40)

    # ------------------------------------------------------------------
    # Misc
    # ------------------------------------------------------------------

    def print_workflow_list(self, entries: list[tuple[str, str]]) -> None:
        """Print (path, workflow name) pairs."""
        if not entries:
            self._print("No workflows found.")
            return
        width = max(len(path) for path, _ in entries)
        for path, name in entries:
            self._print(f"{path.ljust(width)}  {name}")

    def print_error(
        self,
        title: str,
        message: str,
        details: Optional[list[str]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        """
        Print structured error message.

        Args:
            title: Error title
            message: Main error message
            details: Optional list of detail lines
            suggestion: Optional suggestion for user
        """
        print(f"\nERROR: {title}", file=self.err)
        print(f"{message}", file=self.err)
        if details:
            for detail in details:
                print(f"  {detail}", file=self.err)
        if suggestion:
            print(f"\n{suggestion}", file=self.err)

    def print_exception(self, exc: BaseException) -> None:
        """Print exception, with full traceback only in debug mode."""
        if self.debug:
            import traceback
            traceback.print_exception(type(exc), exc, exc.__traceback__, file=self.err)
        else:
            print(f"Error: {exc}", file=self.err)

    def print_info(self, message: str) -> None:
        """Print informational message."""
        self._print(message)


def _render_condition(condition: ConditionResult) -> str:
    verdict = "TRUE" if condition.value else "FALSE"
    return f"{condition.expression} -> {verdict}"
