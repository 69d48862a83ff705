# errors.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


class ActrunError(Exception):
    """Base class for every error raised by actrun."""


# ----------------------------------------------------------------------
# Workflow files
# ----------------------------------------------------------------------

class WorkflowParseError(ActrunError):
    def __init__(self, path: str, message: str):
        self.path = path
        super().__init__(f"{path}: {message}")


# ----------------------------------------------------------------------
# Analysis (structural problems in the job graph)
# ----------------------------------------------------------------------

class AnalysisError(ActrunError):
    """The job graph cannot be ordered."""


class DuplicateJobError(AnalysisError):
    pass


class UnknownDependencyError(AnalysisError):
    def __init__(self, job: str, dependency: str, known: List[str]):
        self.job = job
        self.dependency = dependency
        super().__init__(
            f"Job '{job}' needs missing job '{dependency}'. Known jobs: {sorted(known)}"
        )


class DependencyCycleError(AnalysisError):
    def __init__(self, cycle: List[str]):
        self.cycle = list(cycle)
        super().__init__("Dependency cycle detected: " + " -> ".join(self.cycle))


# ----------------------------------------------------------------------
# Execution
# ----------------------------------------------------------------------

class ExecutionError(ActrunError):
    """
    A failure while running a job or step.

    job/step are filled in as the error crosses the step and job
    boundaries, so the outermost handler knows where the run stopped.
    """

    def __init__(self, message: str, *, job: Optional[str] = None, step: Optional[str] = None):
        self.message = message
        self.job = job
        self.step = step
        super().__init__(message)

    def __str__(self) -> str:
        where = []
        if self.job:
            where.append(f"job={self.job}")
        if self.step:
            where.append(f"step={self.step}")
        if where:
            return f"{self.message} ({', '.join(where)})"
        return self.message


class StepFailure(ExecutionError):
    def __init__(self, exit_code: int, *, job: Optional[str] = None, step: Optional[str] = None):
        self.exit_code = exit_code
        super().__init__(f"step failed with exit code {exit_code}", job=job, step=step)


class UnsupportedActionError(ExecutionError):
    pass


class ActionMetadataError(ExecutionError):
    pass


class ContainerRuntimeError(ExecutionError):
    pass


class GitError(ExecutionError):
    pass


class RunCancelled(ExecutionError):
    def __init__(self, message: str = "run cancelled", **kwargs):
        super().__init__(message, **kwargs)


@dataclass
class CIError(ActrunError):
    """
    Structured run failure with enough context for:
      - clean CLI output
      - debugging without full tracebacks
    """
    kind: str
    job: str
    step: str | None
    message: str
    details: Dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        lines = [f"{self.kind}: {self.message}", f"job={self.job}"]
        if self.step:
            lines.append(f"step={self.step}")
        for k, v in self.details.items():
            lines.append(f"{k}={v}")
        return "\n".join(lines)
