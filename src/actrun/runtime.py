# runtime.py
"""
Mutable state for one workflow run, plus the GITHUB_ENV / GITHUB_OUTPUT
side-channel files steps use to hand values back.

A RunState belongs to exactly one Executor for the duration of one run.
"""

from __future__ import annotations

import shutil
import tempfile
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Protocol

from .docker_client import ContainerRuntime
from .logging import get_logger
from .model import ActionMetadata, Job, Step
from .settings import ENV_FILE_MOUNT, OUTPUT_FILE_MOUNT, PLATFORM_ENV, Settings
from .ui.console import Console

log = get_logger(__name__)

ENV_FILE_NAME = "GITHUB_ENV"
OUTPUT_FILE_NAME = "GITHUB_OUTPUT"


@dataclass
class ContainerRecord:
    id: str
    image: str
    status: str = "created"     # created | running


@dataclass
class JobRun:
    name: str
    job: Job
    status: str = "in_progress"     # in_progress | success | failure | cancelled
    started_at: float = field(default_factory=time.time)
    finished_at: Optional[float] = None
    outputs: Dict[str, str] = field(default_factory=dict)

    @property
    def duration(self) -> float:
        end = self.finished_at if self.finished_at is not None else time.time()
        return end - self.started_at


@dataclass
class StepRun:
    step: Step
    outcome: str = ""       # success | failure
    outputs: Dict[str, str] = field(default_factory=dict)


# ---------------------------------------------------------------------
# Side-channel files
# ---------------------------------------------------------------------

def parse_assignments(content: str) -> Dict[str, str]:
    """
    Parse newline-delimited KEY=VALUE records.

    NUL bytes are dropped, keys and values are trimmed, and lines without
    '=' or with an empty key are skipped. Later lines win.
    """
    result: Dict[str, str] = {}
    for line in content.replace("\x00", "").splitlines():
        line = line.strip()
        if not line:
            continue
        key, sep, value = line.partition("=")
        key = key.strip()
        if not sep or not key:
            continue
        result[key] = value.strip()
    return result


class SideChannel:
    """
    A private scratch directory holding the GITHUB_ENV and GITHUB_OUTPUT
    files for a run. Use as a context manager so the directory is removed
    on every exit path.
    """

    def __init__(self, base_dir: Optional[str] = None):
        self._base_dir = base_dir
        self.directory: Optional[Path] = None

    def __enter__(self) -> "SideChannel":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def open(self) -> None:
        self.directory = Path(tempfile.mkdtemp(prefix="actrun-github-", dir=self._base_dir))
        self.env_file.touch()
        self.output_file.touch()

    def close(self) -> None:
        if self.directory is not None:
            shutil.rmtree(self.directory, ignore_errors=True)
            self.directory = None

    @property
    def env_file(self) -> Path:
        return self._path(ENV_FILE_NAME)

    @property
    def output_file(self) -> Path:
        return self._path(OUTPUT_FILE_NAME)

    def _path(self, name: str) -> Path:
        if self.directory is None:
            raise RuntimeError("side channel is not open")
        return self.directory / name

    def ensure_files(self) -> None:
        """Recreate either file if a step removed it."""
        for path in (self.env_file, self.output_file):
            if not path.exists():
                path.touch()

    def collect(self) -> tuple[Dict[str, str], Dict[str, str]]:
        """
        Read both files, then truncate them.

        Returns (env assignments, output assignments).

        Raises:
            OSError: a file could not be read or truncated.
        """
        return self._drain(self.env_file), self._drain(self.output_file)

    @staticmethod
    def _drain(path: Path) -> Dict[str, str]:
        if not path.exists():
            return {}
        content = path.read_text(encoding="utf-8", errors="replace")
        if content:
            path.write_text("", encoding="utf-8")
        return parse_assignments(content)


# ---------------------------------------------------------------------
# Run state
# ---------------------------------------------------------------------

@dataclass
class RunState:
    working_dir: str
    side_channel: Optional[SideChannel] = None
    containers: Dict[str, ContainerRecord] = field(default_factory=dict)
    dynamic_env: Dict[str, str] = field(default_factory=dict)
    step_outputs: Dict[str, Dict[str, str]] = field(default_factory=dict)
    job: Optional[JobRun] = None
    step: Optional[StepRun] = None

    def merge_env(self, values: Dict[str, str]) -> None:
        if values:
            log.debug("dynamic_env_merged", keys=sorted(values))
        self.dynamic_env.update(values)

    def merge_outputs(self, step_id: str, values: Dict[str, str]) -> None:
        if values:
            log.debug("step_outputs_merged", step=step_id, keys=sorted(values))
        self.step_outputs.setdefault(step_id, {}).update(values)

    def step_environment(self, step: Step) -> Dict[str, str]:
        """
        Environment for a step container.

        Precedence, lowest first: job container env, job env, dynamic env,
        step env. The platform variables (and the side-channel paths when a
        side channel is open) are applied last and cannot be overridden.
        """
        env: Dict[str, str] = {}
        if self.job is not None:
            if self.job.job.container is not None:
                env.update(self.job.job.container.env)
            env.update(self.job.job.env)
        env.update(self.dynamic_env)
        env.update(step.env)
        env.update(PLATFORM_ENV)
        if self.side_channel is not None and self.side_channel.directory is not None:
            env["GITHUB_ENV"] = ENV_FILE_MOUNT
            env["GITHUB_OUTPUT"] = OUTPUT_FILE_MOUNT
        return env


# ---------------------------------------------------------------------
# Collaborators handed to step workflows
# ---------------------------------------------------------------------

class SourceControl(Protocol):
    def clone_action(self, url: str, ref: str, dest: str | Path) -> None:
        ...

    def read_action_metadata(self, path: str | Path) -> ActionMetadata:
        ...


@dataclass
class StepServices:
    runtime: ContainerRuntime
    git: SourceControl
    settings: Settings = field(default_factory=Settings)
    console: Console = field(default_factory=Console)
    cancel: threading.Event = field(default_factory=threading.Event)
