# context.py
"""
Trigger context: the data expressions can read.

Paths are dot-separated and the first segment picks a namespace:

    github.<field>              event_name, ref, sha, actor, repository, workspace
    github.event[.<key>...]     nested walk through the trigger payload
    env.<NAME>
    secrets.<NAME>
    jobs.<job>.status
    jobs.<job>.outputs.<name>
    steps.<id>.outcome
    steps.<id>.outputs.<name>
    matrix.<key>

Anything else (unknown namespace, wrong number of segments, missing key)
is "not found", never an error.
"""

from __future__ import annotations

import copy
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .git_facts.git import GitInfo, read_git_info

_NOT_FOUND: Tuple[Any, bool] = (None, False)

GITHUB_FIELDS = ("event_name", "ref", "sha", "actor", "repository", "workspace")


@dataclass
class GitHubInfo:
    event_name: str = ""
    ref: str = ""
    sha: str = ""
    actor: str = ""
    repository: str = ""
    workspace: str = ""
    event: Dict[str, Any] = field(default_factory=dict)


@dataclass
class JobStatus:
    status: str = ""
    outputs: Dict[str, str] = field(default_factory=dict)


@dataclass
class StepStatus:
    outcome: str = ""
    outputs: Dict[str, str] = field(default_factory=dict)


@dataclass
class TriggerContext:
    github: GitHubInfo = field(default_factory=GitHubInfo)
    env: Dict[str, str] = field(default_factory=dict)
    secrets: Dict[str, str] = field(default_factory=dict)
    matrix: Dict[str, Any] = field(default_factory=dict)
    jobs: Dict[str, JobStatus] = field(default_factory=dict)
    steps: Dict[str, StepStatus] = field(default_factory=dict)

    def lookup(self, path: str) -> Tuple[Any, bool]:
        """Resolve a dotted path. Returns (value, found)."""
        parts = split_path(path)
        if not parts:
            return _NOT_FOUND

        namespace, rest = parts[0], parts[1:]

        if namespace == "github":
            return self._lookup_github(rest)
        if namespace == "env":
            return _lookup_flat(self.env, rest)
        if namespace == "secrets":
            return _lookup_flat(self.secrets, rest)
        if namespace == "matrix":
            return _lookup_flat(self.matrix, rest)
        if namespace == "jobs":
            job = self.jobs.get(rest[0]) if rest else None
            if job is None:
                return _NOT_FOUND
            return _lookup_result(rest[1:], "status", job.status, job.outputs)
        if namespace == "steps":
            step = self.steps.get(rest[0]) if rest else None
            if step is None:
                return _NOT_FOUND
            return _lookup_result(rest[1:], "outcome", step.outcome, step.outputs)

        return _NOT_FOUND

    def _lookup_github(self, parts: List[str]) -> Tuple[Any, bool]:
        if not parts:
            return _NOT_FOUND

        key = parts[0]
        if key == "event":
            return lookup_nested(self.github.event, parts[1:])
        if key in GITHUB_FIELDS and len(parts) == 1:
            return getattr(self.github, key), True
        return _NOT_FOUND

    # ---- mutation as jobs/steps complete ----

    def record_job(self, name: str, status: str, outputs: Optional[Mapping[str, str]] = None) -> None:
        self.jobs[name] = JobStatus(status=status, outputs=dict(outputs or {}))

    def record_step(self, step_id: str, outcome: str, outputs: Optional[Mapping[str, str]] = None) -> None:
        self.steps[step_id] = StepStatus(outcome=outcome, outputs=dict(outputs or {}))

    def snapshot(self) -> "TriggerContext":
        return copy.deepcopy(self)


def split_path(path: str) -> List[str]:
    return [p for p in path.split(".") if p]


def _lookup_flat(mapping: Mapping[str, Any], parts: List[str]) -> Tuple[Any, bool]:
    if len(parts) != 1:
        return _NOT_FOUND
    if parts[0] in mapping:
        return mapping[parts[0]], True
    return _NOT_FOUND


def _lookup_result(
    parts: List[str],
    status_field: str,
    status: str,
    outputs: Mapping[str, str],
) -> Tuple[Any, bool]:
    if len(parts) == 1 and parts[0] == status_field:
        return status, True
    if len(parts) == 2 and parts[0] == "outputs":
        if parts[1] in outputs:
            return outputs[parts[1]], True
    return _NOT_FOUND


def lookup_nested(value: Any, parts: Sequence[str]) -> Tuple[Any, bool]:
    for part in parts:
        if not isinstance(value, dict) or part not in value:
            return _NOT_FOUND
        value = value[part]
    return value, True


# ---------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------

def default_event_payload(event_name: str) -> Dict[str, Any]:
    if event_name == "push":
        return {"ref": "", "before": "", "after": "", "commits": []}
    if event_name == "pull_request":
        return {
            "action": "opened",
            "number": 1,
            "pull_request": {"number": 1, "title": "", "body": ""},
        }
    return {}


def parse_secrets(pairs: Sequence[str]) -> Dict[str, str]:
    """KEY=VALUE strings to a dict; entries without '=' are ignored."""
    secrets: Dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if sep and key:
            secrets[key] = value
    return secrets


def build_context(
    *,
    event_name: str = "push",
    ref: str = "",
    event_payload: Optional[Dict[str, Any]] = None,
    secrets: Optional[Mapping[str, str]] = None,
    git_info: Optional[GitInfo] = None,
    environ: Optional[Mapping[str, str]] = None,
    cwd: Optional[str] = None,
) -> TriggerContext:
    """
    Build a TriggerContext from local repository facts and options.

    Args:
        event_name: Simulated trigger (push, pull_request, ...).
        ref: Overrides the ref read from git when non-empty.
        event_payload: Trigger payload; a default shape for the event otherwise.
        secrets: Values for `secrets.*`.
        git_info: Pre-read git facts; read from `cwd` when omitted.
        environ: Snapshot for `env.*`; the process environment when omitted.

    Raises:
        GitError: git_info was not given and cwd is not a git repository.
    """
    info = git_info if git_info is not None else read_git_info(cwd=cwd)
    environ = os.environ if environ is None else environ

    return TriggerContext(
        github=GitHubInfo(
            event_name=event_name,
            ref=ref or info.ref,
            sha=info.sha,
            actor=info.actor,
            repository=info.repository,
            workspace=info.workspace,
            event=event_payload if event_payload is not None else default_event_payload(event_name),
        ),
        env=dict(environ),
        secrets=dict(secrets or {}),
    )
