# testing.py
"""
In-memory stand-ins for the container runtime and source control, so the
executor can be exercised without Docker or git.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional

from .docker_client import ContainerConfig
from .errors import ActionMetadataError, ContainerRuntimeError, GitError, RunCancelled
from .model import ActionMetadata

# Called when a container "runs": receives the config and returns
# (exit code, log output). Side effects such as writing to the
# GITHUB_ENV / GITHUB_OUTPUT files go here.
Behavior = Callable[[ContainerConfig], "tuple[int, str]"]


def host_path(config: ContainerConfig, target: str) -> Optional[Path]:
    """Host path bind-mounted at `target`, if any."""
    for mount in config.mounts:
        if mount.target == target:
            return Path(mount.source)
    return None


@dataclass
class FakeRuntime:
    """Records every call; containers exit with whatever `behavior` returns."""

    behavior: Optional[Behavior] = None
    fail_on: Dict[str, str] = field(default_factory=dict)   # method -> error message
    block_wait: bool = False

    calls: List[tuple] = field(default_factory=list)
    configs: Dict[str, ContainerConfig] = field(default_factory=dict)
    results: Dict[str, "tuple[int, str]"] = field(default_factory=dict)
    closed: bool = False
    _next: int = 0

    def _record(self, method: str, *args) -> None:
        self.calls.append((method, *args))
        if method in self.fail_on:
            raise ContainerRuntimeError(self.fail_on[method])

    def ping(self) -> str:
        self._record("ping")
        return "fake"

    def pull(self, image: str) -> None:
        self._record("pull", image)

    def create(self, config: ContainerConfig) -> str:
        self._record("create", config.image)
        self._next += 1
        container_id = f"container-{self._next}"
        self.configs[container_id] = config
        return container_id

    def start(self, container_id: str) -> None:
        self._record("start", container_id)

    def wait(self, container_id: str, cancel: Optional[threading.Event] = None) -> int:
        self._record("wait", container_id)
        if self.block_wait:
            # behaves like a container that never exits on its own
            while cancel is not None and not cancel.wait(0.01):
                pass
            raise RunCancelled()
        config = self.configs[container_id]
        result = self.behavior(config) if self.behavior else (0, "")
        self.results[container_id] = result
        return result[0]

    def logs(self, container_id: str) -> str:
        self._record("logs", container_id)
        return self.results.get(container_id, (0, ""))[1]

    def stop(self, container_id: str) -> None:
        self._record("stop", container_id)

    def remove(self, container_id: str) -> None:
        self._record("remove", container_id)

    def close(self) -> None:
        self.closed = True

    # ---- helpers for assertions ----

    def methods(self) -> List[str]:
        return [c[0] for c in self.calls]

    def created(self) -> List[ContainerConfig]:
        return list(self.configs.values())


@dataclass
class FakeGit:
    """Source control double: serves action metadata from a dict keyed by path."""

    actions: Dict[str, ActionMetadata] = field(default_factory=dict)
    clone_error: Optional[str] = None
    clones: List[tuple] = field(default_factory=list)

    def clone_action(self, url: str, ref: str, dest: str | Path) -> None:
        self.clones.append((url, ref, str(dest)))
        if self.clone_error:
            raise GitError(self.clone_error)

    def read_action_metadata(self, path: str | Path) -> ActionMetadata:
        key = str(path)
        if key not in self.actions:
            raise ActionMetadataError(f"action metadata not found in {key}")
        return self.actions[key]
