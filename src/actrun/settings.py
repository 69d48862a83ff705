from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from typing import Mapping

# Fixed layout inside every step container.
WORKSPACE_MOUNT = "/github/workspace"
ENV_FILE_MOUNT = "/github/env/GITHUB_ENV"
OUTPUT_FILE_MOUNT = "/github/env/GITHUB_OUTPUT"
ACTION_MOUNT = "/action"

# Always present in a step's environment; job/step/dynamic env cannot override them.
PLATFORM_ENV = {
    "GITHUB_WORKSPACE": WORKSPACE_MOUNT,
    "GITHUB_ACTOR": "actrun",
    "GITHUB_REPOSITORY": "local/repo",
    "RUNNER_OS": "Linux",
    "RUNNER_ARCH": "X64",
}

NODE_IMAGES = {
    "node12": "node:12",
    "node16": "node:16",
    "node20": "node:20",
}
DEFAULT_NODE_MAIN = "index.js"


@dataclass(frozen=True)
class Settings:
    default_image: str = "ubuntu:latest"
    action_cache_dir: str = os.path.join(tempfile.gettempdir(), "actrun-actions")
    default_action_ref: str = "main"
    stop_timeout: int = 10
    wait_poll_interval: float = 0.2
    docker_binary: str = "docker"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        env = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            default_image=env.get("ACTRUN_DEFAULT_IMAGE", defaults.default_image),
            action_cache_dir=env.get("ACTRUN_ACTION_CACHE", defaults.action_cache_dir),
            default_action_ref=env.get("ACTRUN_DEFAULT_ACTION_REF", defaults.default_action_ref),
            stop_timeout=int(env.get("ACTRUN_STOP_TIMEOUT", defaults.stop_timeout)),
            wait_poll_interval=float(env.get("ACTRUN_WAIT_POLL", defaults.wait_poll_interval)),
            docker_binary=env.get("ACTRUN_DOCKER", defaults.docker_binary),
        )
