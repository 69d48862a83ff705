# docker_client.py
# Container runtime used by the executor.
# The executor only depends on the ContainerRuntime protocol; DockerCLI is
# the concrete implementation and drives the `docker` command line.

from __future__ import annotations

import subprocess
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol

from .errors import ContainerRuntimeError, RunCancelled
from .logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class VolumeMount:
    source: str
    target: str
    type: str = "bind"


@dataclass
class ContainerConfig:
    image: str
    command: List[str] = field(default_factory=list)
    env: Dict[str, str] = field(default_factory=dict)
    working_dir: str = ""
    mounts: List[VolumeMount] = field(default_factory=list)


class ContainerRuntime(Protocol):
    def create(self, config: ContainerConfig) -> str:
        ...

    def start(self, container_id: str) -> None:
        ...

    def stop(self, container_id: str) -> None:
        ...

    def remove(self, container_id: str) -> None:
        ...

    def pull(self, image: str) -> None:
        ...

    def wait(self, container_id: str, cancel: Optional[threading.Event] = None) -> int:
        ...

    def logs(self, container_id: str) -> str:
        ...

    def close(self) -> None:
        ...


# ---------------------------------------------------------------------
# docker CLI implementation
# ---------------------------------------------------------------------

class DockerCLI:
    """ContainerRuntime backed by the `docker` binary."""

    def __init__(
        self,
        binary: str = "docker",
        *,
        stop_timeout: int = 10,
        poll_interval: float = 0.2,
    ):
        self.binary = binary
        self.stop_timeout = stop_timeout
        self.poll_interval = poll_interval

    def _docker(self, args: List[str]) -> str:
        """
        Run a docker subcommand and return its stdout, stripped.

        Raises:
            ContainerRuntimeError: docker is missing or exited non-zero.
        """
        try:
            out = subprocess.run(
                [self.binary, *args],
                text=True,
                capture_output=True,
                check=True,
            )
        except FileNotFoundError as e:
            raise ContainerRuntimeError(
                f"{self.binary} command not found. Install Docker and ensure the daemon is running."
            ) from e
        except subprocess.CalledProcessError as e:
            detail = (e.stderr or e.stdout or "").strip()
            raise ContainerRuntimeError(f"docker {args[0]} failed: {detail}") from e
        return out.stdout.strip()

    def ping(self) -> str:
        """Server version; raises ContainerRuntimeError if the daemon is unreachable."""
        return self._docker(["version", "--format", "{{.Server.Version}}"])

    def create(self, config: ContainerConfig) -> str:
        args = ["create"]
        if config.working_dir:
            args.extend(["--workdir", config.working_dir])
        for key, value in config.env.items():
            args.extend(["--env", f"{key}={value}"])
        for m in config.mounts:
            args.extend(["--mount", f"type={m.type},source={m.source},target={m.target}"])
        args.append(config.image)
        args.extend(config.command)

        container_id = self._docker(args)
        log.debug("container_created", container_id=container_id[:12], image=config.image)
        return container_id

    def start(self, container_id: str) -> None:
        self._docker(["start", container_id])
        log.debug("container_started", container_id=container_id[:12])

    def stop(self, container_id: str) -> None:
        self._docker(["stop", "--time", str(self.stop_timeout), container_id])

    def remove(self, container_id: str) -> None:
        self._docker(["rm", "--force", container_id])

    def image_exists(self, image: str) -> bool:
        try:
            self._docker(["image", "inspect", image])
        except ContainerRuntimeError:
            return False
        return True

    def pull(self, image: str) -> None:
        """Make sure `image` is available locally, pulling it if needed."""
        if self.image_exists(image):
            log.debug("image_present", image=image)
            return
        log.debug("image_pull", image=image)
        self._docker(["pull", "--quiet", image])

    def wait(self, container_id: str, cancel: Optional[threading.Event] = None) -> int:
        """
        Block until the container exits and return its exit code.

        The cancel event is checked every poll_interval seconds; once it is
        set the wait is abandoned and RunCancelled is raised.
        """
        try:
            proc = subprocess.Popen(
                [self.binary, "wait", container_id],
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
            )
        except FileNotFoundError as e:
            raise ContainerRuntimeError(f"{self.binary} command not found") from e

        while True:
            try:
                out, err = proc.communicate(timeout=self.poll_interval)
                break
            except subprocess.TimeoutExpired:
                if cancel is not None and cancel.is_set():
                    proc.kill()
                    proc.communicate()
                    raise RunCancelled()

        if proc.returncode != 0:
            raise ContainerRuntimeError(f"docker wait failed: {(err or '').strip()}")

        try:
            return int(out.strip().splitlines()[-1])
        except (ValueError, IndexError) as e:
            raise ContainerRuntimeError(f"unexpected docker wait output: {out!r}") from e

    def logs(self, container_id: str) -> str:
        """Combined stdout and stderr of the container."""
        try:
            out = subprocess.run(
                [self.binary, "logs", container_id],
                text=True,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                check=True,
            )
        except (FileNotFoundError, subprocess.CalledProcessError) as e:
            raise ContainerRuntimeError(f"docker logs failed: {e}") from e
        return out.stdout

    def close(self) -> None:
        # Nothing is held open between calls.
        return None
