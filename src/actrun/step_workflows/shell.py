# step_workflows/shell.py
from __future__ import annotations

from typing import List, Optional

from ..docker_client import ContainerConfig, VolumeMount
from ..errors import ContainerRuntimeError
from ..logging import get_logger
from ..model import Step
from ..runtime import ContainerRecord, RunState, StepServices
from ..settings import ENV_FILE_MOUNT, OUTPUT_FILE_MOUNT, WORKSPACE_MOUNT
from ..substitution import substitute

log = get_logger(__name__)


# ---------------------------------------------------------------------
# Shared container helpers (also used by action steps)
# ---------------------------------------------------------------------

def workspace_mounts(state: RunState) -> List[VolumeMount]:
    """Workspace bind plus the two side-channel files when a side channel is open."""
    mounts = [VolumeMount(source=state.working_dir, target=WORKSPACE_MOUNT)]
    channel = state.side_channel
    if channel is not None and channel.directory is not None:
        channel.ensure_files()
        mounts.append(VolumeMount(source=str(channel.env_file), target=ENV_FILE_MOUNT))
        mounts.append(VolumeMount(source=str(channel.output_file), target=OUTPUT_FILE_MOUNT))
    return mounts


def _cleanup(services: StepServices, container_id: str) -> None:
    # Never fatal: a container we cannot stop/remove must not fail the run.
    runtime = services.runtime
    try:
        runtime.stop(container_id)
    except ContainerRuntimeError as e:
        log.warning("container_stop_failed", container_id=container_id[:12], error=str(e))
    try:
        runtime.remove(container_id)
    except ContainerRuntimeError as e:
        log.warning("container_remove_failed", container_id=container_id[:12], error=str(e))


def run_container(
    step: Step,
    config: ContainerConfig,
    state: RunState,
    services: StepServices,
) -> int:
    """
    Pull, create, start and wait for a container; return its exit code.

    The container's combined output is printed once it exits. Stop and
    remove always run afterwards, and their failures are only logged.

    Raises:
        ContainerRuntimeError: pull/create/start/wait/logs failed.
        RunCancelled: the run's cancel event was set while waiting.
    """
    runtime = services.runtime

    services.console.print_image_pull(config.image)
    runtime.pull(config.image)

    container_id = runtime.create(config)
    record = ContainerRecord(id=container_id, image=config.image)
    state.containers[step.id] = record
    try:
        runtime.start(container_id)
        record.status = "running"

        exit_code = runtime.wait(container_id, services.cancel)
        services.console.print_container_output(runtime.logs(container_id))
        log.debug("container_exited", container_id=container_id[:12], exit_code=exit_code)
        return exit_code
    finally:
        _cleanup(services, container_id)
        state.containers.pop(step.id, None)


# ---------------------------------------------------------------------
# Shell step
# ---------------------------------------------------------------------

def select_image(state: RunState, services: StepServices) -> str:
    job = state.job.job if state.job is not None else None
    if job is not None and job.container is not None and job.container.image:
        return job.container.image
    return services.settings.default_image


def build_command(step: Step, state: RunState) -> List[str]:
    script = substitute(step.run, state.step_outputs, state.dynamic_env)
    return ["sh", "-c", script]


def applies(step: Step) -> bool:
    return bool(step.run)


def execute(step: Step, state: RunState, services: StepServices, image: Optional[str] = None) -> int:
    """Run `step.run` with `sh -c` in a container; return the exit code."""
    config = ContainerConfig(
        image=image or select_image(state, services),
        command=build_command(step, state),
        env=state.step_environment(step),
        working_dir=WORKSPACE_MOUNT,
        mounts=workspace_mounts(state),
    )
    return run_container(step, config, state, services)
