# step_workflows/action.py
"""
`uses:` steps.

Reference shapes:

    ./path/to/action          local action, metadata read from the workspace
    docker://image[:tag]      run the image directly, no metadata
    owner/repo[@ref]          cloned from GitHub into the action cache

Run mechanisms from action metadata:

    docker                    prebuilt image (Dockerfile builds are rejected)
    node12 / node16 / node20  `node <main>` in the matching node image
    composite                 nested `run:` steps through the shell step
"""

from __future__ import annotations

import os
from dataclasses import replace
from pathlib import Path
from typing import Dict, Tuple

from ..docker_client import ContainerConfig, VolumeMount
from ..errors import ActionMetadataError, UnsupportedActionError
from ..logging import get_logger
from ..model import ActionMetadata, Step
from ..runtime import RunState, StepServices
from ..settings import ACTION_MOUNT, DEFAULT_NODE_MAIN, NODE_IMAGES, WORKSPACE_MOUNT
from . import shell

log = get_logger(__name__)

DOCKER_SCHEME = "docker://"


def input_env(inputs: Dict[str, str]) -> Dict[str, str]:
    """`with:` values as INPUT_<NAME> variables (upper-cased, '-' -> '_')."""
    return {f"INPUT_{name.replace('-', '_').upper()}": value for name, value in inputs.items()}


def with_defaults(step: Step, metadata: ActionMetadata) -> Dict[str, str]:
    """Declared input defaults, overridden by the step's `with:`."""
    values = {name: decl.default for name, decl in metadata.inputs.items() if decl.default}
    values.update(step.inputs)
    return values


def parse_repository_ref(ref: str, default_ref: str) -> Tuple[str, str]:
    """'owner/repo@v1' -> ('owner/repo', 'v1'); the ref defaults to default_ref."""
    repo, sep, version = ref.partition("@")
    return repo, (version if sep and version else default_ref)


def action_cache_path(cache_dir: str, repo: str, ref: str) -> Path:
    return Path(cache_dir) / repo.replace("/", "-") / ref


def applies(step: Step) -> bool:
    return bool(step.uses)


def execute(step: Step, state: RunState, services: StepServices) -> int:
    """
    Resolve the action reference and run it; return the exit code.

    Raises:
        UnsupportedActionError: unknown reference shape or run mechanism.
        ActionMetadataError: metadata missing or invalid.
        GitError: cloning a repository action failed.
        ContainerRuntimeError: a container operation failed.
    """
    ref = step.uses

    if ref.startswith("./"):
        path = Path(state.working_dir) / ref
        metadata = _read_metadata(services, path, ref)
        return run_with_metadata(step, metadata, path, state, services)

    if ref.startswith(DOCKER_SCHEME):
        image = ref[len(DOCKER_SCHEME):]
        if not image:
            raise UnsupportedActionError(f"missing image in action reference: {ref}")
        return _run_image(step, image, step.inputs, state, services)

    if "/" in ref:
        repo, version = parse_repository_ref(ref, services.settings.default_action_ref)
        dest = action_cache_path(services.settings.action_cache_dir, repo, version)
        log.debug("action_clone", repository=repo, ref=version, dest=str(dest))
        services.git.clone_action(f"https://github.com/{repo}", version, dest)
        metadata = _read_metadata(services, dest, ref)
        return run_with_metadata(step, metadata, dest, state, services)

    raise UnsupportedActionError(f"unsupported action format: {ref}")


def _read_metadata(services: StepServices, path: Path, ref: str) -> ActionMetadata:
    try:
        return services.git.read_action_metadata(path)
    except ActionMetadataError as e:
        raise ActionMetadataError(f"failed to load action metadata for {ref}: {e.message}") from e


def run_with_metadata(
    step: Step,
    metadata: ActionMetadata,
    action_path: Path,
    state: RunState,
    services: StepServices,
) -> int:
    using = metadata.runs.using

    if using == "docker":
        image = metadata.runs.image
        if image.startswith("Dockerfile"):
            raise UnsupportedActionError("Dockerfile-based actions are not supported yet")
        if image.startswith(DOCKER_SCHEME):
            image = image[len(DOCKER_SCHEME):]
        if not image:
            raise ActionMetadataError(f"docker action {step.uses} declares no image")
        return _run_image(step, image, with_defaults(step, metadata), state, services, metadata.runs.env)

    if using in NODE_IMAGES:
        return _run_node(step, metadata, action_path, state, services)

    if using == "composite":
        return _run_composite(step, metadata, state, services)

    raise UnsupportedActionError(f"unsupported action type: {using or '<empty>'}")


def _action_env(
    step: Step,
    inputs: Dict[str, str],
    state: RunState,
    runs_env: Dict[str, str] | None = None,
) -> Dict[str, str]:
    # runs.env and inputs sit below the step's own env; platform vars still win.
    layered = replace(step, env={**(runs_env or {}), **input_env(inputs), **step.env})
    return state.step_environment(layered)


def _run_image(
    step: Step,
    image: str,
    inputs: Dict[str, str],
    state: RunState,
    services: StepServices,
    runs_env: Dict[str, str] | None = None,
) -> int:
    config = ContainerConfig(
        image=image,
        env=_action_env(step, inputs, state, runs_env),
        working_dir=WORKSPACE_MOUNT,
        mounts=shell.workspace_mounts(state),
    )
    return shell.run_container(step, config, state, services)


def _run_node(
    step: Step,
    metadata: ActionMetadata,
    action_path: Path,
    state: RunState,
    services: StepServices,
) -> int:
    image = NODE_IMAGES[metadata.runs.using]
    main = metadata.runs.main or DEFAULT_NODE_MAIN

    mounts = shell.workspace_mounts(state)
    mounts.append(VolumeMount(source=os.path.abspath(action_path), target=ACTION_MOUNT))

    config = ContainerConfig(
        image=image,
        command=["node", main],
        env=_action_env(step, with_defaults(step, metadata), state, metadata.runs.env),
        working_dir=ACTION_MOUNT,
        mounts=mounts,
    )
    return shell.run_container(step, config, state, services)


def _run_composite(
    step: Step,
    metadata: ActionMetadata,
    state: RunState,
    services: StepServices,
) -> int:
    """
    Run each nested step through the shell step, stopping at the first
    non-zero exit. Nested `uses:` steps and steps with nothing to run are
    rejected before anything runs, so expansion is never more than one
    level deep.
    """
    nested_uses = [s.uses for s in metadata.runs.steps if s.uses and not s.run]
    if nested_uses:
        raise UnsupportedActionError(
            f"composite action {step.uses} uses other actions ({', '.join(nested_uses)}); "
            "only run steps are supported"
        )
    if any(not s.run for s in metadata.runs.steps):
        raise UnsupportedActionError(
            f"composite action {step.uses} has a step with neither run nor uses"
        )

    inputs = input_env(with_defaults(step, metadata))
    for nested in metadata.runs.steps:
        env = {**metadata.runs.env, **inputs, **step.env, **nested.env}
        # nested steps share the outer step's id so containers are tracked under it
        exit_code = shell.execute(replace(nested, id=step.id, env=env), state, services)
        if exit_code != 0:
            return exit_code
    return 0
