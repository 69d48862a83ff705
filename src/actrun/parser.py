# parser.py
"""
Workflow and action YAML -> model objects.

Documents are read with yaml.safe_load and validated through pydantic
schemas that mirror the file format (aliases for `runs-on`, `if`, `with`,
...). The schemas are then converted to the frozen model dataclasses the
rest of actrun works with.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ActionMetadataError, WorkflowParseError
from .model import (
    ActionInput,
    ActionMetadata,
    ActionOutput,
    ActionRuns,
    Container,
    Job,
    Labels,
    Step,
    Strategy,
    Workflow,
)

WORKFLOWS_DIR = Path(".github") / "workflows"
ACTION_FILES = ("action.yml", "action.yaml")


# ---------------------------------------------------------------------
# YAML loading
# ---------------------------------------------------------------------

class _UniqueKeyLoader(yaml.SafeLoader):
    """SafeLoader that rejects duplicate mapping keys instead of keeping the last."""

    def construct_mapping(self, node, deep=False):
        seen = set()
        for key_node, _ in node.value:
            key = self.construct_object(key_node, deep=deep)
            if key in seen:
                raise yaml.constructor.ConstructorError(
                    None, None, f"duplicate key {key!r}", key_node.start_mark
                )
            seen.add(key)
        return super().construct_mapping(node, deep=deep)


def _load_yaml(text: str) -> Any:
    return yaml.load(text, Loader=_UniqueKeyLoader)


def scalar_to_str(value: Any) -> str:
    """YAML scalars as the strings a workflow author meant (true -> 'true')."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _str_map(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(k): scalar_to_str(v) for k, v in value.items()}
    return value


# ---------------------------------------------------------------------
# Document schemas
# ---------------------------------------------------------------------

class _Doc(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class StepDoc(_Doc):
    id: str = ""
    name: str = ""
    if_: str = Field("", alias="if")
    run: str = ""
    uses: str = ""
    with_: Dict[str, str] = Field(default_factory=dict, alias="with")
    env: Dict[str, str] = Field(default_factory=dict)

    @field_validator("id", "name", "if_", "run", "uses", mode="before")
    @classmethod
    def _scalars(cls, v: Any) -> Any:
        return scalar_to_str(v)

    @field_validator("with_", "env", mode="before")
    @classmethod
    def _maps(cls, v: Any) -> Any:
        return {} if v is None else _str_map(v)

    def to_model(self) -> Step:
        return Step(
            id=self.id,
            name=self.name,
            condition=self.if_,
            run=self.run,
            uses=self.uses,
            inputs=dict(self.with_),
            env=dict(self.env),
        )


class ContainerDoc(_Doc):
    image: str
    env: Dict[str, str] = Field(default_factory=dict)

    @field_validator("env", mode="before")
    @classmethod
    def _maps(cls, v: Any) -> Any:
        return {} if v is None else _str_map(v)


class StrategyDoc(_Doc):
    matrix: Dict[str, Any] = Field(default_factory=dict)
    fail_fast: Optional[bool] = Field(None, alias="fail-fast")
    max_parallel: int = Field(0, alias="max-parallel")


class JobDoc(_Doc):
    name: str = ""
    runs_on: Union[str, List[str], None] = Field(None, alias="runs-on")
    needs: Union[str, List[str], None] = None
    if_: str = Field("", alias="if")
    env: Dict[str, str] = Field(default_factory=dict)
    steps: List[StepDoc] = Field(default_factory=list)
    strategy: Optional[StrategyDoc] = None
    outputs: Dict[str, str] = Field(default_factory=dict)
    container: Union[str, ContainerDoc, None] = None

    @field_validator("name", "if_", mode="before")
    @classmethod
    def _scalars(cls, v: Any) -> Any:
        return scalar_to_str(v)

    @field_validator("env", "outputs", mode="before")
    @classmethod
    def _maps(cls, v: Any) -> Any:
        return {} if v is None else _str_map(v)

    @field_validator("steps", mode="before")
    @classmethod
    def _steps(cls, v: Any) -> Any:
        return [] if v is None else v

    def to_model(self, key: str) -> Job:
        container: Optional[Container] = None
        if isinstance(self.container, str):
            container = Container(image=self.container)
        elif self.container is not None:
            container = Container(image=self.container.image, env=dict(self.container.env))

        strategy: Optional[Strategy] = None
        if self.strategy is not None:
            strategy = Strategy(
                matrix=dict(self.strategy.matrix),
                fail_fast=self.strategy.fail_fast,
                max_parallel=self.strategy.max_parallel,
            )

        return Job(
            name=self.name or key,
            runs_on=to_labels(self.runs_on),
            needs=to_labels(self.needs),
            condition=self.if_,
            env=dict(self.env),
            steps=[s.to_model() for s in self.steps],
            strategy=strategy,
            outputs=dict(self.outputs),
            container=container,
        )


class WorkflowDoc(_Doc):
    name: str = ""
    on: Any = None
    env: Dict[str, str] = Field(default_factory=dict)
    jobs: Dict[str, JobDoc] = Field(default_factory=dict)

    @field_validator("env", mode="before")
    @classmethod
    def _maps(cls, v: Any) -> Any:
        return {} if v is None else _str_map(v)

    def to_model(self) -> Workflow:
        return Workflow(
            name=self.name,
            on=self.on,
            env=dict(self.env),
            jobs={key: job.to_model(key) for key, job in self.jobs.items()},
        )


class ActionInputDoc(_Doc):
    description: str = ""
    required: bool = False
    default: str = ""

    @field_validator("description", "default", mode="before")
    @classmethod
    def _scalars(cls, v: Any) -> Any:
        return scalar_to_str(v)


class ActionOutputDoc(_Doc):
    description: str = ""


class ActionRunsDoc(_Doc):
    using: str = ""
    image: str = ""
    main: str = ""
    steps: List[StepDoc] = Field(default_factory=list)
    env: Dict[str, str] = Field(default_factory=dict)

    @field_validator("env", mode="before")
    @classmethod
    def _maps(cls, v: Any) -> Any:
        return {} if v is None else _str_map(v)


class ActionDoc(_Doc):
    name: str = ""
    description: str = ""
    inputs: Dict[str, ActionInputDoc] = Field(default_factory=dict)
    outputs: Dict[str, ActionOutputDoc] = Field(default_factory=dict)
    runs: ActionRunsDoc = Field(default_factory=ActionRunsDoc)

    @field_validator("inputs", "outputs", mode="before")
    @classmethod
    def _declarations(cls, v: Any) -> Any:
        # `inputs: {token: }` declares an input with no settings
        if isinstance(v, dict):
            return {k: ({} if d is None else d) for k, d in v.items()}
        return {} if v is None else v

    def to_model(self) -> ActionMetadata:
        return ActionMetadata(
            name=self.name,
            description=self.description,
            inputs={
                k: ActionInput(description=i.description, required=i.required, default=i.default)
                for k, i in self.inputs.items()
            },
            outputs={k: ActionOutput(description=o.description) for k, o in self.outputs.items()},
            runs=ActionRuns(
                using=self.runs.using,
                image=self.runs.image,
                main=self.runs.main,
                steps=tuple(s.to_model() for s in self.runs.steps),
                env=dict(self.runs.env),
            ),
        )


def to_labels(value: Union[str, List[str], None]) -> Labels:
    if value is None:
        return Labels.empty()
    if isinstance(value, str):
        return Labels.one(value)
    return Labels.many(value)


# ---------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------

def parse_workflow(text: str, source: str = "<string>") -> Workflow:
    """
    Parse workflow YAML text.

    Raises:
        WorkflowParseError: invalid YAML or a document that does not fit
            the workflow schema.
    """
    try:
        data = _load_yaml(text)
    except yaml.YAMLError as e:
        raise WorkflowParseError(source, f"invalid YAML: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise WorkflowParseError(source, "workflow must be a mapping")

    # YAML 1.1 reads a bare `on` key as boolean true.
    if True in data:
        data["on"] = data.pop(True)

    try:
        return WorkflowDoc.model_validate(data).to_model()
    except ValidationError as e:
        raise WorkflowParseError(source, str(e)) from e


def load_workflow(path: str | Path) -> Workflow:
    """Read and parse a workflow file."""
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except OSError as e:
        raise WorkflowParseError(str(p), f"cannot read file: {e}") from e
    return parse_workflow(text, source=str(p))


def find_workflows(root: str | Path = ".") -> List[Path]:
    """*.yml / *.yaml files under <root>/.github/workflows, sorted."""
    directory = Path(root) / WORKFLOWS_DIR
    return workflow_files(directory)


def workflow_files(directory: str | Path) -> List[Path]:
    d = Path(directory)
    if not d.is_dir():
        return []
    return sorted(p for p in d.iterdir() if p.is_file() and p.suffix in (".yml", ".yaml"))


def parse_action_metadata(text: str, source: str = "<string>") -> ActionMetadata:
    """
    Raises:
        ActionMetadataError: invalid YAML or schema mismatch.
    """
    try:
        data = _load_yaml(text)
    except yaml.YAMLError as e:
        raise ActionMetadataError(f"{source}: invalid YAML: {e}") from e

    if not isinstance(data, dict):
        raise ActionMetadataError(f"{source}: action metadata must be a mapping")

    try:
        return ActionDoc.model_validate(data).to_model()
    except ValidationError as e:
        raise ActionMetadataError(f"{source}: {e}") from e


def load_action_metadata(directory: str | Path) -> ActionMetadata:
    """
    Read action.yml (or action.yaml) from an action directory.

    Raises:
        ActionMetadataError: neither file exists, or the file is invalid.
    """
    d = Path(directory)
    for filename in ACTION_FILES:
        path = d / filename
        if path.is_file():
            try:
                text = path.read_text(encoding="utf-8")
            except OSError as e:
                raise ActionMetadataError(f"{path}: cannot read file: {e}") from e
            return parse_action_metadata(text, source=str(path))
    raise ActionMetadataError(f"action metadata not found in {d} (looked for action.yml, action.yaml)")
