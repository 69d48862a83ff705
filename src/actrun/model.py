# model.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple


@dataclass(frozen=True)
class Labels:
    """
    A field that accepts either one string or a list of strings
    (`runs-on`, `needs`).

    Build with Labels.one(...) or Labels.many(...); exactly one of the two
    representations is ever set. Use as_list() to read it.
    """
    single: Optional[str] = None
    multiple: Optional[Tuple[str, ...]] = None

    def __post_init__(self) -> None:
        if self.single is not None and self.multiple is not None:
            raise ValueError("Labels holds either a single value or a list, not both")

    @classmethod
    def one(cls, value: str) -> "Labels":
        return cls(single=value)

    @classmethod
    def many(cls, values: Sequence[str]) -> "Labels":
        return cls(multiple=tuple(values))

    @classmethod
    def empty(cls) -> "Labels":
        return cls(multiple=())

    def as_list(self) -> List[str]:
        if self.single is not None:
            return [self.single]
        return list(self.multiple or ())

    def __str__(self) -> str:
        if self.single is not None:
            return self.single
        items = self.as_list()
        if len(items) == 1:
            return items[0]
        return "[" + ", ".join(items) + "]"


@dataclass(frozen=True)
class Step:
    """A single step inside a job: either a shell command or an action."""
    id: str = ""
    name: str = ""
    condition: str = ""
    run: str = ""
    uses: str = ""
    inputs: Dict[str, str] = field(default_factory=dict)   # `with:`
    env: Dict[str, str] = field(default_factory=dict)

    @property
    def kind(self) -> str:
        # a shell command wins when both are given
        if self.run:
            return "run"
        if self.uses:
            return "action"
        return "run"


@dataclass(frozen=True)
class Container:
    image: str
    env: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Strategy:
    """Matrix strategy. Carried through untouched; never expanded."""
    matrix: Dict[str, Any] = field(default_factory=dict)
    fail_fast: Optional[bool] = None
    max_parallel: int = 0


@dataclass
class Job:
    """
    A workflow job: ordered steps + dependencies + optional condition.

    `needs` lists jobs that must reach `success` before this one runs.
    """
    name: str = ""
    runs_on: Labels = field(default_factory=Labels.empty)
    needs: Labels = field(default_factory=Labels.empty)
    condition: str = ""
    env: Dict[str, str] = field(default_factory=dict)
    steps: List[Step] = field(default_factory=list)
    strategy: Optional[Strategy] = None
    outputs: Dict[str, str] = field(default_factory=dict)
    container: Optional[Container] = None

    @property
    def dependencies(self) -> List[str]:
        return self.needs.as_list()


@dataclass
class Workflow:
    name: str = ""
    on: Any = None
    env: Dict[str, str] = field(default_factory=dict)
    jobs: Dict[str, Job] = field(default_factory=dict)   # insertion order kept for display


# ---------------------------------------------------------------------
# Action metadata (action.yml)
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class ActionInput:
    description: str = ""
    required: bool = False
    default: str = ""


@dataclass(frozen=True)
class ActionOutput:
    description: str = ""


@dataclass(frozen=True)
class ActionRuns:
    using: str = ""     # docker | node12 | node16 | node20 | composite
    image: str = ""     # docker
    main: str = ""      # node
    steps: Tuple[Step, ...] = ()   # composite
    env: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ActionMetadata:
    name: str = ""
    description: str = ""
    inputs: Dict[str, ActionInput] = field(default_factory=dict)
    outputs: Dict[str, ActionOutput] = field(default_factory=dict)
    runs: ActionRuns = field(default_factory=ActionRuns)
