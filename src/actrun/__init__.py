"""actrun - analyze and run GitHub Actions style workflows locally."""

from importlib.metadata import PackageNotFoundError, version as _version

try:
    __version__ = _version("actrun")
except PackageNotFoundError:
    __version__ = "development"

from .analyzer import AnalysisResult, Analyzer, analyze
from .context import TriggerContext, build_context
from .model import Job, Step, Workflow
from .parser import load_workflow, parse_workflow
from .runner import Executor

__all__ = [
    "__version__",
    "AnalysisResult",
    "Analyzer",
    "analyze",
    "TriggerContext",
    "build_context",
    "Job",
    "Step",
    "Workflow",
    "load_workflow",
    "parse_workflow",
    "Executor",
]
