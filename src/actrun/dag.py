# dag.py
from __future__ import annotations

from typing import Dict, Iterable, Iterator, List, Mapping, Sequence, Set, Tuple

from .errors import DependencyCycleError, DuplicateJobError, UnknownDependencyError
from .model import Job


def build_dag(jobs: Iterable[Tuple[str, Sequence[str]]]) -> Dict[str, List[str]]:
    """
    Build the dependency graph from (job name, needs) pairs.

    Returns job name -> ordered list of jobs it needs, keeping the input
    order of jobs (dicts preserve insertion order).

    Raises:
        DuplicateJobError: a job name appears twice.
        UnknownDependencyError: a job needs a job that does not exist.
    """
    pairs = list(jobs)
    names = [name for name, _ in pairs]
    if len(set(names)) != len(names):
        dupes = sorted({n for n in names if names.count(n) > 1})
        raise DuplicateJobError(f"Duplicate job names found: {dupes}")

    graph: Dict[str, List[str]] = {}
    for name, needs in pairs:
        deps: List[str] = []
        for dep in needs:
            if dep not in names:
                raise UnknownDependencyError(name, dep, names)
            if dep not in deps:
                deps.append(dep)
        graph[name] = deps

    return graph


def topo_order(graph: Mapping[str, Sequence[str]]) -> List[str]:
    """
    Depth-first topological order: every job comes after the jobs it needs.

    Roots are visited in graph order and each job's dependencies in the
    order they were declared, so the result is deterministic. A job seen
    again while still on the current path is a cycle.

    Raises:
        DependencyCycleError: with the cycle path, e.g. a -> b -> a.
    """
    order: List[str] = []
    visited: Set[str] = set()

    for root in graph:
        if root in visited:
            continue

        path: List[str] = [root]
        on_path: Set[str] = {root}
        stack: List[Iterator[str]] = [iter(graph[root])]

        while stack:
            dep = next(stack[-1], None)
            if dep is None:
                stack.pop()
                done = path.pop()
                on_path.discard(done)
                visited.add(done)
                order.append(done)
                continue

            if dep in visited:
                continue
            if dep in on_path:
                raise DependencyCycleError(path[path.index(dep):] + [dep])

            path.append(dep)
            on_path.add(dep)
            stack.append(iter(graph[dep]))

    return order


def dependency_order(jobs: Mapping[str, Job]) -> List[str]:
    """Validate the workflow's job graph and return the execution order."""
    graph = build_dag((name, job.dependencies) for name, job in jobs.items())
    return topo_order(graph)
