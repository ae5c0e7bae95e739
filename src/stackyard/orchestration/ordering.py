"""
Execution order of a resource graph.

Creation follows the dependency references; destruction walks the same edges
in reverse so dependents are torn down before what they depend on.
"""

from __future__ import annotations

from graphlib import CycleError, TopologicalSorter

from stackyard.core.errors import CyclicDependencyError
from stackyard.resources.graph import ResourceGraph


def dependency_map(graph: ResourceGraph, *, strict: bool = True) -> dict[str, set[str]]:
    """Return ``{identifier: direct dependency identifiers}`` for every resource."""
    return {r.id: graph.dependency_ids(r, strict=strict) for r in graph}


def reverse_map(dependencies: dict[str, set[str]]) -> dict[str, set[str]]:
    """Invert a dependency map so each resource waits on its dependents."""
    reversed_deps: dict[str, set[str]] = {identifier: set() for identifier in dependencies}
    for identifier, deps in dependencies.items():
        for dep in deps:
            reversed_deps.setdefault(dep, set()).add(identifier)
    return reversed_deps


def prepared_sorter(dependencies: dict[str, set[str]]) -> TopologicalSorter[str]:
    """Build and prepare a sorter, raising :class:`CyclicDependencyError` on cycles."""
    sorter: TopologicalSorter[str] = TopologicalSorter(dependencies)
    try:
        sorter.prepare()
    except CycleError as e:
        raise CyclicDependencyError(list(e.args[1])) from e
    return sorter


def _drain(sorter: TopologicalSorter[str], position: dict[str, int]) -> list[str]:
    order: list[str] = []
    while sorter.is_active():
        ready = sorted(sorter.get_ready(), key=lambda i: position.get(i, len(position)))
        order.extend(ready)
        sorter.done(*ready)
    return order


def creation_order(graph: ResourceGraph) -> list[str]:
    """
    Return identifiers so that every resource follows all of its dependencies.

    Resources that become ready together keep their declaration order.

    Raises:
        DependencyUnresolvedError: a reference does not resolve
        CyclicDependencyError: the references form a cycle
    """
    graph.validate()
    position = {r.id: i for i, r in enumerate(graph)}
    return _drain(prepared_sorter(dependency_map(graph)), position)


def destruction_order(graph: ResourceGraph) -> list[str]:
    """
    Return identifiers so that every resource precedes its dependencies.

    References to resources no longer in the graph are ignored, since a
    previous teardown may already have removed them.
    """
    position = {r.id: i for i, r in enumerate(graph)}
    deps = reverse_map(dependency_map(graph, strict=False))
    return _drain(prepared_sorter(deps), position)
