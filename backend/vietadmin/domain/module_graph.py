"""
Module dependency rules.

A module may declare dependencies on other module keys together with a
dependency type:

- ``all``: every dependency must be enabled
- ``any``: at least one dependency must be enabled

A module with no dependencies is always satisfied, and an unknown dependency
key counts as a disabled module. These helpers are pure and never touch the
database.
"""
from collections.abc import Collection, Iterable, Mapping, Sequence

from ..models.admin_module import DependencyType


def unmet_dependencies(
    dependencies: Sequence[str] | None,
    dependency_type: str | None,
    enabled_keys: Collection[str],
) -> list[str]:
    """Return the dependency keys blocking the module, empty when satisfied."""
    if not dependencies:
        return []

    missing = [key for key in dependencies if key not in enabled_keys]
    if dependency_type == DependencyType.ANY.value:
        # one enabled dependency is enough
        return missing if len(missing) == len(dependencies) else []
    return missing


def is_satisfied(
    dependencies: Sequence[str] | None,
    dependency_type: str | None,
    enabled_keys: Collection[str],
) -> bool:
    return not unmet_dependencies(dependencies, dependency_type, enabled_keys)


def find_cycle(graph: Mapping[str, Iterable[str]], start: str) -> list[str] | None:
    """Return a dependency path from ``start`` back to itself, if one exists."""
    stack: list[tuple[str, list[str]]] = [(start, [start])]
    visited: set[str] = set()
    while stack:
        node, path = stack.pop()
        for dependency in graph.get(node, ()):
            if dependency == start:
                return [*path, start]
            if dependency not in visited:
                visited.add(dependency)
                stack.append((dependency, [*path, dependency]))
    return None
