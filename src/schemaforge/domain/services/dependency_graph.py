"""Collection dependency graph and cycle detection."""

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

from schemaforge.domain.entities.validation import ErrorKind, ValidationError

CYCLE_SEPARATOR = " -> "


def _relationship_targets(definition: Any) -> list[str]:
    if not isinstance(definition, dict):
        return []
    relationships = definition.get("relationships")
    if not isinstance(relationships, dict):
        return []
    targets = []
    for rel_def in relationships.values():
        if isinstance(rel_def, dict) and isinstance(rel_def.get("collection"), str):
            targets.append(rel_def["collection"])
    return targets


@dataclass(frozen=True)
class DependencyGraph:
    """Directed graph with one edge per relationship, from owner to target.

    Targets that are not themselves in the graph become leaf nodes.
    """

    edges: Mapping[str, tuple[str, ...]] = field(default_factory=dict)

    @classmethod
    def from_collections(cls, collections: Mapping[str, Any]) -> "DependencyGraph":
        return cls(
            edges={name: tuple(_relationship_targets(d)) for name, d in collections.items()}
        )

    def find_cycles(self) -> list[list[str]]:
        """Run a depth-first search from every unvisited node.

        Reaching a node already on the recursion stack records the cycle
        (closed with that node) and ends the traversal from the current root.
        Visited nodes are never re-explored, so each cycle is reported at
        most once.

        Returns:
            Cycle paths such as ``["A", "B", "C", "A"]``, in discovery order.
        """
        visited: set[str] = set()
        cycles: list[list[str]] = []

        for root in self.edges:
            if root in visited:
                continue
            cycle = self._walk(root, visited)
            if cycle:
                cycles.append(cycle)

        return cycles

    def _walk(self, root: str, visited: set[str]) -> list[str] | None:
        visited.add(root)
        path = [root]
        on_path = {root}
        frames: list[Iterator[str]] = [iter(self.edges.get(root, ()))]

        while frames:
            target = next(frames[-1], None)
            if target is None:
                frames.pop()
                on_path.discard(path.pop())
                continue
            if target in on_path:
                return path + [target]
            if target in visited:
                continue
            visited.add(target)
            path.append(target)
            on_path.add(target)
            frames.append(iter(self.edges.get(target, ())))

        return None


def cycle_error(cycle: list[str]) -> ValidationError:
    return ValidationError(
        kind=ErrorKind.CYCLE,
        path=cycle[0],
        code="CIRCULAR_DEPENDENCY",
        message=f"Circular dependency detected: {CYCLE_SEPARATOR.join(cycle)}",
    )


def detect_circular_dependencies(collections: Mapping[str, Any]) -> list[ValidationError]:
    """Report every dependency cycle among the given collections.

    Args:
        collections: Complete mapping of collection name to definition.

    Returns:
        One ``CIRCULAR_DEPENDENCY`` error per detected cycle.
    """
    graph = DependencyGraph.from_collections(collections)
    return [cycle_error(cycle) for cycle in graph.find_cycles()]
