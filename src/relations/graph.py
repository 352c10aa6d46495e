"""Graph algorithms over cached relationship metadata."""

from __future__ import annotations

from collections import deque
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

    from metadata.models import Metadata, TypeRelationship


def build_relationship_graph(schema: Mapping[str, Metadata]) -> dict[str, set[str]]:
    """Build a directed graph of fully-qualified type names.

    Args:
        schema: Mapping of fully-qualified name to cached metadata

    Returns:
        Dictionary where keys are fully-qualified type names and values are
        the sets of fully-qualified names they relate to. Targets that are not
        cached are keyed as ``<to_domain>.<to_type>``.
    """
    by_name: dict[tuple[str, str], str] = {
        (metadata.domain, metadata.type_name): fqn for fqn, metadata in schema.items()
    }

    graph: dict[str, set[str]] = {fqn: set() for fqn in schema}
    for fqn, metadata in schema.items():
        for rel in metadata.relationships:
            target = by_name.get(
                (rel.to_domain, rel.to_type), f"{rel.to_domain}.{rel.to_type}"
            )
            graph[fqn].add(target)
            graph.setdefault(target, set())
    return graph


def find_cycles(graph: Mapping[str, set[str]]) -> list[list[str]]:
    """Find reference cycles (including self-references) between types.

    Strongly connected components are found with an iterative Tarjan walk, so
    deeply nested record chains do not hit the recursion limit.

    Returns:
        Sorted list of cycles, each a sorted list of type names
    """
    order: dict[str, int] = {}
    low: dict[str, int] = {}
    pending: list[str] = []
    pending_set: set[str] = set()
    cycles: list[list[str]] = []

    def visit(node: str) -> Iterator[str]:
        order[node] = low[node] = len(order)
        pending.append(node)
        pending_set.add(node)
        return iter(sorted(graph.get(node, ())))

    for start in sorted(graph):
        if start in order:
            continue
        frames = [(start, visit(start))]
        while frames:
            node, successors = frames[-1]
            descended = False
            for succ in successors:
                if succ not in order:
                    frames.append((succ, visit(succ)))
                    descended = True
                    break
                if succ in pending_set:
                    low[node] = min(low[node], order[succ])
            if descended:
                continue

            frames.pop()
            if frames:
                caller = frames[-1][0]
                low[caller] = min(low[caller], low[node])
            if low[node] != order[node]:
                continue

            component: list[str] = []
            member = None
            while member != node:
                member = pending.pop()
                pending_set.discard(member)
                component.append(member)
            if len(component) > 1 or node in graph.get(node, ()):
                cycles.append(sorted(component))

    return sorted(cycles)


def reachable_from(graph: dict[str, set[str]], root: str) -> set[str]:
    """Return every node reachable from ``root`` (inclusive), breadth first."""
    visited: set[str] = set()
    queue: deque[str] = deque([root])
    while queue:
        current = queue.popleft()
        if current in visited:
            continue
        visited.add(current)
        queue.extend(
            neighbor for neighbor in graph.get(current, ()) if neighbor not in visited
        )
    return visited


def referenced_by(
    schema: Mapping[str, Metadata], type_name: str, domain: str
) -> list[TypeRelationship]:
    """Reverse lookup: every cached relationship pointing at a type."""
    references: list[TypeRelationship] = []
    for fqn in sorted(schema):
        for rel in schema[fqn].relationships:
            if rel.to_type == type_name and rel.to_domain == domain:
                references.append(rel)
    return references


__all__ = [
    "build_relationship_graph",
    "find_cycles",
    "reachable_from",
    "referenced_by",
]
