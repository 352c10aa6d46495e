"""Relationship discovery and graph helpers."""

from relations.discover import Edge, discover
from relations.domains import DomainPolicy, ExactDomain, SharedRoot
from relations.graph import (
    build_relationship_graph,
    find_cycles,
    reachable_from,
    referenced_by,
)

__all__ = [
    "DomainPolicy",
    "Edge",
    "ExactDomain",
    "SharedRoot",
    "build_relationship_graph",
    "discover",
    "find_cycles",
    "reachable_from",
    "referenced_by",
]
