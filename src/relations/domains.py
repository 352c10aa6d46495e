"""Domain policies bounding relationship discovery."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from utils import domain_root


class DomainPolicy(Protocol):
    def accepts(self, source_domain: str, target_domain: str) -> bool: ...


@dataclass(frozen=True)
class ExactDomain:
    """Inspect mode: the target must live in the source's own module."""

    def accepts(self, source_domain: str, target_domain: str) -> bool:
        return target_domain == source_domain


@dataclass(frozen=True)
class SharedRoot:
    """Scan mode: the target must share the source's domain root.

    The root is the first ``segments`` parts of the dotted module path, a
    coarse boundary between this codebase and its dependencies.
    """

    segments: int = 3

    def accepts(self, source_domain: str, target_domain: str) -> bool:
        source_root = domain_root(source_domain, self.segments)
        return bool(source_root) and (
            domain_root(target_domain, self.segments) == source_root
        )


__all__ = ["DomainPolicy", "ExactDomain", "SharedRoot"]
