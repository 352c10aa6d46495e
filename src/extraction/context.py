"""Working state carried through a single extraction."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from metadata.models import FieldMetadata, Metadata

if TYPE_CHECKING:
    from descriptors.adapter import RecordDescriptor
    from policy.engine import PolicyResult
    from relations.discover import Edge
    from relations.domains import DomainPolicy


class ExtractionState(str, Enum):
    """Stages a single extraction moves through, in order."""

    DESCRIPTOR_RESOLVED = "descriptor-resolved"
    POLICIES_APPLIED = "policies-applied"
    CONVENTIONS_DETECTED = "conventions-detected"
    RELATIONSHIPS_EXTRACTED = "relationships-extracted"
    VALIDATED = "validated"
    CACHED = "cached"


_ORDER = list(ExtractionState)


@dataclass
class ExtractionContext:
    """Mutable working copy; ``freeze`` produces the immutable Metadata."""

    cls: type
    domains: DomainPolicy
    descriptor: RecordDescriptor | None = None
    state: ExtractionState | None = None
    policy_result: PolicyResult | None = None
    edges: list[Edge] = field(default_factory=list)
    conventions: list[str] = field(default_factory=list)
    classification: str | None = None
    codecs: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def targets(self) -> list[type]:
        return [edge.target for edge in self.edges]

    def advance(self, state: ExtractionState) -> None:
        expected = _ORDER[0] if self.state is None else _ORDER[_ORDER.index(self.state) + 1]
        if state is not expected:
            msg = f"cannot move extraction from {self.state} to {state}"
            raise RuntimeError(msg)
        self.state = state

    def freeze(self) -> Metadata:
        if self.descriptor is None or self.state is not ExtractionState.VALIDATED:
            msg = f"extraction of {self.cls!r} has not been validated"
            raise RuntimeError(msg)
        descriptor = self.descriptor
        return Metadata(
            type_name=descriptor.type_name,
            domain=descriptor.domain,
            fqn=descriptor.fqn,
            fields=tuple(
                FieldMetadata(
                    name=working.name,
                    type=working.type,
                    annotation=working.annotation,
                    kind=working.kind,
                    position=working.position,
                    tags=dict(working.tags),
                    embedded=working.embedded,
                )
                for working in descriptor.fields
            ),
            relationships=tuple(edge.relationship for edge in self.edges),
            conventions=tuple(self.conventions),
            classification=self.classification,
            codecs=tuple(self.codecs),
            warnings=tuple(self.warnings),
        )


__all__ = ["ExtractionContext", "ExtractionState"]
