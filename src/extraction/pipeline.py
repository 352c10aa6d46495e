"""Ordered extraction stages turning a record class into Metadata."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING

from descriptors.adapter import UnsupportedTypeKind, describe
from extraction.context import ExtractionContext, ExtractionState
from extraction.conventions import detect_conventions
from policy.engine import VALID_CODECS, PolicyEngine, PolicyViolationError
from relations.discover import discover

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from descriptors.tags import TagRegistry
    from extraction.conventions import CapabilityCheck
    from policy.models import Policy
    from relations.domains import DomainPolicy

logger = logging.getLogger(__name__)


class ExtractionError(Exception):
    """Raised when extracted metadata fails structural validation."""

    def __init__(self, stage: str, type_name: str, message: str) -> None:
        self.stage = stage
        self.type_name = type_name
        super().__init__(f"{stage} failed for {type_name or '<unnamed>'}: {message}")


@dataclass(frozen=True)
class Stage:
    name: str
    state: ExtractionState
    run: Callable[[ExtractionContext], None]


class ExtractionPipeline:
    """Immutable snapshot of the configuration used to extract metadata.

    A new pipeline is built whenever the configuration changes; a pipeline
    that is already running keeps the snapshot it started with.
    """

    def __init__(
        self,
        *,
        tags: TagRegistry,
        policies: Iterable[Policy] = (),
        capabilities: Mapping[str, CapabilityCheck] | None = None,
        strict: bool = False,
        valid_codecs: Iterable[str] = VALID_CODECS,
    ) -> None:
        self._tags = tags
        self._engine = PolicyEngine(policies, valid_codecs=valid_codecs)
        self._conventions = tuple(
            convention
            for policy in self._engine.policies
            for convention in policy.conventions
        )
        self._capabilities = MappingProxyType(dict(capabilities or {}))
        self._strict = strict
        self._stages = (
            Stage("resolve-descriptor", ExtractionState.DESCRIPTOR_RESOLVED, self._resolve),
            Stage("apply-policies", ExtractionState.POLICIES_APPLIED, self._apply_policies),
            Stage(
                "detect-conventions",
                ExtractionState.CONVENTIONS_DETECTED,
                self._detect_conventions,
            ),
            Stage(
                "extract-relationships",
                ExtractionState.RELATIONSHIPS_EXTRACTED,
                self._extract_relationships,
            ),
            Stage("validate", ExtractionState.VALIDATED, self._validate),
        )

    @property
    def policies(self) -> tuple[Policy, ...]:
        return self._engine.policies

    @property
    def capabilities(self) -> Mapping[str, CapabilityCheck]:
        return self._capabilities

    @property
    def strict(self) -> bool:
        return self._strict

    @property
    def stages(self) -> tuple[str, ...]:
        return tuple(stage.name for stage in self._stages)

    def run(self, cls: type, domains: DomainPolicy) -> ExtractionContext:
        """Run every stage in order; the first failure stops the pipeline."""
        ctx = ExtractionContext(cls=cls, domains=domains)
        for stage in self._stages:
            try:
                stage.run(ctx)
            except (UnsupportedTypeKind, PolicyViolationError, ExtractionError):
                logger.debug("Extraction of %r stopped at stage %s", cls, stage.name)
                raise
            ctx.advance(stage.state)
        logger.debug("Extracted %s (%d edges)", ctx.descriptor.fqn, len(ctx.edges))
        return ctx

    def _resolve(self, ctx: ExtractionContext) -> None:
        ctx.descriptor = describe(ctx.cls, self._tags.keys())

    def _apply_policies(self, ctx: ExtractionContext) -> None:
        descriptor = ctx.descriptor
        result = self._engine.apply(descriptor.type_name, descriptor.fields)
        ctx.policy_result = result
        ctx.classification = result.classification
        ctx.codecs = list(result.codecs)
        ctx.warnings.extend(result.warnings)
        if result.ok:
            return
        if self._strict:
            raise PolicyViolationError(descriptor.type_name, result.errors)
        logger.warning(
            "Policy violations for %s: %s", descriptor.fqn, "; ".join(result.errors)
        )
        ctx.warnings.extend(result.errors)

    def _detect_conventions(self, ctx: ExtractionContext) -> None:
        ctx.conventions = detect_conventions(
            ctx.cls, self._conventions, self._capabilities
        )

    def _extract_relationships(self, ctx: ExtractionContext) -> None:
        ctx.edges = discover(ctx.descriptor, ctx.domains)

    def _validate(self, ctx: ExtractionContext) -> None:
        descriptor = ctx.descriptor
        if not descriptor.type_name:
            raise ExtractionError("validate", "", "type name is empty")
        if not descriptor.fqn:
            raise ExtractionError("validate", descriptor.type_name, "fqn is empty")
        seen: set[str] = set()
        for working in descriptor.fields:
            if working.name in seen:
                msg = f"duplicate field name {working.name!r}"
                raise ExtractionError("validate", descriptor.type_name, msg)
            seen.add(working.name)


__all__ = ["ExtractionError", "ExtractionPipeline", "Stage"]
