"""Configuration holder and the seal/unseal state machine."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from extraction.pipeline import ExtractionPipeline
from lens.errors import (
    AlreadySealed,
    ConfigurationNotSealed,
    ConfigurationSealed,
    NotSealed,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from descriptors.tags import TagRegistry
    from extraction.conventions import CapabilityCheck
    from lens.cache import PermanentCache
    from lens.settings import LensSettings
    from policy.models import Policy

logger = logging.getLogger(__name__)


class ConfigurationState:
    """Shared state behind a Lens and its Admin.

    Every transition happens under ``lock``; extractions take an immutable
    pipeline snapshot plus the cache generation and then run unlocked.
    """

    def __init__(
        self, settings: LensSettings, tags: TagRegistry, cache: PermanentCache
    ) -> None:
        self.lock = threading.RLock()
        self.tags = tags
        self.cache = cache
        self.policies: tuple[Policy, ...] = ()
        self.capabilities: dict[str, CapabilityCheck] = {}
        self.strict = settings.strict
        self.codecs = settings.codecs
        self.sealed = False
        self.session = 0
        self.pipeline = self._build_pipeline()

    def _build_pipeline(self) -> ExtractionPipeline:
        return ExtractionPipeline(
            tags=self.tags,
            policies=self.policies,
            capabilities=self.capabilities,
            strict=self.strict,
            valid_codecs=self.codecs,
        )

    def mutate(self, operation: str) -> None:
        """Fail while sealed; call with ``lock`` held."""
        if self.sealed:
            msg = f"cannot {operation}: configuration is sealed"
            raise ConfigurationSealed(msg)

    def rebuild(self) -> None:
        self.pipeline = self._build_pipeline()
        self.cache.clear()

    def seal(self, *, automatic: bool = False) -> None:
        with self.lock:
            if self.sealed:
                msg = "configuration is already sealed"
                raise AlreadySealed(msg)
            self.sealed = True
            self.session += 1
        logger.info(
            "Configuration %ssealed (session %d, %d policies)",
            "auto-" if automatic else "",
            self.session,
            len(self.policies),
        )

    def unseal(self) -> None:
        with self.lock:
            if not self.sealed:
                msg = "configuration is not sealed"
                raise NotSealed(msg)
            self.sealed = False
            self.session += 1
            self.cache.clear()
        logger.info("Configuration unsealed (session %d)", self.session)

    def acquire(self) -> tuple[ExtractionPipeline, int]:
        """Return the pipeline snapshot and cache generation for an extraction.

        The first extraction before any seal seals the configuration. Once a
        seal has happened, extracting while unsealed is an ordering error.
        """
        with self.lock:
            if not self.sealed:
                if self.session:
                    msg = "configuration was unsealed; call seal() before inspecting"
                    raise ConfigurationNotSealed(msg)
                self.seal(automatic=True)
            return self.pipeline, self.cache.generation


class Admin:
    """The single mutable configuration holder of a Lens.

    Policies, capability checks and the strict switch can only change while
    unsealed. Each change swaps in a new pipeline snapshot and clears the
    cache.
    """

    def __init__(self, state: ConfigurationState) -> None:
        self._state = state

    def set_policies(self, policies: Iterable[Policy]) -> None:
        with self._state.lock:
            self._state.mutate("set policies")
            self._state.policies = tuple(policies)
            self._state.rebuild()

    def add_policy(self, *policies: Policy) -> None:
        with self._state.lock:
            self._state.mutate("add policy")
            self._state.policies = (*self._state.policies, *policies)
            self._state.rebuild()

    def get_policies(self) -> list[Policy]:
        with self._state.lock:
            return list(self._state.policies)

    def register_capability(self, name: str, check: CapabilityCheck) -> None:
        """Register a predicate reported as convention ``name`` when it holds."""
        if not name:
            msg = "capability name must be a non-empty string"
            raise ValueError(msg)
        with self._state.lock:
            self._state.mutate("register capability")
            self._state.capabilities = {**self._state.capabilities, name: check}
            self._state.rebuild()

    def set_strict(self, strict: bool) -> None:
        with self._state.lock:
            self._state.mutate("change strict mode")
            self._state.strict = strict
            self._state.rebuild()

    @property
    def strict(self) -> bool:
        return self._state.strict

    def seal(self) -> None:
        self._state.seal()

    def unseal(self) -> None:
        self._state.unseal()

    def is_sealed(self) -> bool:
        with self._state.lock:
            return self._state.sealed

    def config_session(self) -> int:
        with self._state.lock:
            return self._state.session


__all__ = ["Admin", "ConfigurationState"]
