"""The Lens: inspection, scanning and read access to cached metadata."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any

from descriptors.adapter import describe, qualified_name, resolve_record
from descriptors.tags import TagRegistry
from extraction.context import ExtractionState
from lens.admin import Admin, ConfigurationState
from lens.cache import PermanentCache
from lens.errors import ConfigurationAlreadyExists
from lens.settings import LensSettings, load_settings
from metadata.models import placeholder_for
from metadata.serialize import dump_schema
from relations import graph
from relations.discover import discover
from relations.domains import ExactDomain, SharedRoot

if TYPE_CHECKING:
    from pathlib import Path

    from extraction.context import ExtractionContext
    from extraction.pipeline import ExtractionPipeline
    from metadata.models import Metadata, TypeRelationship

logger = logging.getLogger(__name__)


class Lens:
    """Extracts and caches structural metadata for record types.

    A Lens is an explicit context object: it owns the cache, the annotation
    key registry and the configuration lifecycle. Create one per application
    (or per test) and pass it around.
    """

    def __init__(self, settings: LensSettings | None = None) -> None:
        self._settings = settings or LensSettings()
        self._tags = TagRegistry(self._settings.baseline_tags, self._settings.tags)
        self._cache = PermanentCache()
        self._config = ConfigurationState(self._settings, self._tags, self._cache)
        self._inspect_domains = ExactDomain()
        self._scan_domains = SharedRoot(self._settings.domain_root_segments)
        self._admin_lock = threading.Lock()
        self._admin: Admin | None = None

    @classmethod
    def from_root(cls, root: Path) -> Lens:
        return cls(load_settings(root))

    @property
    def settings(self) -> LensSettings:
        return self._settings

    def admin(self) -> Admin:
        """Create the configuration holder; only one may exist per Lens."""
        with self._admin_lock:
            if self._admin is not None:
                msg = "an admin already exists for this lens"
                raise ConfigurationAlreadyExists(msg)
            self._admin = Admin(self._config)
            return self._admin

    def inspect(self, tp: Any) -> Metadata:
        """Metadata for one record type, with same-module relationships only.

        Raises:
            UnsupportedTypeKind: If ``tp`` does not normalize to a record.
            ConfigurationNotSealed: If called after an explicit unseal.
            PolicyViolationError: In strict mode, when a policy fails.
        """
        cls = resolve_record(tp)
        pipeline, generation = self._config.acquire()
        key = qualified_name(cls)
        cached = self._cache.get(key)
        if cached is not None:
            return cached
        ctx = pipeline.run(cls, self._inspect_domains)
        return self._store(key, ctx, generation)

    def scan(self, tp: Any) -> Metadata:
        """Inspect ``tp`` and every record reachable within its domain root.

        Returns the root type's metadata; everything reached is cached.
        """
        cls = resolve_record(tp)
        pipeline, generation = self._config.acquire()
        visited: set[str] = set()
        return self._scan(cls, pipeline, generation, visited)

    def _scan(
        self,
        cls: type,
        pipeline: ExtractionPipeline,
        generation: int,
        visited: set[str],
    ) -> Metadata:
        key = qualified_name(cls)
        if key in visited:
            cached = self._cache.get(key)
            if cached is not None:
                return cached
            return placeholder_for(cls.__name__, cls.__module__, key)
        visited.add(key)

        cached = self._cache.get(key)
        if cached is None:
            ctx = pipeline.run(cls, self._scan_domains)
            metadata = self._store(key, ctx, generation)
            targets = ctx.targets
        else:
            metadata = cached
            descriptor = describe(cls, self._tags.keys())
            targets = [edge.target for edge in discover(descriptor, self._scan_domains)]

        for target in targets:
            self._scan(target, pipeline, generation, visited)
        return metadata

    def _store(self, key: str, ctx: ExtractionContext, generation: int) -> Metadata:
        stored = self._cache.put(key, ctx.freeze(), generation)
        ctx.advance(ExtractionState.CACHED)
        return stored

    def register_tag(self, key: str) -> bool:
        """Extract annotation ``key`` in future extractions.

        Already-cached metadata is not refreshed; clear the cache to pick the
        key up for types inspected before.
        """
        return self._tags.register(key)

    def browse(self) -> list[str]:
        return self._cache.keys()

    def lookup(self, fqn: str) -> Metadata | None:
        return self._cache.get(fqn)

    def export_schema(self) -> dict[str, Metadata]:
        return self._cache.snapshot()

    def export_schema_json(self) -> bytes:
        return dump_schema(self._cache.snapshot())

    def referenced_by(self, tp: Any) -> list[TypeRelationship]:
        """Cached relationships whose target is ``tp``."""
        cls = resolve_record(tp)
        return graph.referenced_by(self._cache.snapshot(), cls.__name__, cls.__module__)

    def relationship_graph(self) -> dict[str, set[str]]:
        return graph.build_relationship_graph(self._cache.snapshot())

    def cycles(self) -> list[list[str]]:
        """Reference cycles among cached types, self-references included."""
        return graph.find_cycles(self.relationship_graph())

    def reachable(self, tp: Any) -> list[str]:
        """Fully-qualified names reachable from ``tp`` through cached edges.

        Only relationships already in the cache are followed; ``tp`` itself is
        always part of the result.
        """
        root = qualified_name(resolve_record(tp))
        return sorted(graph.reachable_from(self.relationship_graph(), root))

    def clear_cache(self) -> None:
        self._cache.clear()

    def is_sealed(self) -> bool:
        with self._config.lock:
            return self._config.sealed

    def config_session(self) -> int:
        with self._config.lock:
            return self._config.session


__all__ = ["Lens"]
