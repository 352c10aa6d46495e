"""Staged extraction of record metadata."""

from extraction.context import ExtractionContext, ExtractionState
from extraction.conventions import SELF_TOKEN, CapabilityCheck, detect_conventions
from extraction.pipeline import ExtractionError, ExtractionPipeline, Stage

__all__ = [
    "SELF_TOKEN",
    "CapabilityCheck",
    "ExtractionContext",
    "ExtractionError",
    "ExtractionPipeline",
    "ExtractionState",
    "Stage",
    "detect_conventions",
]
