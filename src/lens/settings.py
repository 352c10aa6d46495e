from __future__ import annotations

from pathlib import Path
from typing import Any

import tomllib
from pydantic import BaseModel, ConfigDict, Field, field_validator

from descriptors.tags import BASELINE_TAGS
from policy.engine import VALID_CODECS

CONFIG_FILENAME = "typelens.toml"


class LensSettings(BaseModel):
    """Settings read once when a Lens is created."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    strict: bool = Field(
        default=False,
        description="Raise on policy violations instead of recording warnings",
    )
    domain_root_segments: int = Field(
        default=3,
        ge=1,
        description="Leading module path segments that define a scan boundary",
    )
    baseline_tags: tuple[str, ...] = Field(
        default=BASELINE_TAGS,
        description="Annotation keys extracted for every field",
    )
    tags: tuple[str, ...] = Field(
        default=(),
        description="Extra annotation keys registered at startup",
    )
    codecs: tuple[str, ...] = Field(
        default=tuple(sorted(VALID_CODECS)),
        description="Codec names accepted by type policies",
    )

    @field_validator("baseline_tags", "tags", "codecs", mode="before")
    @classmethod
    def validate_names(cls, v: Any) -> Any:
        if not isinstance(v, (list, tuple)):
            msg = "expected a list of names"
            raise TypeError(msg)
        for name in v:
            if not isinstance(name, str) or not name:
                msg = f"names must be non-empty strings, got {name!r}"
                raise ValueError(msg)
        return tuple(v)


class ConfigError(Exception):
    """Raised when config file exists but cannot be parsed."""


def load_settings(root: Path) -> LensSettings:
    """Load settings from typelens.toml if it exists."""
    config_path = Path(root) / CONFIG_FILENAME

    if not config_path.is_file():
        return LensSettings()

    try:
        with config_path.open("rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        msg = f"Invalid TOML in {config_path}: {e}"
        raise ConfigError(msg) from e

    try:
        return LensSettings.model_validate(data)
    except Exception as e:
        msg = f"Invalid config in {config_path}: {e}"
        raise ConfigError(msg) from e


__all__ = ["CONFIG_FILENAME", "ConfigError", "LensSettings", "load_settings"]
