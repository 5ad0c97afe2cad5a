"""Configuration and config file management."""

from __future__ import annotations

import pathlib
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from web_testutil.constants import (
    CONFIG_FILE,
    DEFAULT_BASE_SEGMENT,
    DEFAULT_INTERVAL_MS,
    DEFAULT_TIMEOUT_MS,
)
from web_testutil.core.errors import ConfigError


class WaitDefaults(BaseModel):
    timeout_ms: int = Field(default=DEFAULT_TIMEOUT_MS, gt=0)
    interval_ms: int = Field(default=DEFAULT_INTERVAL_MS, gt=0)


class LocatorConfig(BaseModel):
    dialect: Literal["browser", "python"] = "python"
    base_segment: str = DEFAULT_BASE_SEGMENT


class LogConfig(BaseModel):
    path: Optional[str] = None
    echo: bool = False


class ToolkitConfig(BaseModel):
    wait: WaitDefaults = Field(default_factory=WaitDefaults)
    locator: LocatorConfig = Field(default_factory=LocatorConfig)
    log: LogConfig = Field(default_factory=LogConfig)


class ConfigStore:
    """Manages web-testutil.yaml read/write."""

    def __init__(self, path: str | pathlib.Path | None = None):
        self.path = pathlib.Path(path or CONFIG_FILE)

    def load(self) -> ToolkitConfig:
        if not self.path.exists():
            return ToolkitConfig()
        try:
            raw = yaml.safe_load(self.path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Cannot parse {self.path}: {exc}") from exc
        if not isinstance(raw, dict):
            raise ConfigError(f"{self.path} must contain a mapping, got {type(raw).__name__}")
        try:
            return ToolkitConfig(**raw)
        except ValidationError as exc:
            raise ConfigError(f"Invalid configuration in {self.path}:\n{exc}") from exc

    def save(self, config: ToolkitConfig) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            yaml.safe_dump(config.model_dump(exclude_none=True), sort_keys=False),
            encoding="utf-8",
        )

    def ensure_default(self) -> bool:
        """Write a default config file. Returns False if one already exists."""
        if self.path.exists():
            return False
        self.save(ToolkitConfig())
        return True
