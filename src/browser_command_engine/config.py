"""Configuration models for the browser command engine."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import BrowserKind, SessionOptions, Viewport


class BrowserDefaults(BaseModel):
    """Defaults applied to sessions created without explicit options."""

    kind: BrowserKind = BrowserKind.CHROMIUM
    headless: bool = True
    viewport_width: int = 1280
    viewport_height: int = 720
    locale: str = "en-US"
    recordings_dir: Path = Path("./recordings")
    launch_args: list[str] = Field(
        default_factory=lambda: ["--no-sandbox", "--disable-dev-shm-usage"]
    )

    def session_options(self) -> SessionOptions:
        return SessionOptions(
            browser_kind=self.kind,
            headless=self.headless,
            viewport=Viewport(width=self.viewport_width, height=self.viewport_height),
            locale=self.locale,
        )


class TimeoutPolicy(BaseModel):
    """Timeouts, in seconds, applied by the registry and the executor."""

    attempt_timeout: float = Field(
        default=2.0,
        gt=0,
        description="Budget for a single document/selector attempt.",
    )
    command_timeout: float = Field(default=30.0, gt=0)
    launch_timeout: float = Field(default=30.0, gt=0)
    navigation_timeout: float = Field(default=30.0, gt=0)
    close_timeout: float = Field(default=10.0, gt=0)


class ServerConfig(BaseModel):
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8787)


class EngineConfig(BaseSettings):
    """Top-level configuration for the engine and its HTTP surface."""

    model_config = SettingsConfigDict(
        env_prefix="BROWSER_ENGINE_",
        env_file=(".env",),
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    browser: BrowserDefaults = Field(default_factory=BrowserDefaults)
    timeouts: TimeoutPolicy = Field(default_factory=TimeoutPolicy)
    server: ServerConfig = Field(default_factory=ServerConfig)
    chat_fallback_click: bool = Field(
        default=True,
        description="Treat unparsable chat sentences as 'click <sentence>'.",
    )
    navigation_wait_until: str = Field(default="load")


def load_config(
    path: Path | None = None,
    *,
    env_file: Path | None = None,
    **overrides: object,
) -> EngineConfig:
    """Load configuration from an optional YAML file and overrides."""

    data: dict[str, Any] = {}
    if path:
        import yaml

        data = yaml.safe_load(path.read_text()) or {}
    if overrides:
        _deep_update(data, overrides)
    settings_kwargs: dict[str, object] = {}
    if env_file is not None:
        settings_kwargs["_env_file"] = env_file
    config = EngineConfig(**data, **settings_kwargs)
    if not data:
        return config

    merged = config.model_dump(mode="python")
    _deep_update(merged, data)
    return EngineConfig.model_validate(merged)


def _deep_update(target: dict[str, Any], updates: Mapping[str, Any]) -> None:
    """Recursively merge ``updates`` into ``target`` in-place."""

    for key, value in updates.items():
        if isinstance(value, Mapping) and isinstance(existing := target.get(key), Mapping):
            nested: dict[str, Any]
            if isinstance(existing, dict):
                nested = existing
            else:
                nested = dict(existing)
            _deep_update(nested, value)
            target[key] = nested
        else:
            target[key] = value

