"""Factories for constructing components from configuration."""

from __future__ import annotations

from .browser.base import BrowserDriver
from .browser.playwright_driver import PlaywrightDriver
from .config import EngineConfig
from .engine.executor import CommandExecutor
from .service import AutomationService
from .sessions.registry import SessionRegistry


def build_driver(config: EngineConfig) -> BrowserDriver:
    return PlaywrightDriver(config.browser)


def build_registry(config: EngineConfig, driver: BrowserDriver | None = None) -> SessionRegistry:
    return SessionRegistry(driver or build_driver(config), config.timeouts)


def build_service(config: EngineConfig, driver: BrowserDriver | None = None) -> AutomationService:
    return AutomationService(
        build_registry(config, driver),
        config=config,
        executor=CommandExecutor(config.timeouts),
    )
