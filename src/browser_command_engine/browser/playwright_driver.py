"""Playwright-powered browser driver."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

from playwright.sync_api import sync_playwright

from ..config import BrowserDefaults
from ..models import BrowserKind, SessionOptions
from .base import BrowserDriver, BrowserHandle

LOGGER = logging.getLogger(__name__)


class PlaywrightDriver(BrowserDriver):
    """Launch sessions with Playwright's sync API.

    The sync API binds a Playwright instance to the thread that started it, so
    each launch starts its own instance and hands it to the session handle.
    """

    def __init__(self, defaults: Optional[BrowserDefaults] = None) -> None:
        self._defaults = defaults or BrowserDefaults()

    def launch(self, session_id: str, options: SessionOptions) -> BrowserHandle:
        LOGGER.debug("Starting Playwright for session %s", session_id)
        playwright = sync_playwright().start()
        try:
            browser_type = _browser_type(playwright, options.browser_kind)
            launch_kwargs: dict[str, Any] = {"headless": options.headless}
            if options.browser_kind is BrowserKind.CHROMIUM:
                launch_kwargs["args"] = list(self._defaults.launch_args)
            browser = browser_type.launch(**launch_kwargs)
            context = browser.new_context(**self._context_kwargs(session_id, options))
            page = context.new_page()
        except Exception:
            playwright.stop()
            raise
        _attach_page_logging(session_id, page)
        LOGGER.info(
            "Browser session %s launched (%s, headless=%s)",
            session_id,
            options.browser_kind.value,
            options.headless,
        )
        return BrowserHandle(browser=browser, context=context, page=page, driver=playwright)

    def _context_kwargs(self, session_id: str, options: SessionOptions) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "viewport": {"width": options.viewport.width, "height": options.viewport.height},
            "locale": options.locale,
            "ignore_https_errors": options.ignore_https_errors,
        }
        if options.user_agent:
            kwargs["user_agent"] = options.user_agent
        if options.record_video:
            video_dir: Path = self._defaults.recordings_dir / session_id
            video_dir.mkdir(parents=True, exist_ok=True)
            kwargs["record_video_dir"] = str(video_dir)
        return kwargs


def _browser_type(playwright: Any, kind: BrowserKind) -> Any:
    if kind is BrowserKind.FIREFOX:
        return playwright.firefox
    if kind is BrowserKind.WEBKIT:
        return playwright.webkit
    return playwright.chromium


def _attach_page_logging(session_id: str, page: Any) -> None:
    page.on(
        "console",
        lambda message: LOGGER.debug(
            "[browser:%s] console %s: %s", session_id, message.type, message.text
        ),
    )
    page.on(
        "pageerror",
        lambda error: LOGGER.warning("[browser:%s] page error: %s", session_id, error),
    )
