"""Façade composing the registry, the parser and the executor."""

from __future__ import annotations

import concurrent.futures
import logging
import threading
import time
import uuid
from typing import Any, Callable, Optional, TypeVar

from playwright.sync_api import Error as PlaywrightError

from .config import EngineConfig
from .engine.chat_parser import ChatCommandParser
from .engine.executor import CommandExecutor
from .errors import (
    CommandTimeout,
    ElementNotFound,
    InvalidCommand,
    NavigationError,
    ParseError,
    SessionNotFound,
)
from .models import (
    ActionType,
    Command,
    CommandResult,
    NavigationResult,
    PageMetadata,
    ScreenshotOptions,
    SessionInfo,
    SessionOptions,
)
from .sessions.registry import ManagedSession, SessionRegistry

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class AutomationService:
    """Serve session and command requests for any number of callers.

    Work for one session is queued on that session's worker, so commands for
    the same id run one at a time in the order they were accepted, while
    different sessions proceed in parallel.
    """

    def __init__(
        self,
        registry: SessionRegistry,
        *,
        config: Optional[EngineConfig] = None,
        executor: Optional[CommandExecutor] = None,
        parser: Optional[ChatCommandParser] = None,
    ) -> None:
        self._config = config or EngineConfig()
        self._registry = registry
        self._executor = executor or CommandExecutor(self._config.timeouts)
        self._parser = parser or ChatCommandParser()

    # Sessions ----------------------------------------------------------------

    @property
    def default_options(self) -> SessionOptions:
        return self._config.browser.session_options()

    def create_session(
        self,
        session_id: Optional[str] = None,
        options: Optional[SessionOptions] = None,
    ) -> SessionInfo:
        session_id = session_id or f"session-{uuid.uuid4().hex[:12]}"
        options = options or self.default_options
        managed = self._registry.create(session_id, options)
        return SessionInfo.from_session(managed.session)

    def list_sessions(self) -> list[str]:
        return self._registry.list()

    def close_session(self, session_id: str) -> bool:
        return self._registry.close(session_id)

    def shutdown(self) -> None:
        LOGGER.info("Closing all sessions")
        self._registry.close_all()

    # Page operations ---------------------------------------------------------

    def navigate(self, session_id: str, url: str) -> NavigationResult:
        timeout = self._config.timeouts.navigation_timeout
        wait_until = self._config.navigation_wait_until

        def _goto(managed: ManagedSession) -> NavigationResult:
            page = managed.handle.page
            try:
                response = page.goto(url, wait_until=wait_until, timeout=timeout * 1000)
            except PlaywrightError as exc:
                raise NavigationError(session_id, url, exc.message) from exc
            return NavigationResult(
                url=page.url,
                status_code=response.status if response else None,
            )

        LOGGER.info("Session %s: navigating to %s", session_id, url)
        try:
            return self._run(session_id, _goto, timeout=timeout + 5, operation="navigate")
        except CommandTimeout as exc:
            raise NavigationError(session_id, url, exc.message) from exc

    def execute_command(self, session_id: str, command: Command) -> CommandResult:
        ActionType.parse(command.action)
        timeout = self._config.timeouts.command_timeout
        cancel = threading.Event()

        def _execute(managed: ManagedSession) -> CommandResult:
            return self._executor.execute(
                managed.handle.page,
                command,
                session_id=session_id,
                deadline=time.monotonic() + timeout,
                cancel_event=cancel,
            )

        LOGGER.info(
            "Session %s: executing %s on %r", session_id, command.action, command.target
        )
        return self._run(
            session_id,
            _execute,
            timeout=timeout,
            operation=command.action,
            cancel_event=cancel,
        )

    def parse_chat(self, sentence: str) -> Command:
        """Parse *sentence*, degrading to a click on the whole sentence if allowed."""

        try:
            return self._parser.parse(sentence)
        except ParseError:
            if not self._config.chat_fallback_click or not sentence.strip():
                raise
            LOGGER.info("Unparsable chat command %r; falling back to click", sentence)
            return Command(action=ActionType.CLICK.value, target=sentence.strip())

    def execute_chat(self, session_id: str, sentence: str) -> CommandResult:
        command = self.parse_chat(sentence)
        if command.action_type == ActionType.NAVIGATE:
            navigation = self.navigate(session_id, command.value or "")
            return CommandResult(action=ActionType.NAVIGATE, data=navigation.model_dump())
        return self.execute_command(session_id, command)

    def screenshot(self, session_id: str, options: Optional[ScreenshotOptions] = None) -> bytes:
        options = options or ScreenshotOptions()
        attempt_timeout = self._config.timeouts.attempt_timeout

        def _capture(managed: ManagedSession) -> bytes:
            kwargs: dict[str, Any] = {"type": options.format.value}
            if options.quality is not None and options.format.value == "jpeg":
                kwargs["quality"] = options.quality
            page = managed.handle.page
            if options.selector:
                element = page.locator(options.selector).first
                try:
                    return element.screenshot(timeout=attempt_timeout * 1000, **kwargs)
                except PlaywrightError as exc:
                    raise ElementNotFound(options.selector) from exc
            return page.screenshot(full_page=options.full_page, **kwargs)

        return self._run(session_id, _capture, operation="screenshot")

    def get_content(self, session_id: str) -> str:
        return self._run(session_id, lambda managed: managed.handle.page.content(), operation="content")

    def get_metadata(self, session_id: str) -> PageMetadata:
        def _metadata(managed: ManagedSession) -> PageMetadata:
            page = managed.handle.page
            return PageMetadata(url=page.url, title=page.title(), session_id=session_id)

        return self._run(session_id, _metadata, operation="metadata")

    # Helpers -----------------------------------------------------------------

    def _run(
        self,
        session_id: str,
        fn: Callable[[ManagedSession], T],
        *,
        operation: str,
        timeout: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> T:
        managed = self._registry.get(session_id)
        if timeout is None:
            timeout = self._config.timeouts.command_timeout
        try:
            future = managed.worker.submit(lambda: fn(managed))
        except RuntimeError as exc:
            # The worker was shut down by a concurrent close.
            raise SessionNotFound(session_id) from exc
        try:
            return future.result(timeout=timeout)
        except concurrent.futures.TimeoutError as exc:
            if cancel_event is not None:
                cancel_event.set()
            future.cancel()
            LOGGER.warning("Session %s: %s timed out after %ss", session_id, operation, timeout)
            raise CommandTimeout(operation, timeout, session_id=session_id) from exc
        except concurrent.futures.CancelledError as exc:
            raise SessionNotFound(session_id) from exc
        except PlaywrightError as exc:
            raise InvalidCommand(f"{operation} failed: {exc.message}", session_id=session_id) from exc
