"""Resolve commands against a page and execute them."""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Optional

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from ..browser.frames import FrameScanner
from ..config import TimeoutPolicy
from ..errors import (
    CommandTimeout,
    ElementNotFound,
    InvalidCommand,
    NavigationError,
    OptionNotFound,
)
from ..models import (
    DOCUMENT_ACTIONS,
    ActionType,
    AttemptOutcome,
    Command,
    CommandResult,
    DocumentModel,
    DocumentRef,
    ExecutionAttempt,
)
from .selectors import SelectorCandidate, SelectorStrategyGenerator, looks_like_selector, quote

LOGGER = logging.getLogger(__name__)

AttemptCallback = Callable[[ExecutionAttempt], None]


class _NoUsableElement(Exception):
    """The selector matched, but not an element the action can use."""


class _AttemptExpired(Exception):
    """The attempt used up its budget between two driver calls."""


class CommandExecutor:
    """Try every candidate selector in every document until one succeeds.

    Documents are scanned main document first, then frames in report order;
    within a document candidates are tried in list order. The first success
    wins and nothing is retried. Each attempt gets its own short timeout,
    clamped to whatever remains of the command budget.
    """

    def __init__(
        self,
        timeouts: Optional[TimeoutPolicy] = None,
        *,
        scanner: Optional[FrameScanner] = None,
        generator: Optional[SelectorStrategyGenerator] = None,
        on_attempt: Optional[AttemptCallback] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._timeouts = timeouts or TimeoutPolicy()
        self._scanner = scanner or FrameScanner()
        self._generator = generator or SelectorStrategyGenerator()
        self._on_attempt = on_attempt
        self._clock = clock

    def candidates_for(self, command: Command) -> list[SelectorCandidate]:
        target = (command.target or "").strip()
        if target and looks_like_selector(target, command.options):
            return self._generator.for_selector(target)
        return self._generator.for_target(target, command.action_type)

    def execute(
        self,
        page: Any,
        command: Command,
        *,
        session_id: str = "",
        deadline: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> CommandResult:
        action = command.action_type
        if deadline is None:
            deadline = self._clock() + self._timeouts.command_timeout
        if action in DOCUMENT_ACTIONS:
            return self._execute_on_document(page, command, action, session_id, deadline)
        _validate_value(command, action)

        candidates = self.candidates_for(command)
        if not candidates:
            raise ElementNotFound(command.target, attempts=0)

        attempts: list[ExecutionAttempt] = []
        for ref, frame in self._scanner.documents_of(page):
            for candidate in candidates:
                self._check_budget(deadline, cancel_event, command)
                timeout_ms = self._attempt_timeout_ms(command, deadline)
                started = self._clock()
                attempt_deadline = started + timeout_ms / 1000
                try:
                    resolved, data = self._attempt(
                        frame, candidate, action, command, attempt_deadline
                    )
                except (PlaywrightTimeoutError, _AttemptExpired):
                    outcome = AttemptOutcome.TIMEOUT
                except (PlaywrightError, _NoUsableElement):
                    outcome = AttemptOutcome.NOT_FOUND
                else:
                    outcome = AttemptOutcome.SUCCESS
                attempt = self._record(attempts, ref, candidate, outcome, started, session_id)
                if attempt.outcome is AttemptOutcome.SUCCESS:
                    LOGGER.info(
                        "Session %s: %s on %r resolved to %s in %s",
                        session_id,
                        action.value,
                        command.target,
                        resolved,
                        ref.describe(),
                    )
                    return CommandResult(
                        action=action,
                        resolved_selector=resolved,
                        document=DocumentModel.from_ref(ref),
                        data=data,
                        attempts=len(attempts),
                    )

        LOGGER.info(
            "Session %s: %s on %r exhausted %d attempts",
            session_id,
            action.value,
            command.target,
            len(attempts),
        )
        raise ElementNotFound(command.target, attempts=len(attempts))

    # Element actions ---------------------------------------------------------

    def _attempt(
        self,
        frame: Any,
        candidate: SelectorCandidate,
        action: ActionType,
        command: Command,
        attempt_deadline: float,
    ) -> tuple[str, Any]:
        def left() -> float:
            return self._left_ms(attempt_deadline)

        expression, element = self._resolve(frame, candidate, left)
        data: Any = None
        if action == ActionType.CLICK:
            element.click(timeout=left())
        elif action == ActionType.TYPE:
            value = command.value or ""
            if command.options.get("simulate_typing"):
                element.fill("", timeout=left())
                element.press_sequentially(
                    value,
                    delay=_number_option(command, "typing_delay", 50),
                    timeout=left(),
                )
            else:
                element.fill(value, timeout=left())
        elif action == ActionType.SELECT:
            data = self._select(element, command, left)
        elif action == ActionType.HOVER:
            element.hover(timeout=left())
        elif action == ActionType.CHECK:
            element.check(timeout=left())
        elif action == ActionType.UNCHECK:
            element.uncheck(timeout=left())
        elif action == ActionType.WAIT_FOR_ELEMENT:
            element.wait_for(state="visible", timeout=left())
        return expression, data

    @staticmethod
    def _resolve(
        frame: Any, candidate: SelectorCandidate, left: Callable[[], float]
    ) -> tuple[str, Any]:
        locator = frame.locator(candidate.expression).first
        if not candidate.follow_label:
            return candidate.expression, locator
        target_id = locator.get_attribute("for", timeout=left())
        if not target_id:
            return candidate.expression, locator
        expression = f"[id={quote(target_id)}]"
        return expression, frame.locator(expression).first

    @staticmethod
    def _select(element: Any, command: Command, left: Callable[[], float]) -> str:
        element.wait_for(state="attached", timeout=left())
        labels = [label.strip() for label in element.locator("option").all_text_contents()]
        if not labels:
            raise _NoUsableElement(command.target)
        wanted = (command.value or "").lower()
        for index, label in enumerate(labels):
            if wanted in label.lower():
                element.select_option(index=index, timeout=left())
                return label
        raise OptionNotFound(command.target, command.value or "", labels)

    # Document actions --------------------------------------------------------

    def _execute_on_document(
        self,
        page: Any,
        command: Command,
        action: ActionType,
        session_id: str,
        deadline: float,
    ) -> CommandResult:
        remaining_ms = self._remaining_ms(deadline, command)
        wait_until = command.options.get("wait_until", "load")
        data: Any = None
        try:
            if action == ActionType.EVALUATE:
                if not isinstance(command.value, str) or not command.value.strip():
                    raise InvalidCommand("evaluate requires a non-empty expression")
                data = page.evaluate(command.value)
            elif action == ActionType.WAIT_FOR_NAVIGATION:
                if command.value:
                    page.wait_for_url(command.value, wait_until=wait_until, timeout=remaining_ms)
                else:
                    page.wait_for_load_state(wait_until, timeout=remaining_ms)
            elif action == ActionType.NAVIGATE:
                data = self._navigate(page, command, session_id, wait_until, remaining_ms)
            elif action == ActionType.WAIT:
                seconds = _number(command.value, "wait", default=0)
                page.wait_for_timeout(min(seconds * 1000, remaining_ms))
        except PlaywrightTimeoutError as exc:
            raise CommandTimeout(
                action.value,
                remaining_ms / 1000,
                session_id=session_id or None,
            ) from exc
        except PlaywrightError as exc:
            raise InvalidCommand(f"{action.value} failed: {exc.message}") from exc
        LOGGER.info("Session %s: %s completed on main document", session_id, action.value)
        return CommandResult(
            action=action,
            document=DocumentModel(index=0, url=page.url),
            data=data,
        )

    @staticmethod
    def _navigate(
        page: Any,
        command: Command,
        session_id: str,
        wait_until: str,
        timeout_ms: float,
    ) -> dict[str, Any]:
        if not command.value:
            raise InvalidCommand("navigate requires a URL")
        try:
            response = page.goto(command.value, wait_until=wait_until, timeout=timeout_ms)
        except PlaywrightError as exc:
            raise NavigationError(session_id, command.value, exc.message) from exc
        return {"url": page.url, "status_code": response.status if response else None}

    # Budget helpers ----------------------------------------------------------

    def _check_budget(
        self,
        deadline: float,
        cancel_event: Optional[threading.Event],
        command: Command,
    ) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise CommandTimeout(command.action, self._timeouts.command_timeout, target=command.target)
        if self._clock() >= deadline:
            raise CommandTimeout(command.action, self._timeouts.command_timeout, target=command.target)

    def _remaining_ms(self, deadline: float, command: Command) -> float:
        remaining = deadline - self._clock()
        if remaining <= 0:
            raise CommandTimeout(command.action, self._timeouts.command_timeout, target=command.target)
        return remaining * 1000

    def _attempt_timeout_ms(self, command: Command, deadline: float) -> float:
        per_attempt = _number_option(command, "timeout", self._timeouts.attempt_timeout)
        return min(per_attempt * 1000, self._remaining_ms(deadline, command))

    def _left_ms(self, attempt_deadline: float) -> float:
        remaining = (attempt_deadline - self._clock()) * 1000
        if remaining <= 0:
            raise _AttemptExpired()
        return remaining

    def _record(
        self,
        attempts: list[ExecutionAttempt],
        ref: DocumentRef,
        candidate: SelectorCandidate,
        outcome: AttemptOutcome,
        started: float,
        session_id: str,
    ) -> ExecutionAttempt:
        attempt = ExecutionAttempt(
            document_ref=ref,
            selector=candidate.expression,
            outcome=outcome,
            elapsed_ms=(self._clock() - started) * 1000,
        )
        attempts.append(attempt)
        LOGGER.debug(
            "Session %s: %s [%s] in %s -> %s (%.0f ms)",
            session_id,
            candidate.expression,
            candidate.strategy,
            ref.describe(),
            outcome.value,
            attempt.elapsed_ms,
        )
        if self._on_attempt is not None:
            self._on_attempt(attempt)
        return attempt


def _validate_value(command: Command, action: ActionType) -> None:
    if action == ActionType.TYPE and command.value is None:
        raise InvalidCommand("type requires a value", target=command.target)
    if action == ActionType.SELECT and not command.value:
        raise InvalidCommand("select requires a value", target=command.target)
    for option in ("timeout", "typing_delay"):
        _number_option(command, option, 0)


def _number(value: Any, name: str, *, default: float) -> float:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        raise InvalidCommand(f"{name} must be a number", value=value) from None


def _number_option(command: Command, option: str, default: float) -> float:
    return _number(command.options.get(option), f"option {option!r}", default=default)
