"""Error taxonomy raised by the command engine."""

from __future__ import annotations

from typing import Any, Optional


class EngineError(RuntimeError):
    """Base class for errors that can be rendered directly to a caller."""

    kind = "engine_error"
    status_code = 500

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = {key: value for key, value in context.items() if value is not None}

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.kind, "message": self.message, **self.context}


class LaunchError(EngineError):
    """Raised when the browser process cannot be started."""

    kind = "launch_error"
    status_code = 503

    def __init__(self, session_id: str, reason: str) -> None:
        super().__init__(
            f"Failed to launch browser for session {session_id}: {reason}",
            session_id=session_id,
        )


class SessionNotFound(EngineError):
    kind = "session_not_found"
    status_code = 404

    def __init__(self, session_id: str) -> None:
        super().__init__(f"No active session: {session_id}", session_id=session_id)


class NavigationError(EngineError):
    kind = "navigation_error"
    status_code = 502

    def __init__(self, session_id: str, url: str, reason: str) -> None:
        super().__init__(
            f"Failed to navigate to {url}: {reason}",
            session_id=session_id,
            url=url,
        )


class ElementNotFound(EngineError):
    """Raised once every document and candidate selector was tried."""

    kind = "element_not_found"
    status_code = 404

    def __init__(self, target: Optional[str], *, attempts: int = 0) -> None:
        super().__init__(f"Element not found: {target}", target=target, attempts=attempts)
        self.target = target
        self.attempts = attempts


TargetNotFound = ElementNotFound


class OptionNotFound(EngineError):
    kind = "option_not_found"
    status_code = 404

    def __init__(self, target: Optional[str], value: str, available: list[str]) -> None:
        super().__init__(
            f"No option matching {value!r} in {target}",
            target=target,
            value=value,
            available=available,
        )


class ParseError(EngineError):
    kind = "parse_error"
    status_code = 422

    def __init__(self, sentence: str, message: str = "unparsable command") -> None:
        super().__init__(message, sentence=sentence)
        self.sentence = sentence


class CommandTimeout(EngineError):
    kind = "timeout"
    status_code = 504

    def __init__(self, operation: str, seconds: float, **context: Any) -> None:
        super().__init__(f"{operation} timed out after {seconds:g}s", **context)


class UnsupportedAction(EngineError):
    kind = "unsupported_action"
    status_code = 400

    def __init__(self, action: str) -> None:
        super().__init__(f"Unsupported action: {action}", action=action)


class InvalidCommand(EngineError):
    """Raised when a command is missing a field its action requires."""

    kind = "invalid_command"
    status_code = 400
