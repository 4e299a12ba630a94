"""Shared models used across the command engine."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, Field

from .errors import UnsupportedAction


class BrowserKind(str, enum.Enum):
    """Browser engines a session can be launched with."""

    CHROMIUM = "chromium"
    FIREFOX = "firefox"
    WEBKIT = "webkit"


class ActionType(str, enum.Enum):
    """Interactions a command can request."""

    CLICK = "click"
    TYPE = "type"
    SELECT = "select"
    HOVER = "hover"
    CHECK = "check"
    UNCHECK = "uncheck"
    WAIT_FOR_ELEMENT = "waitForElement"
    WAIT_FOR_NAVIGATION = "waitForNavigation"
    EVALUATE = "evaluate"
    NAVIGATE = "navigate"
    WAIT = "wait"

    @classmethod
    def parse(cls, value: str | ActionType) -> ActionType:
        if isinstance(value, ActionType):
            return value
        normalized = value.strip().replace("_", "").replace("-", "").lower()
        for member in cls:
            if member.value.lower() == normalized:
                return member
        raise UnsupportedAction(value)


# Actions that operate on the page rather than on a resolved element.
DOCUMENT_ACTIONS = frozenset(
    {
        ActionType.WAIT_FOR_NAVIGATION,
        ActionType.EVALUATE,
        ActionType.NAVIGATE,
        ActionType.WAIT,
    }
)


class Viewport(BaseModel):
    width: int = 1280
    height: int = 720


class SessionOptions(BaseModel):
    """Options used when launching a session."""

    browser_kind: BrowserKind = BrowserKind.CHROMIUM
    headless: bool = True
    viewport: Viewport = Field(default_factory=Viewport)
    locale: str = "en-US"
    user_agent: Optional[str] = None
    record_video: bool = False
    ignore_https_errors: bool = False


class Command(BaseModel):
    """A single requested interaction against the loaded page."""

    action: str
    target: Optional[str] = Field(
        default=None,
        description="Raw selector expression or a human-language description.",
    )
    value: Optional[str] = None
    options: dict[str, Any] = Field(default_factory=dict)

    @property
    def action_type(self) -> ActionType:
        return ActionType.parse(self.action)


@dataclass
class Session:
    """One live browser instance registered under an opaque id."""

    id: str
    browser_kind: BrowserKind
    headless: bool
    viewport: Viewport
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class SessionInfo(BaseModel):
    id: str
    browser_kind: BrowserKind
    headless: bool
    viewport: Viewport
    created_at: datetime

    @classmethod
    def from_session(cls, session: Session) -> "SessionInfo":
        return cls(
            id=session.id,
            browser_kind=session.browser_kind,
            headless=session.headless,
            viewport=session.viewport,
            created_at=session.created_at,
        )


@dataclass(frozen=True)
class DocumentRef:
    """Reference to the main document (index 0) or an embedded frame."""

    index: int
    url: str = ""
    name: str = ""

    @property
    def is_main(self) -> bool:
        return self.index == 0

    def describe(self) -> str:
        if self.is_main:
            return "main document"
        return f"frame {self.index} ({self.name or self.url or 'anonymous'})"


class AttemptOutcome(str, enum.Enum):
    SUCCESS = "success"
    TIMEOUT = "timeout"
    NOT_FOUND = "not-found"


@dataclass
class ExecutionAttempt:
    """Diagnostic record of one (document, selector) pairing."""

    document_ref: DocumentRef
    selector: str
    outcome: AttemptOutcome
    elapsed_ms: float


class DocumentModel(BaseModel):
    index: int
    url: str
    name: str = ""

    @classmethod
    def from_ref(cls, ref: DocumentRef) -> "DocumentModel":
        return cls(index=ref.index, url=ref.url, name=ref.name)


class CommandResult(BaseModel):
    success: bool = True
    action: ActionType
    resolved_selector: Optional[str] = None
    document: Optional[DocumentModel] = None
    data: Any = None
    attempts: int = 0


class NavigationResult(BaseModel):
    url: str
    status_code: Optional[int] = None


class PageMetadata(BaseModel):
    url: str
    title: str
    session_id: str


class ScreenshotFormat(str, enum.Enum):
    PNG = "png"
    JPEG = "jpeg"


class ScreenshotOptions(BaseModel):
    full_page: bool = False
    format: ScreenshotFormat = ScreenshotFormat.PNG
    selector: Optional[str] = None
    quality: Optional[int] = Field(default=None, ge=0, le=100, description="JPEG only")
