"""In-memory stand-ins for Playwright pages, frames and locators."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from browser_command_engine.browser.base import BrowserDriver, BrowserHandle
from browser_command_engine.models import SessionOptions


@dataclass
class FakeElement:
    name: str
    fillable: bool = False
    options: list[str] = field(default_factory=list)
    attributes: dict[str, str] = field(default_factory=dict)
    value: str = ""
    checked: bool = False
    selected: Optional[str] = None
    events: list[str] = field(default_factory=list)
    on_click: Optional[Callable[[], None]] = None


class FakeLocator:
    def __init__(self, frame: "FakeFrame", expression: str) -> None:
        self._frame = frame
        self._expression = expression

    @property
    def first(self) -> "FakeLocator":
        return self

    def _element(self, method: str, timeout: Optional[float]) -> FakeElement:
        self._frame.calls.append((self._expression, method))
        self._frame.timeouts.append(timeout)
        element = self._frame.elements.get(self._expression)
        if element is None:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded waiting for {self._expression}")
        return element

    def click(self, timeout: Optional[float] = None) -> None:
        element = self._element("click", timeout)
        element.events.append("click")
        if element.on_click is not None:
            element.on_click()

    def fill(self, value: str, timeout: Optional[float] = None) -> None:
        element = self._element("fill", timeout)
        if not element.fillable:
            raise PlaywrightError("Error: Element is not an <input>, <textarea> or <select> element")
        element.value = value
        element.events.append("fill")

    def press_sequentially(self, value: str, delay: float = 0, timeout: Optional[float] = None) -> None:
        element = self._element("press_sequentially", timeout)
        element.value += value
        element.events.append("press_sequentially")

    def hover(self, timeout: Optional[float] = None) -> None:
        self._element("hover", timeout).events.append("hover")

    def check(self, timeout: Optional[float] = None) -> None:
        self._element("check", timeout).checked = True

    def uncheck(self, timeout: Optional[float] = None) -> None:
        self._element("uncheck", timeout).checked = False

    def wait_for(self, state: str = "visible", timeout: Optional[float] = None) -> None:
        self._element(f"wait_for:{state}", timeout)

    def get_attribute(self, name: str, timeout: Optional[float] = None) -> Optional[str]:
        return self._element("get_attribute", timeout).attributes.get(name)

    def locator(self, expression: str) -> "FakeOptions":
        return FakeOptions(self._frame.elements[self._expression])

    def select_option(self, index: int, timeout: Optional[float] = None) -> list[str]:
        element = self._element("select_option", timeout)
        element.selected = element.options[index]
        return [element.selected]

    def screenshot(self, timeout: Optional[float] = None, **kwargs: Any) -> bytes:
        self._element("screenshot", timeout)
        return b"element-image"


class FakeOptions:
    def __init__(self, element: FakeElement) -> None:
        self._element = element

    def all_text_contents(self) -> list[str]:
        return [f"  {option}  " for option in self._element.options]


class FakeFrame:
    def __init__(
        self,
        url: str = "about:blank",
        name: str = "",
        elements: Optional[dict[str, FakeElement]] = None,
    ) -> None:
        self.url = url
        self.name = name
        self.elements = dict(elements or {})
        self.calls: list[tuple[str, str]] = []
        self.timeouts: list[Optional[float]] = []

    def locator(self, expression: str) -> FakeLocator:
        return FakeLocator(self, expression)


@dataclass
class FakeResponse:
    status: int = 200


class FakePage:
    def __init__(self, main: Optional[FakeFrame] = None, children: Optional[list[FakeFrame]] = None) -> None:
        self.main_frame = main or FakeFrame(url="about:blank")
        self.children = list(children or [])
        self.url = self.main_frame.url
        self.title_text = "Fake page"
        self.html = "<html><body></body></html>"
        self.evaluations: dict[str, Any] = {}
        self.navigation_error: Optional[Exception] = None
        self.status = 200
        self.waits: list[tuple[str, Any]] = []
        self.closed = False

    @property
    def frames(self) -> list[FakeFrame]:
        return [self.main_frame, *self.children]

    def locator(self, expression: str) -> FakeLocator:
        return self.main_frame.locator(expression)

    def goto(self, url: str, wait_until: str = "load", timeout: Optional[float] = None) -> FakeResponse:
        if self.navigation_error is not None:
            raise self.navigation_error
        self.url = url
        self.main_frame.url = url
        return FakeResponse(status=self.status)

    def title(self) -> str:
        return self.title_text

    def content(self) -> str:
        return self.html

    def evaluate(self, expression: str) -> Any:
        if expression not in self.evaluations:
            raise PlaywrightError(f"ReferenceError: {expression} is not defined")
        return self.evaluations[expression]

    def screenshot(self, full_page: bool = False, type: str = "png", **kwargs: Any) -> bytes:
        return f"{type}:{'full' if full_page else 'viewport'}".encode()

    def wait_for_load_state(self, state: str = "load", timeout: Optional[float] = None) -> None:
        self.waits.append(("load_state", state))

    def wait_for_url(self, url: str, wait_until: str = "load", timeout: Optional[float] = None) -> None:
        self.waits.append(("url", url))

    def wait_for_timeout(self, timeout: float) -> None:
        self.waits.append(("timeout", timeout))


class FakeBrowser:
    def __init__(self, fail_on_close: bool = False) -> None:
        self.fail_on_close = fail_on_close
        self.closed = False
        self.close_thread: Optional[str] = None

    def close(self) -> None:
        self.closed = True
        self.close_thread = threading.current_thread().name
        if self.fail_on_close:
            raise PlaywrightError("Target page, context or browser has been closed")


class FakeDriver(BrowserDriver):
    """Driver returning fake handles; ``page_factory`` builds each page."""

    def __init__(
        self,
        page_factory: Optional[Callable[[], FakePage]] = None,
        *,
        fail_with: Optional[Exception] = None,
        fail_on_close: bool = False,
    ) -> None:
        self._page_factory = page_factory or FakePage
        self._fail_with = fail_with
        self._fail_on_close = fail_on_close
        self.launches: list[tuple[str, SessionOptions, BrowserHandle]] = []
        self.launch_threads: list[str] = []

    def launch(self, session_id: str, options: SessionOptions) -> BrowserHandle:
        if self._fail_with is not None:
            raise self._fail_with
        handle = BrowserHandle(
            browser=FakeBrowser(fail_on_close=self._fail_on_close),
            context=object(),
            page=self._page_factory(),
        )
        self.launches.append((session_id, options, handle))
        self.launch_threads.append(threading.current_thread().name)
        return handle
