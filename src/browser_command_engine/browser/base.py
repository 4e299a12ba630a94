"""Browser driver abstractions."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

from ..models import SessionOptions


@dataclass
class BrowserHandle:
    """The browser/context/page triple owned by one session."""

    browser: Any
    context: Any
    page: Any
    driver: Optional[Any] = None

    def close(self) -> None:
        """Close the browser, which cascades to its context and page."""

        try:
            self.browser.close()
        finally:
            if self.driver is not None:
                self.driver.stop()


class BrowserDriver(ABC):
    """Interface for launching browser sessions.

    ``launch`` is always called on the thread that will own the returned
    handle; every later interaction with the handle happens on that thread.
    """

    @abstractmethod
    def launch(self, session_id: str, options: SessionOptions) -> BrowserHandle:
        """Start a browser and open one context and one page."""
