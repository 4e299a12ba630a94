"""Single-threaded worker that owns one session's browser objects."""

from __future__ import annotations

import concurrent.futures
import logging
from typing import Callable, Optional, TypeVar

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class SessionWorker:
    """Run callables for one session, one at a time, in submission order.

    Playwright's sync objects may only be used from the thread that created
    them, so launch, every page interaction and close go through here.
    """

    def __init__(self, session_id: str) -> None:
        self._session_id = session_id
        self._executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=1,
            thread_name_prefix=f"session-{session_id}",
        )

    def submit(self, fn: Callable[[], T]) -> "concurrent.futures.Future[T]":
        return self._executor.submit(fn)

    def call(self, fn: Callable[[], T], timeout: Optional[float] = None) -> T:
        """Run *fn* on the worker and wait for it.

        Raises :class:`concurrent.futures.TimeoutError` when *timeout* elapses;
        the callable keeps running on the worker thread in that case.
        """

        return self.submit(fn).result(timeout=timeout)

    def shutdown(self) -> None:
        LOGGER.debug("Shutting down worker for session %s", self._session_id)
        self._executor.shutdown(wait=False, cancel_futures=True)
