"""Registry owning the lifecycle of browser sessions."""

from __future__ import annotations

import concurrent.futures
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator, Optional

from ..browser.base import BrowserDriver, BrowserHandle
from ..config import TimeoutPolicy
from ..errors import LaunchError, SessionNotFound
from ..models import Session, SessionOptions
from .worker import SessionWorker

LOGGER = logging.getLogger(__name__)


@dataclass
class ManagedSession:
    """A registered session with its browser triple and its worker."""

    session: Session
    handle: BrowserHandle
    worker: SessionWorker

    @property
    def id(self) -> str:
        return self.session.id


@dataclass
class _IdLock:
    lock: threading.Lock = field(default_factory=threading.Lock)
    holders: int = 0


class SessionRegistry:
    """Concurrency-safe map of session id to live browser triple.

    Create and close are atomic per id: both run under that id's lock, so a
    create for an id that is already live closes the old triple before the
    new one is registered. An id's lock exists only while a create or close
    for it is running or waiting.
    """

    def __init__(self, driver: BrowserDriver, timeouts: Optional[TimeoutPolicy] = None) -> None:
        self._driver = driver
        self._timeouts = timeouts or TimeoutPolicy()
        self._sessions: dict[str, ManagedSession] = {}
        self._lock = threading.Lock()
        self._id_locks: dict[str, _IdLock] = {}

    def create(self, session_id: str, options: Optional[SessionOptions] = None) -> ManagedSession:
        options = options or SessionOptions()
        with self._locked(session_id):
            existing = self._pop(session_id)
            if existing is not None:
                LOGGER.info("Session %s already exists; closing it before replacing", session_id)
                self._shutdown(existing)

            worker = SessionWorker(session_id)
            launch = worker.submit(lambda: self._driver.launch(session_id, options))
            try:
                handle = launch.result(timeout=self._timeouts.launch_timeout)
            except concurrent.futures.TimeoutError as exc:
                LOGGER.error("Session %s: browser launch timed out", session_id)
                worker.submit(lambda: _discard_late_launch(session_id, launch, worker))
                raise LaunchError(
                    session_id, f"timed out after {self._timeouts.launch_timeout:g}s"
                ) from exc
            except Exception as exc:
                worker.shutdown()
                LOGGER.error("Session %s: browser launch failed: %s", session_id, exc)
                raise LaunchError(session_id, str(exc)) from exc

            managed = ManagedSession(
                session=Session(
                    id=session_id,
                    browser_kind=options.browser_kind,
                    headless=options.headless,
                    viewport=options.viewport,
                ),
                handle=handle,
                worker=worker,
            )
            with self._lock:
                self._sessions[session_id] = managed
        LOGGER.info("Session %s created (%s)", session_id, options.browser_kind.value)
        return managed

    def get(self, session_id: str) -> ManagedSession:
        with self._lock:
            managed = self._sessions.get(session_id)
        if managed is None:
            raise SessionNotFound(session_id)
        return managed

    def close(self, session_id: str) -> bool:
        with self._locked(session_id):
            managed = self._pop(session_id)
            if managed is None:
                LOGGER.info("Session %s is not open; nothing to close", session_id)
                return False
            self._shutdown(managed)
        LOGGER.info("Session %s closed", session_id)
        return True

    def list(self) -> list[str]:
        with self._lock:
            return list(self._sessions)

    def close_all(self) -> None:
        for session_id in self.list():
            self.close(session_id)

    @contextmanager
    def _locked(self, session_id: str) -> Iterator[None]:
        with self._lock:
            entry = self._id_locks.setdefault(session_id, _IdLock())
            entry.holders += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._lock:
                entry.holders -= 1
                if entry.holders == 0:
                    del self._id_locks[session_id]

    def _pop(self, session_id: str) -> Optional[ManagedSession]:
        with self._lock:
            return self._sessions.pop(session_id, None)

    def _shutdown(self, managed: ManagedSession) -> None:
        """Close the browser triple; driver errors are logged, never raised."""

        try:
            managed.worker.call(managed.handle.close, timeout=self._timeouts.close_timeout)
        except Exception:
            LOGGER.exception("Session %s: error while closing browser", managed.id)
        finally:
            managed.worker.shutdown()


def _discard_late_launch(
    session_id: str,
    launch: "concurrent.futures.Future[BrowserHandle]",
    worker: SessionWorker,
) -> None:
    """Close a browser whose launch finished after the caller gave up on it.

    Runs on the session worker, after the launch itself.
    """

    try:
        launch.result().close()
    except Exception:
        LOGGER.exception("Session %s: could not discard browser from timed-out launch", session_id)
    else:
        LOGGER.info("Session %s: closed browser from timed-out launch", session_id)
    finally:
        worker.shutdown()
