"""FastAPI application exposing the automation service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_version
from typing import Any, AsyncIterator, Dict, List, Optional

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..errors import EngineError
from ..models import (
    BrowserKind,
    Command,
    CommandResult,
    NavigationResult,
    PageMetadata,
    ScreenshotOptions,
    SessionInfo,
    SessionOptions,
    Viewport,
)
from ..service import AutomationService

LOGGER = logging.getLogger(__name__)


def package_version() -> str:
    try:
        return get_version("browser-command-engine")
    except PackageNotFoundError:  # pragma: no cover - when running from source tree
        return "0.0.0"


# Request models ---------------------------------------------------------------


class SessionCreateRequest(BaseModel):
    id: Optional[str] = None
    browser_kind: Optional[BrowserKind] = None
    headless: Optional[bool] = None
    viewport: Optional[Viewport] = None
    locale: Optional[str] = None
    user_agent: Optional[str] = None
    record_video: Optional[bool] = None
    ignore_https_errors: Optional[bool] = None

    def to_options(self, defaults: SessionOptions) -> SessionOptions:
        updates = self.model_dump(exclude={"id"}, exclude_none=True)
        return SessionOptions.model_validate({**defaults.model_dump(), **updates})


class NavigateRequest(BaseModel):
    url: str = Field(min_length=1)


class ChatRequest(BaseModel):
    command: str = Field(min_length=1)


class SessionListModel(BaseModel):
    count: int
    sessions: List[str]


# Application ------------------------------------------------------------------


def create_app(service: AutomationService) -> FastAPI:
    """Build the HTTP surface around *service*; sessions close on shutdown."""

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        yield
        service.shutdown()

    app = FastAPI(title="Browser Command Engine", lifespan=lifespan)

    @app.exception_handler(EngineError)
    async def handle_engine_error(_: Request, exc: EngineError) -> JSONResponse:
        LOGGER.info("Request failed with %s: %s", exc.kind, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.get("/status")
    def get_status() -> Dict[str, Any]:
        return {"status": "active", "version": package_version()}

    @app.post("/sessions", response_model=SessionInfo)
    def create_session(payload: SessionCreateRequest) -> SessionInfo:
        options = payload.to_options(service.default_options)
        return service.create_session(payload.id, options)

    @app.get("/sessions", response_model=SessionListModel)
    def list_sessions() -> SessionListModel:
        sessions = service.list_sessions()
        return SessionListModel(count=len(sessions), sessions=sessions)

    @app.delete("/sessions/{session_id}")
    def close_session(session_id: str) -> JSONResponse:
        if service.close_session(session_id):
            return JSONResponse(
                {"success": True, "message": f"Session {session_id} closed successfully"}
            )
        return JSONResponse(
            {"success": False, "message": f"Session {session_id} not found or already closed"},
            status_code=404,
        )

    @app.post("/sessions/{session_id}/navigate", response_model=NavigationResult)
    def navigate(session_id: str, payload: NavigateRequest) -> NavigationResult:
        return service.navigate(session_id, payload.url)

    @app.post("/sessions/{session_id}/command", response_model=CommandResult)
    def execute_command(session_id: str, command: Command) -> CommandResult:
        return service.execute_command(session_id, command)

    @app.post("/sessions/{session_id}/chat", response_model=CommandResult)
    def execute_chat(session_id: str, payload: ChatRequest) -> CommandResult:
        return service.execute_chat(session_id, payload.command)

    @app.post("/sessions/{session_id}/screenshot")
    def screenshot(session_id: str, options: Optional[ScreenshotOptions] = None) -> Response:
        options = options or ScreenshotOptions()
        image = service.screenshot(session_id, options)
        return Response(content=image, media_type=f"image/{options.format.value}")

    @app.get("/sessions/{session_id}/content")
    def get_content(session_id: str) -> Response:
        return Response(content=service.get_content(session_id), media_type="text/html")

    @app.get("/sessions/{session_id}/metadata", response_model=PageMetadata)
    def get_metadata(session_id: str) -> PageMetadata:
        return service.get_metadata(session_id)

    return app
