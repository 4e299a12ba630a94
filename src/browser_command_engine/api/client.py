"""HTTP client for talking to a running engine service."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx

from ..models import CommandResult, NavigationResult, PageMetadata, SessionInfo


class EngineClientError(RuntimeError):
    """Raised when the service answers with a structured error."""

    def __init__(self, status_code: int, payload: Dict[str, Any]) -> None:
        super().__init__(payload.get("message") or f"HTTP {status_code}")
        self.status_code = status_code
        self.kind = payload.get("error", "http_error")
        self.payload = payload


class EngineClient:
    """Wrapper around the engine HTTP API."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
        )

    async def status(self) -> Dict[str, Any]:
        async with self._client() as client:
            response = await client.get("/status")
        return _json(response)

    async def create_session(
        self,
        session_id: Optional[str] = None,
        **options: Any,
    ) -> SessionInfo:
        payload = {"id": session_id, **options}
        async with self._client() as client:
            response = await client.post("/sessions", json=payload)
        return SessionInfo.model_validate(_json(response))

    async def list_sessions(self) -> List[str]:
        async with self._client() as client:
            response = await client.get("/sessions")
        return list(_json(response)["sessions"])

    async def close_session(self, session_id: str) -> bool:
        async with self._client() as client:
            response = await client.delete(f"/sessions/{session_id}")
        if response.status_code == 404:
            return False
        _json(response)
        return True

    async def navigate(self, session_id: str, url: str) -> NavigationResult:
        async with self._client() as client:
            response = await client.post(f"/sessions/{session_id}/navigate", json={"url": url})
        return NavigationResult.model_validate(_json(response))

    async def execute_command(
        self,
        session_id: str,
        action: str,
        target: Optional[str] = None,
        value: Optional[str] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> CommandResult:
        payload = {"action": action, "target": target, "value": value, "options": options or {}}
        async with self._client() as client:
            response = await client.post(f"/sessions/{session_id}/command", json=payload)
        return CommandResult.model_validate(_json(response))

    async def chat(self, session_id: str, sentence: str) -> CommandResult:
        async with self._client() as client:
            response = await client.post(
                f"/sessions/{session_id}/chat", json={"command": sentence}
            )
        return CommandResult.model_validate(_json(response))

    async def screenshot(
        self,
        session_id: str,
        *,
        full_page: bool = False,
        format: str = "png",
        selector: Optional[str] = None,
    ) -> bytes:
        payload = {"full_page": full_page, "format": format, "selector": selector}
        async with self._client() as client:
            response = await client.post(f"/sessions/{session_id}/screenshot", json=payload)
        _raise_for_error(response)
        return response.content

    async def get_content(self, session_id: str) -> str:
        async with self._client() as client:
            response = await client.get(f"/sessions/{session_id}/content")
        _raise_for_error(response)
        return response.text

    async def get_metadata(self, session_id: str) -> PageMetadata:
        async with self._client() as client:
            response = await client.get(f"/sessions/{session_id}/metadata")
        return PageMetadata.model_validate(_json(response))


def _raise_for_error(response: httpx.Response) -> None:
    if response.is_success:
        return
    try:
        payload = response.json()
    except ValueError:
        payload = {"message": response.text}
    if not isinstance(payload, dict):
        payload = {"message": str(payload)}
    raise EngineClientError(response.status_code, payload)


def _json(response: httpx.Response) -> Any:
    _raise_for_error(response)
    return response.json()
