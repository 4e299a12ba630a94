from __future__ import annotations

import pytest
from fakes import FakeDriver, FakeElement, FakeFrame, FakePage
from fastapi.testclient import TestClient

from browser_command_engine.api.app import create_app
from browser_command_engine.config import EngineConfig
from browser_command_engine.factory import build_service


def login_page() -> FakePage:
    return FakePage(
        main=FakeFrame(
            url="https://example.com/login",
            elements={
                "#user": FakeElement("user", fillable=True),
                "#login": FakeElement("login"),
            },
        )
    )


@pytest.fixture
def driver() -> FakeDriver:
    return FakeDriver(page_factory=login_page)


@pytest.fixture
def client(driver: FakeDriver):
    service = build_service(EngineConfig(), driver=driver)
    with TestClient(create_app(service)) as client:
        yield client


def test_status(client: TestClient) -> None:
    response = client.get("/status")

    assert response.status_code == 200
    assert response.json()["status"] == "active"
    assert "version" in response.json()


def test_session_lifecycle(client: TestClient, driver: FakeDriver) -> None:
    created = client.post(
        "/sessions",
        json={"id": "s1", "headless": False, "viewport": {"width": 800, "height": 600}},
    )

    assert created.status_code == 200
    body = created.json()
    assert body["id"] == "s1"
    assert body["headless"] is False
    assert body["viewport"] == {"width": 800, "height": 600}
    assert driver.launches[0][1].locale == "en-US"

    listing = client.get("/sessions").json()
    assert listing == {"count": 1, "sessions": ["s1"]}

    closed = client.delete("/sessions/s1")
    assert closed.status_code == 200
    assert closed.json()["success"] is True

    again = client.delete("/sessions/s1")
    assert again.status_code == 404
    assert again.json()["success"] is False


def test_commands_over_http(client: TestClient, driver: FakeDriver) -> None:
    client.post("/sessions", json={"id": "s1"})
    page = driver.launches[0][2].page

    typed = client.post(
        "/sessions/s1/command",
        json={"action": "type", "target": "#user", "value": "jane"},
    )
    chat = client.post("/sessions/s1/chat", json={"command": "click #login"})

    assert typed.status_code == 200
    assert typed.json()["resolved_selector"] == "#user"
    assert page.main_frame.elements["#user"].value == "jane"
    assert chat.status_code == 200
    assert chat.json()["action"] == "click"
    assert chat.json()["document"]["index"] == 0


def test_navigation_and_page_reads(client: TestClient) -> None:
    client.post("/sessions", json={"id": "s1"})

    navigated = client.post("/sessions/s1/navigate", json={"url": "https://example.com/home"})
    metadata = client.get("/sessions/s1/metadata")
    content = client.get("/sessions/s1/content")
    image = client.post("/sessions/s1/screenshot", json={"full_page": True})

    assert navigated.json() == {"url": "https://example.com/home", "status_code": 200}
    assert metadata.json() == {
        "url": "https://example.com/home",
        "title": "Fake page",
        "session_id": "s1",
    }
    assert content.headers["content-type"].startswith("text/html")
    assert image.headers["content-type"] == "image/png"
    assert image.content == b"png:full"


def test_screenshot_without_body(client: TestClient) -> None:
    client.post("/sessions", json={"id": "s1"})

    response = client.post("/sessions/s1/screenshot")

    assert response.status_code == 200
    assert response.content == b"png:viewport"


@pytest.mark.parametrize(
    ("method", "path", "payload", "status", "kind"),
    [
        ("post", "/sessions/ghost/navigate", {"url": "https://example.com"}, 404, "session_not_found"),
        ("get", "/sessions/ghost/metadata", None, 404, "session_not_found"),
        ("post", "/sessions/s1/command", {"action": "click", "target": "Nowhere"}, 404, "element_not_found"),
        ("post", "/sessions/s1/command", {"action": "fly", "target": "#login"}, 400, "unsupported_action"),
        ("post", "/sessions/s1/command", {"action": "type", "target": "#user"}, 400, "invalid_command"),
    ],
)
def test_errors_are_rendered(
    client: TestClient,
    method: str,
    path: str,
    payload,
    status: int,
    kind: str,
) -> None:
    client.post("/sessions", json={"id": "s1"})

    response = client.request(method.upper(), path, json=payload)

    assert response.status_code == status
    assert response.json()["error"] == kind
    assert response.json()["message"]


def test_launch_failure_is_service_unavailable() -> None:
    service = build_service(EngineConfig(), driver=FakeDriver(fail_with=RuntimeError("boom")))
    with TestClient(create_app(service)) as client:
        response = client.post("/sessions", json={"id": "s1"})

    assert response.status_code == 503
    assert response.json()["error"] == "launch_error"
    assert response.json()["session_id"] == "s1"


def test_unparsable_chat_without_fallback(driver: FakeDriver) -> None:
    service = build_service(EngineConfig(chat_fallback_click=False), driver=driver)
    with TestClient(create_app(service)) as client:
        client.post("/sessions", json={"id": "s1"})
        response = client.post("/sessions/s1/chat", json={"command": "scroll down a bit"})

    assert response.status_code == 422
    assert response.json()["error"] == "parse_error"
    assert response.json()["sentence"] == "scroll down a bit"


def test_shutdown_closes_sessions(driver: FakeDriver) -> None:
    service = build_service(EngineConfig(), driver=driver)
    with TestClient(create_app(service)) as client:
        client.post("/sessions", json={"id": "s1"})

    assert driver.launches[0][2].browser.closed is True
    assert service.list_sessions() == []
