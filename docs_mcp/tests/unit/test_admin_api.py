import pytest
from fastapi.testclient import TestClient

from docs_mcp.src.api.main import create_app
from docs_mcp.src.services.config import AppConfig
from docs_mcp.src.services.lifecycle import DrainReason

JSON_HEADERS = {"Accept": "application/json", "Content-Type": "application/json"}


@pytest.fixture
def client(app_config: AppConfig):
    app = create_app(app_config)
    with TestClient(app) as test_client:
        yield test_client


def test_health(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True
    assert body["draining"] is False
    assert body["activeConnections"] == 0
    assert body["uptime"] >= 0
    assert body["connections"] == {
        "sseKeepAliveInterval": 30000,
        "oldestConnection": 0,
        "averageAge": 0,
    }


def test_index_is_built_on_startup(client: TestClient) -> None:
    index = client.app.state.index

    assert len(index) == 3
    assert index.get_by_route("/getting-started") is not None


def test_reindex_picks_up_new_files(client: TestClient, workspace, write_file) -> None:
    write_file(workspace, "content/docs/new.mdx", "---\ntitle: New\n---\nNew page")

    response = client.post("/reindex")

    assert response.status_code == 200
    assert response.json() == {"ok": True, "count": 4}
    assert client.app.state.index.get_by_route("/new").title == "New"


def test_reindex_unavailable_while_shutting_down(client: TestClient) -> None:
    client.app.state.lifecycle.drain_reason = DrainReason.SHUTDOWN

    response = client.post("/reindex")

    assert response.status_code == 503
    assert response.json()["error"] == "unavailable"


def test_unknown_path_returns_json_404(client: TestClient) -> None:
    response = client.get("/nope")

    assert response.status_code == 404
    assert response.json()["error"] == "not_found"


def test_mcp_rejects_unknown_origin(client: TestClient) -> None:
    response = client.post(
        "/mcp",
        json={"jsonrpc": "2.0", "id": 1, "method": "tools/list"},
        headers={**JSON_HEADERS, "Origin": "https://evil.com"},
    )

    assert response.status_code == 403
    assert response.json() == {
        "jsonrpc": "2.0",
        "error": {"code": -32600, "message": "Invalid Origin header"},
        "id": None,
    }


def test_mcp_rejects_unacceptable_accept_header(client: TestClient) -> None:
    response = client.post(
        "/mcp",
        json={"jsonrpc": "2.0", "id": 1, "method": "tools/list"},
        headers={"Accept": "text/html", "Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json()["error"]["code"] == -32600


def test_mcp_get_refused_while_draining(client: TestClient) -> None:
    client.app.state.lifecycle.drain_reason = DrainReason.SHUTDOWN

    response = client.get("/mcp", headers={"Accept": "text/event-stream"})

    assert response.status_code == 503
    assert response.json()["error"] == {"code": -32603, "message": "Server draining"}


def test_mcp_tools_list_over_json(client: TestClient) -> None:
    response = client.post(
        "/mcp",
        json={"jsonrpc": "2.0", "id": 1, "method": "tools/list", "params": {}},
        headers={**JSON_HEADERS, "Origin": "https://docs.journium.app"},
    )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/json")
    tools = {tool["name"] for tool in response.json()["result"]["tools"]}
    assert tools == {"docs_search", "docs_getPage", "docs_listRoutes"}
    assert client.app.state.lifecycle.active_count == 0


def test_cors_preflight_for_wildcard_origin(client: TestClient) -> None:
    response = client.options(
        "/mcp",
        headers={
            "Origin": "https://docs.journium.app",
            "Access-Control-Request-Method": "POST",
        },
    )

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "https://docs.journium.app"


def test_wrong_method_returns_json_405(client: TestClient) -> None:
    response = client.get("/reindex")

    assert response.status_code == 405
    assert response.json()["error"] == "method_not_allowed"


class _BrokenSource:
    def load_all(self):
        raise RuntimeError("disk unavailable")


def test_reindex_failure_keeps_previous_index(client: TestClient) -> None:
    index = client.app.state.index
    index.source = _BrokenSource()

    response = client.post("/reindex")

    assert response.status_code == 500
    assert response.json()["error"] == "reindex_failed"
    assert len(index) == 3
