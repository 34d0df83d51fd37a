"""Discovery Routes — GET /api/{version}/services[...] over the ASGI app.

Tests cover:
    - Service listing, service and action detail, full schema snapshot
    - Not-found lookups answer 404 with a status=false envelope
    - Unknown API versions and unknown routes stay inside the envelope
"""

import pytest

from restrpc.schemas.users import RegisterUserPayload
from restrpc.services.define_todos_actions import TODOS_ACTIONS

BASE = "/api/v1/services"


@pytest.mark.asyncio
async def test_list_services(client):
    resp = await client.get(BASE)
    assert resp.status_code == 200
    assert resp.json() == {
        "status": True,
        "message": "Services retrieved successfully",
        "data": ["data-service", "todos", "users"],
    }


@pytest.mark.asyncio
async def test_service_detail(client):
    resp = await client.get(f"{BASE}/todos")
    assert resp.status_code == 200
    assert resp.json()["data"] == {
        "name": "todos",
        "description": "Create, list, complete, and delete todo items.",
        "availableActions": ["create", "list", "get", "complete", "delete"],
    }


@pytest.mark.asyncio
async def test_unknown_service_detail(client):
    resp = await client.get(f"{BASE}/ghost")
    assert resp.status_code == 404
    assert resp.json() == {
        "status": False,
        "message": "Service 'ghost' not found",
        "data": {"code": "SERVICE_NOT_FOUND"},
    }


@pytest.mark.asyncio
async def test_action_detail_emits_json_schema(client):
    resp = await client.get(f"{BASE}/todos/create")
    assert resp.status_code == 200
    assert resp.json()["data"] == {
        "name": "create",
        "description": "Create a todo item for a user.",
        "isProtected": False,
        "validation": TODOS_ACTIONS[0]["validation"],
    }


@pytest.mark.asyncio
async def test_action_detail_emits_pydantic_schema(client):
    resp = await client.get(f"{BASE}/users/register")
    assert resp.json()["data"]["validation"] == RegisterUserPayload.model_json_schema()


@pytest.mark.asyncio
async def test_protected_action_detail(client):
    data = (await client.get(f"{BASE}/users/me")).json()["data"]
    assert data["isProtected"] is True
    assert data["validation"] is None


@pytest.mark.asyncio
async def test_unknown_action_detail(client):
    resp = await client.get(f"{BASE}/users/explode")
    assert resp.status_code == 404
    assert resp.json()["data"] == {
        "availableActions": ["register", "login", "me"],
        "code": "ACTION_NOT_FOUND",
    }


@pytest.mark.asyncio
async def test_schema_snapshot(client):
    resp = await client.get(f"{BASE}/schema")
    assert resp.status_code == 200
    body = resp.json()
    assert body["message"] == "Schema retrieved successfully"
    assert [list(entry) for entry in body["data"]] == [
        ["data-service"], ["todos"], ["users"],
    ]
    todos = body["data"][1]["todos"]
    assert [a["name"] for a in todos] == ["create", "list", "get", "complete", "delete"]
    assert set(todos[0]) == {"name", "description", "validation"}


@pytest.mark.asyncio
async def test_discovery_is_stable(client):
    first = (await client.get(f"{BASE}/schema")).json()
    second = (await client.get(f"{BASE}/schema")).json()
    assert first == second


@pytest.mark.asyncio
async def test_unknown_api_version(client):
    resp = await client.get("/api/v9/services")
    assert resp.status_code == 404
    assert resp.json() == {
        "status": False,
        "message": "API version 'v9' not found",
        "data": {"availableVersions": ["v1"], "code": "VERSION_NOT_FOUND"},
    }


@pytest.mark.asyncio
async def test_unknown_route_is_envelope(client):
    resp = await client.get("/api/v1/nothing-here")
    assert resp.status_code == 404
    body = resp.json()
    assert body["status"] is False
    assert body["data"] == {"code": "HTTP_404"}


@pytest.mark.asyncio
async def test_wrong_method_is_envelope(client):
    resp = await client.delete(f"{BASE}/todos")
    assert resp.status_code == 405
    assert resp.json()["data"] == {"code": "HTTP_405"}
