"""Dispatch Routes — POST /api/{version}/services/{service} end to end.

Tests cover:
    - Missing required field, unknown service/action, auth precedence
    - Malformed bodies (empty, invalid JSON, non-object, bad resourceId)
    - Full users -> todos flow with issued bearer tokens
    - Multipart uploads, X-Request-ID propagation, action call recording
"""

import json
import uuid

import pytest
from sqlalchemy import select

from restrpc.models.action_call import ActionCall

URL = "/api/v1/services"


async def _post(client, service, body, token=None, **kwargs):
    headers = kwargs.pop("headers", {})
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return await client.post(f"{URL}/{service}", json=body, headers=headers, **kwargs)


async def _register_and_login(client, username="ada", password="lovelace1815"):
    registered = await _post(client, "users", {
        "action": "register",
        "payload": {"username": username, "password": password},
    })
    login = await _post(client, "users", {
        "action": "login",
        "payload": {"username": username, "password": password},
    })
    return registered.json()["data"]["id"], login.json()["data"]["token"]


# ─── Failure mappings ────────────────────────────────────────────

@pytest.mark.asyncio
async def test_create_todo_missing_user_id(client):
    resp = await _post(client, "todos", {
        "action": "create", "payload": {"title": "Buy milk"},
    })
    assert resp.status_code == 400
    assert resp.json() == {
        "status": False,
        "message": "invalid request format",
        "data": {"missing": ["user_id"], "invalid": {}},
    }


@pytest.mark.asyncio
async def test_unknown_service(client):
    resp = await _post(client, "ghost", {"action": "create"})
    assert resp.status_code == 404
    assert resp.json()["data"] == {"code": "SERVICE_NOT_FOUND"}


@pytest.mark.asyncio
async def test_unknown_action(client):
    resp = await _post(client, "todos", {"action": "explode"})
    assert resp.status_code == 404
    assert resp.json() == {
        "status": False,
        "message": "Action 'explode' not found in service 'todos'",
        "data": {
            "availableActions": ["create", "list", "get", "complete", "delete"],
            "code": "ACTION_NOT_FOUND",
        },
    }


@pytest.mark.asyncio
async def test_missing_action_field(client):
    resp = await _post(client, "todos", {"payload": {}})
    assert resp.status_code == 400
    assert resp.json()["data"] == {"missing": ["action"], "invalid": {}}


@pytest.mark.asyncio
async def test_protected_action_without_token(client):
    resp = await _post(client, "todos", {"action": "delete", "payload": {"bogus": 1}})
    assert resp.status_code == 401
    assert resp.json() == {
        "status": False,
        "message": "Unauthorized",
        "data": {"code": "UNAUTHORIZED", "reason": "Invalid or missing credentials"},
    }


@pytest.mark.asyncio
async def test_protected_action_with_garbage_token(client):
    resp = await _post(client, "users", {"action": "me"}, token="garbage")
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_non_bearer_authorization_header(client):
    resp = await _post(
        client, "users", {"action": "me"},
        headers={"Authorization": "Basic dXNlcjpwdw=="},
    )
    assert resp.status_code == 401


@pytest.mark.asyncio
@pytest.mark.parametrize("content, reason", [
    (b"", "request body is empty"),
    (b"{not json", "request body must be valid JSON"),
    (b"[1, 2]", "request body must be a JSON object"),
])
async def test_malformed_body(client, content, reason):
    resp = await client.post(
        f"{URL}/todos", content=content, headers={"Content-Type": "application/json"},
    )
    assert resp.status_code == 400
    assert resp.json()["data"] == {"missing": [], "invalid": {"body": reason}}


@pytest.mark.asyncio
async def test_malformed_body_for_unknown_service_is_not_found(client):
    resp = await client.post(
        f"{URL}/ghost", content=b"{not json", headers={"Content-Type": "application/json"},
    )
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_non_string_action(client):
    resp = await _post(client, "todos", {"action": 5})
    assert resp.status_code == 400
    assert resp.json()["data"]["invalid"] == {"action": "action must be a string"}


@pytest.mark.asyncio
async def test_object_resource_id_rejected(client):
    resp = await _post(client, "data-service", {
        "action": "echo", "resourceId": {"id": 1},
    })
    assert resp.status_code == 400
    assert resp.json()["data"]["invalid"] == {"resourceId": "resourceId must be a string"}


@pytest.mark.asyncio
async def test_unknown_version_on_post(client):
    resp = await client.post("/api/v2/services/todos", json={"action": "create"})
    assert resp.status_code == 404
    assert resp.json()["data"]["code"] == "VERSION_NOT_FOUND"


@pytest.mark.asyncio
async def test_business_failure_envelope(client, make_token):
    resp = await _post(
        client, "todos", {"action": "delete", "resourceId": str(uuid.uuid4())},
        token=make_token(str(uuid.uuid4())),
    )
    assert resp.status_code == 404
    assert resp.json()["status"] is False
    assert resp.json()["data"] == {"code": "TODO_NOT_FOUND"}


# ─── Success paths ───────────────────────────────────────────────

@pytest.mark.asyncio
async def test_echo_passes_resource_id_and_payload(client):
    resp = await _post(
        client, "data-service",
        {"action": "echo", "payload": {"nested": {"a": [1, 2]}}, "resourceId": 42},
        headers={"X-Request-ID": "trace-abc"},
    )
    assert resp.status_code == 200
    assert resp.headers["X-Request-ID"] == "trace-abc"
    assert resp.json() == {
        "status": True,
        "message": "Action 'echo' executed successfully",
        "data": {
            "payload": {"nested": {"a": [1, 2]}},
            "resourceId": "42",
            "requestId": "trace-abc",
        },
    }


@pytest.mark.asyncio
async def test_missing_payload_treated_as_empty(client):
    resp = await _post(client, "data-service", {"action": "echo"})
    assert resp.json()["data"]["payload"] == {}
    assert resp.json()["data"]["resourceId"] is None


@pytest.mark.asyncio
async def test_request_id_generated_when_not_supplied(client):
    resp = await _post(client, "data-service", {"action": "echo"})
    request_id = resp.headers["X-Request-ID"]
    assert len(request_id) == 32
    assert resp.json()["data"]["requestId"] == request_id


@pytest.mark.asyncio
async def test_malformed_request_id_replaced(client):
    resp = await _post(
        client, "data-service", {"action": "echo"},
        headers={"X-Request-ID": "has spaces and / slashes"},
    )
    assert resp.headers["X-Request-ID"] != "has spaces and / slashes"


@pytest.mark.asyncio
async def test_users_and_todos_flow(client):
    user_id, token = await _register_and_login(client)

    me = await _post(client, "users", {"action": "me"}, token=token)
    assert me.status_code == 200
    assert me.json()["data"] == {"subject": user_id, "scheme": "jwt", "username": "ada"}

    created = await _post(client, "todos", {
        "action": "create", "payload": {"title": "Buy milk", "user_id": user_id},
    })
    assert created.status_code == 200
    assert created.json()["message"] == "Todo created"
    todo_id = created.json()["data"]["id"]

    listed = await _post(client, "todos", {
        "action": "list", "payload": {"user_id": user_id},
    })
    assert [t["id"] for t in listed.json()["data"]] == [todo_id]

    completed = await _post(
        client, "todos", {"action": "complete", "resourceId": todo_id}, token=token,
    )
    assert completed.status_code == 200
    assert completed.json()["data"]["completed"] is True

    deleted = await _post(
        client, "todos", {"action": "delete", "payload": {"id": todo_id}}, token=token,
    )
    assert deleted.json() == {
        "status": True,
        "message": "Action 'delete' executed successfully",
        "data": {"id": todo_id, "deleted": True},
    }


@pytest.mark.asyncio
async def test_other_users_token_cannot_complete(client):
    owner_id, _ = await _register_and_login(client, "owner")
    _, intruder_token = await _register_and_login(client, "intruder")
    created = await _post(client, "todos", {
        "action": "create", "payload": {"title": "Mine", "user_id": owner_id},
    })
    resp = await _post(
        client, "todos",
        {"action": "complete", "resourceId": created.json()["data"]["id"]},
        token=intruder_token,
    )
    assert resp.status_code == 403
    assert resp.json()["data"] == {"code": "TODO_FORBIDDEN"}


@pytest.mark.asyncio
async def test_pydantic_validation_through_http(client):
    resp = await _post(client, "users", {
        "action": "register", "payload": {"username": "ab", "password": 12345678},
    })
    assert resp.status_code == 400
    data = resp.json()["data"]
    assert data["missing"] == []
    assert set(data["invalid"]) == {"username", "password"}


@pytest.mark.asyncio
async def test_duplicate_registration(client):
    await _register_and_login(client)
    resp = await _post(client, "users", {
        "action": "register", "payload": {"username": "ada", "password": "another-pass"},
    })
    assert resp.status_code == 409
    assert resp.json()["data"] == {"code": "USERNAME_TAKEN"}


# ─── Multipart ───────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_multipart_upload(client):
    resp = await client.post(
        f"{URL}/data-service",
        data={"action": "upload", "payload": json.dumps({"label": "receipts"})},
        files=[
            ("files", ("a.txt", b"alpha", "text/plain")),
            ("files", ("b.csv", b"x,y\n1,2\n", "text/csv")),
        ],
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["label"] == "receipts"
    assert [(f["filename"], f["size"]) for f in data["files"]] == [
        ("a.txt", 5), ("b.csv", 8),
    ]


@pytest.mark.asyncio
async def test_multipart_text_fields_fill_payload(client):
    resp = await client.post(
        f"{URL}/data-service",
        data={"action": "echo", "note": "hi", "resourceId": "r-1"},
        files={"file": ("a.txt", b"alpha", "text/plain")},
    )
    assert resp.json()["data"]["payload"] == {"note": "hi"}
    assert resp.json()["data"]["resourceId"] == "r-1"


@pytest.mark.asyncio
async def test_multipart_upload_without_files(client):
    resp = await client.post(
        f"{URL}/data-service",
        data={"action": "upload"},
        files={"unrelated": ("x.txt", b"x", "text/plain")},
    )
    assert resp.status_code == 400
    assert resp.json()["data"] == {"code": "NO_FILES"}


@pytest.mark.asyncio
async def test_multipart_invalid_payload_json(client):
    resp = await client.post(
        f"{URL}/data-service",
        data={"action": "upload", "payload": "{broken"},
        files={"file": ("a.txt", b"alpha", "text/plain")},
    )
    assert resp.status_code == 400
    assert resp.json()["data"]["invalid"] == {
        "payload": "payload must be a JSON-encoded object",
    }


@pytest.mark.asyncio
async def test_multipart_upload_too_large(app, client):
    app.state.settings = app.state.settings.model_copy(update={"max_upload_bytes": 4})
    resp = await client.post(
        f"{URL}/data-service",
        data={"action": "upload"},
        files={"file": ("a.txt", b"too many bytes", "text/plain")},
    )
    assert resp.status_code == 400
    assert "files" in resp.json()["data"]["invalid"]


# ─── Recording ───────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_dispatches_are_recorded(client, db_manager):
    await _post(client, "data-service", {"action": "echo"}, headers={"X-Request-ID": "rec-1"})
    await _post(client, "ghost", {"action": "x"}, headers={"X-Request-ID": "rec-2"})

    async with db_manager.session() as db:
        rows = (await db.execute(
            select(ActionCall).order_by(ActionCall.request_id),
        )).scalars().all()
    assert [(r.request_id, r.status, r.error_code) for r in rows] == [
        ("rec-1", True, None),
        ("rec-2", False, "SERVICE_NOT_FOUND"),
    ]


@pytest.mark.asyncio
async def test_boolean_resource_id_json_spelling(client):
    resp = await _post(client, "data-service", {"action": "echo", "resourceId": True})
    assert resp.json()["data"]["resourceId"] == "true"


@pytest.mark.asyncio
async def test_multipart_limit_applies_across_parts(app, client):
    app.state.settings = app.state.settings.model_copy(update={"max_upload_bytes": 8})
    resp = await client.post(
        f"{URL}/data-service",
        data={"action": "upload"},
        files=[
            ("files", ("a.txt", b"12345", "text/plain")),
            ("files", ("b.txt", b"67890", "text/plain")),
        ],
    )
    assert resp.status_code == 400
    assert resp.json()["data"]["invalid"] == {"files": "upload exceeds 8 bytes"}
