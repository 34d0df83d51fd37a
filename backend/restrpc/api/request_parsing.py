"""Request Parsing — turns a raw POST (JSON or multipart) into a DispatchRequest.

Invariants:
    - Never raises for client mistakes: problems land in DispatchRequest.body_errors
      and the dispatcher reports them after resolving the service
    - Missing payload (or null) becomes {}
    - resourceId is opaque: strings kept, other scalars JSON-encoded (true -> "true"),
      objects/arrays rejected
    - Multipart: `payload` is a JSON-encoded object, other text fields fill in
      payload keys not already set, `file`/`files` parts become UploadedFile
    - Total upload size is capped by MAX_UPLOAD_BYTES; reading stops at the first
      chunk past the cap and the form is always closed

Design Decisions:
    - Read the body by hand instead of a Pydantic body param: FastAPI would answer
      malformed bodies with its own 422 before the service is resolved
"""

import json
import logging
import re
from typing import Any

from fastapi import Request
from starlette.datastructures import UploadFile

from restrpc.core.contracts import UploadedFile
from restrpc.services.action_dispatch import DispatchRequest, new_request_id
from restrpc.services.authenticator import credential_from_header

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
_REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9._-]{1,64}$")
_RESERVED_FORM_FIELDS = frozenset({"action", "payload", "resourceId", "file", "files"})
_CHUNK_SIZE = 64 * 1024


def request_id_from(request: Request) -> str:
    """Caller-supplied X-Request-ID when well-formed, otherwise a fresh one."""
    supplied = request.headers.get(REQUEST_ID_HEADER)
    if supplied and _REQUEST_ID_RE.match(supplied):
        return supplied
    return new_request_id()


def _normalize_resource_id(value: Any, errors: dict[str, str]) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        errors["resourceId"] = "resourceId must be a string"
        return None
    return json.dumps(value)


async def _parse_json(request: Request, errors: dict[str, str]) -> tuple[Any, Any, Any]:
    raw = await request.body()
    if not raw.strip():
        errors["body"] = "request body is empty"
        return None, {}, None
    try:
        body = json.loads(raw)
    except ValueError:
        errors["body"] = "request body must be valid JSON"
        return None, {}, None
    if not isinstance(body, dict):
        errors["body"] = "request body must be a JSON object"
        return None, {}, None
    return body.get("action"), body.get("payload"), body.get("resourceId")


async def _read_within(item: UploadFile, budget: int) -> bytes | None:
    """Read one file part in chunks; None as soon as it exceeds budget."""
    chunks: list[bytes] = []
    size = 0
    while True:
        chunk = await item.read(_CHUNK_SIZE)
        if not chunk:
            break
        size += len(chunk)
        if size > budget:
            return None
        chunks.append(chunk)
    return b"".join(chunks)


async def _parse_multipart(
    request: Request, max_upload_bytes: int, errors: dict[str, str],
) -> tuple[Any, Any, Any, tuple[UploadedFile, ...]]:
    try:
        form = await request.form()
    except Exception as e:
        logger.warning(f"Malformed multipart body on {request.url.path}: {e}")
        errors["body"] = "malformed multipart body"
        return None, {}, None, ()

    try:
        payload: Any = {}
        raw_payload = form.get("payload")
        if isinstance(raw_payload, str) and raw_payload.strip():
            try:
                payload = json.loads(raw_payload)
            except ValueError:
                errors["payload"] = "payload must be a JSON-encoded object"
                payload = {}
        if isinstance(payload, dict):
            for key, value in form.multi_items():
                if key not in _RESERVED_FORM_FIELDS and isinstance(value, str):
                    payload.setdefault(key, value)

        parts = [
            item
            for key in ("file", "files")
            for item in form.getlist(key)
            if isinstance(item, UploadFile)
        ]
        files: list[UploadedFile] = []
        remaining = max_upload_bytes
        for item in parts:
            content = await _read_within(item, remaining)
            if content is None:
                errors["files"] = f"upload exceeds {max_upload_bytes} bytes"
                files = []
                break
            remaining -= len(content)
            files.append(UploadedFile(
                filename=item.filename or "",
                content_type=item.content_type,
                content=content,
            ))

        return form.get("action"), payload, form.get("resourceId"), tuple(files)
    finally:
        await form.close()


async def parse_dispatch_request(
    request: Request, service: str, api_version: str, max_upload_bytes: int,
) -> DispatchRequest:
    errors: dict[str, str] = {}
    files: tuple[UploadedFile, ...] = ()
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("multipart/form-data"):
        action, payload, resource_id, files = await _parse_multipart(
            request, max_upload_bytes, errors,
        )
    else:
        action, payload, resource_id = await _parse_json(request, errors)

    if action is not None and not isinstance(action, str):
        errors["action"] = "action must be a string"
        action = None

    return DispatchRequest(
        service=service,
        action=action,
        payload={} if payload is None else payload,
        resource_id=_normalize_resource_id(resource_id, errors),
        credential=credential_from_header(request.headers.get("Authorization")),
        files=files,
        request_id=request_id_from(request),
        api_version=api_version,
        body_errors=errors,
    )
