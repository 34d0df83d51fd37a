"""Services Routes — discovery GETs and the action POST under /{base}/{version}/services.

Invariants:
    - /services/schema declared before /services/{service_name} so it is never
      captured as a service name ("schema" is reserved in the registry)
    - Every response is an envelope; lookups that fail answer 404 + status=false
    - POST delegates everything after body parsing to the version's ActionDispatcher
    - X-Request-ID echoed on every POST response

Design Decisions:
    - Router built by a factory: base_url comes from settings, api_version stays a
      path parameter so all registered versions share the same routes
    - Registries and dispatchers read from app.state, built once in create_app()
"""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from restrpc.api.request_parsing import REQUEST_ID_HEADER, parse_dispatch_request
from restrpc.core import discovery
from restrpc.core.envelope import (
    ActionNotFound, Outcome, ServiceNotFound, VersionNotFound,
    build_envelope, http_status_for, success,
)
from restrpc.core.errors import (
    ActionNotFoundError, RestRpcError, ServiceNotFoundError, VersionNotFoundError,
)
from restrpc.core.schema_registry import SchemaRegistry
from restrpc.schemas.envelope import ActionRequest, Envelope
from restrpc.services.action_dispatch import ActionDispatcher

logger = logging.getLogger(__name__)


def _not_found_outcome(exc: RestRpcError) -> Outcome:
    if isinstance(exc, ServiceNotFoundError):
        return ServiceNotFound(exc.service)
    if isinstance(exc, ActionNotFoundError):
        return ActionNotFound(exc.service, exc.action, exc.available_actions)
    if isinstance(exc, VersionNotFoundError):
        return VersionNotFound(exc.version, exc.data["availableVersions"])
    raise exc


def _not_found_response(exc: RestRpcError) -> JSONResponse:
    outcome = _not_found_outcome(exc)
    return JSONResponse(
        status_code=http_status_for(outcome), content=build_envelope(outcome),
    )


def _registry(request: Request, api_version: str) -> SchemaRegistry:
    return request.app.state.api_versions.get(api_version)


def create_services_router(base_url: str) -> APIRouter:
    """Routes mounted at /{base_url}/{api_version}/services."""
    router = APIRouter(
        prefix=f"/{base_url}/{{api_version}}/services", tags=["services"],
    )

    @router.get("", response_model=Envelope)
    async def list_services(request: Request, api_version: str):
        """Names of every registered service, in registration order."""
        try:
            registry = _registry(request, api_version)
        except VersionNotFoundError as e:
            return _not_found_response(e)
        return success(
            discovery.list_services(registry), "Services retrieved successfully",
        )

    @router.get("/schema", response_model=Envelope)
    async def schema(request: Request, api_version: str):
        """Full static snapshot of services, actions, and validation descriptors."""
        try:
            registry = _registry(request, api_version)
        except VersionNotFoundError as e:
            return _not_found_response(e)
        return success(
            discovery.schema_snapshot(registry), "Schema retrieved successfully",
        )

    @router.get("/{service_name}", response_model=Envelope)
    async def service_detail(request: Request, api_version: str, service_name: str):
        try:
            data = discovery.describe_service(
                _registry(request, api_version), service_name,
            )
        except (VersionNotFoundError, ServiceNotFoundError) as e:
            return _not_found_response(e)
        return success(data, "Service retrieved successfully")

    @router.get("/{service_name}/{action_name}", response_model=Envelope)
    async def action_detail(
        request: Request, api_version: str, service_name: str, action_name: str,
    ):
        try:
            data = discovery.describe_action(
                _registry(request, api_version), service_name, action_name,
            )
        except (VersionNotFoundError, ServiceNotFoundError, ActionNotFoundError) as e:
            return _not_found_response(e)
        return success(data, "Action retrieved successfully")

    @router.post(
        "/{service_name}",
        response_model=Envelope,
        openapi_extra={
            "requestBody": {
                "required": True,
                "content": {
                    "application/json": {
                        "schema": ActionRequest.model_json_schema(by_alias=True),
                    },
                    "multipart/form-data": {
                        "schema": {
                            "type": "object",
                            "properties": {
                                "action": {"type": "string"},
                                "payload": {"type": "string", "description": "JSON object"},
                                "resourceId": {"type": "string"},
                                "file": {"type": "string", "format": "binary"},
                                "files": {
                                    "type": "array",
                                    "items": {"type": "string", "format": "binary"},
                                },
                            },
                            "required": ["action"],
                        },
                    },
                },
            },
        },
    )
    async def dispatch_action(request: Request, api_version: str, service_name: str):
        """Run an action: resolve, authenticate, validate, execute, envelope."""
        dispatchers: dict[str, ActionDispatcher] = request.app.state.dispatchers
        dispatcher = dispatchers.get(api_version)
        if dispatcher is None:
            return _not_found_response(VersionNotFoundError(
                api_version, request.app.state.api_versions.versions(),
            ))
        settings = request.app.state.settings
        dispatch_request = await parse_dispatch_request(
            request, service_name, api_version, settings.max_upload_bytes,
        )
        result = await dispatcher.dispatch(dispatch_request)
        return JSONResponse(
            status_code=result.http_status,
            content=result.envelope,
            headers={REQUEST_ID_HEADER: result.request_id},
        )

    return router
