"""Error Handlers — global exception handlers that keep every response an envelope.

Invariants:
    - RestRpcError -> its own envelope and http_status
    - RequestValidationError -> InvalidPayload envelope (missing / invalid split)
    - Framework HTTP errors (unknown route, wrong method) -> status=false envelope
    - Exception (catch-all) -> INTERNAL_ERROR envelope, never leaks internal details

Design Decisions:
    - Four-layer handler: domain, validation, HTTP, catch-all
    - Extracted from main.py to keep the app factory small
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from restrpc.core.envelope import HandlerError, InvalidPayload, build_envelope
from restrpc.core.errors import RestRpcError

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""
    _register_restrpc_error_handler(app)
    _register_validation_error_handler(app)
    _register_http_error_handler(app)
    _register_generic_error_handler(app)


def _register_restrpc_error_handler(app: FastAPI) -> None:

    @app.exception_handler(RestRpcError)
    async def restrpc_error_handler(request: Request, exc: RestRpcError):
        """Handle all router domain/infrastructure errors."""
        logger.error(
            f"RestRpcError: {exc.message}",
            extra={"error_code": exc.code},
        )
        return JSONResponse(
            status_code=exc.http_status, content=exc.to_envelope(),
        )


def _register_validation_error_handler(app: FastAPI) -> None:

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError,
    ):
        logger.warning(
            f"Validation error on {request.url.path}: {exc.errors()}",
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=build_envelope(_invalid_payload_from(exc)),
        )


def _register_http_error_handler(app: FastAPI) -> None:

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "status": False,
                "message": str(exc.detail),
                "data": {"code": f"HTTP_{exc.status_code}"},
            },
            headers=getattr(exc, "headers", None),
        )


def _register_generic_error_handler(app: FastAPI) -> None:

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        """Catch-all — never leaks internal details."""
        logger.error(
            f"Unhandled exception on {request.url.path}: {exc}",
            exc_info=True,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=build_envelope(HandlerError()),
        )


def _invalid_payload_from(exc: RequestValidationError) -> InvalidPayload:
    missing: list[str] = []
    invalid: dict[str, str] = {}
    for e in exc.errors():
        field = ".".join(str(loc) for loc in e["loc"])
        if e["type"] == "missing":
            missing.append(field)
        else:
            invalid.setdefault(field, e["msg"])
    return InvalidPayload(missing=missing, invalid=invalid)
