"""Health & Readiness Probes — liveness and readiness endpoints for container orchestration.

Invariants:
    - GET /{base}/health/ always returns 200 if process is up (liveness)
    - GET /{base}/health/ready returns 503 if database is unreachable (readiness)
    - Both answer with the standard envelope
"""

import logging

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

import restrpc.infrastructure.database as db_module
from restrpc.core.envelope import success

logger = logging.getLogger(__name__)


def create_health_router(base_url: str) -> APIRouter:
    router = APIRouter(prefix=f"/{base_url}/health", tags=["health"])

    @router.get("/", status_code=status.HTTP_200_OK)
    async def health_check(request: Request):
        """Basic liveness probe. Returns 200 if the process is up."""
        return success(
            {
                "service": "restrpc-api",
                "versions": request.app.state.api_versions.versions(),
            },
            "healthy",
        )

    @router.get("/ready")
    async def readiness_check():
        """Readiness probe — includes database connectivity."""
        manager = db_module.db_manager
        db_ok = await manager.health_check() if manager else False
        if not db_ok:
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={
                    "status": False,
                    "message": "not ready",
                    "data": {"code": "DATABASE_UNAVAILABLE"},
                },
            )
        return success({"checks": {"database": "healthy"}}, "ready")

    return router
