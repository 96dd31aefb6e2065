"""
Posts API Backend: Health Check Route
======================================

What:  Health check endpoint for load balancer and App Engine probes.
How:   Makes one keys-only Datastore round trip and makes sure the signing
       keys can be served (from cache, or downloaded if stale).

Status levels:
    - healthy:   Datastore and signing keys available (HTTP 200)
    - degraded:  Signing keys unavailable; public pages and comment reads
                 still work (HTTP 200)
    - unhealthy: Datastore unreachable (HTTP 503)
"""

import logging
import time

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from google.api_core.exceptions import GoogleAPIError

from app import __version__
from app.dependencies import Services, get_services
from app.schemas.resources import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    responses={503: {"description": "Datastore unreachable", "model": HealthResponse}},
)
async def health_check(services: Services = Depends(get_services)):
    datastore_status = "connected"
    keys_status = "available"
    overall = "healthy"

    try:
        await services.store.ping()
    except GoogleAPIError as e:
        datastore_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: datastore unreachable: %s", str(e))

    if not await services.verifier.check_health():
        keys_status = "unavailable"
        overall = "degraded" if overall != "unhealthy" else overall

    body = HealthResponse(
        status=overall,
        version=__version__,
        datastore=datastore_status,
        identity_provider=keys_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
    return JSONResponse(
        status_code=503 if overall == "unhealthy" else 200,
        content=body.model_dump(),
    )
