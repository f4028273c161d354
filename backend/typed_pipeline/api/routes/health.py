"""Health Probe — liveness endpoint, itself served through a zero-middleware pipeline.

Invariants:
    - GET /api/v1/health/ always returns 200 if the process is up

Design Decisions:
    - Zero-arity pipeline: the handler takes no extracted values, exercising the
      composer's empty-middleware path in production wiring
"""

import logging

from fastapi import APIRouter

from typed_pipeline.api.starlette_binding import openapi_responses, to_starlette_endpoint
from typed_pipeline.config import get_settings
from typed_pipeline.core.envelopes import OkJson
from typed_pipeline.core.pipeline import Pipeline

logger = logging.getLogger(__name__)


async def health_check() -> OkJson:
    """Basic liveness probe. Returns 200 if the process is up."""
    return OkJson({
        "status": "healthy",
        "service": get_settings().service_name,
    })


health_pipeline = Pipeline((), health_check, "health_check")

router = APIRouter(prefix="/api/v1/health", tags=["health"])
router.add_api_route(
    "/", to_starlette_endpoint(health_pipeline), methods=["GET"],
    responses=openapi_responses(health_pipeline),
)
