"""
Health check endpoint.

GET /health reports MongoDB and Redis connectivity and which store holds the
OTP rate counters.
Rules:
- MongoDB failure → "unhealthy" (503). OTP records and accounts live there.
- Redis failure while it holds the rate counters → "unhealthy" (503), since
  no reset request can be admitted.
- Redis absent (counters on MongoDB) → "degraded" (200).
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from schemas.dto.responses.common import HealthResponse
from shared.logging import get_logger

log = get_logger(__name__)

router = APIRouter(tags=["health"])


async def _ping(name: str, call: Callable[[], Awaitable[Any]]) -> str:
    try:
        await call()
    except Exception as exc:
        log.warning("health_ping_failed", store=name, error=str(exc))
        return "error"
    return "ok"


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"model": HealthResponse}},
)
async def health_check(request: Request) -> JSONResponse:
    state = request.app.state
    rate_limit_store = getattr(state, "rate_limit_store", None)

    checks = {
        "mongodb": await _ping(
            "mongodb", lambda: state.db.client.admin.command("ping")
        )
    }
    if state.redis is None:
        checks["redis"] = "not_configured"
    else:
        checks["redis"] = await _ping("redis", state.redis.ping)

    if checks["mongodb"] == "error":
        overall = "unhealthy"
    elif checks["redis"] == "error" and rate_limit_store == "redis":
        overall = "unhealthy"
    elif checks["redis"] != "ok":
        overall = "degraded"
    else:
        overall = "healthy"

    return JSONResponse(
        status_code=503 if overall == "unhealthy" else 200,
        content=HealthResponse(
            status=overall,
            checks=checks,
            rate_limit_store=rate_limit_store,
        ).model_dump(),
    )
