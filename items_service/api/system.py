from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Response

from items_service.api.deps import get_request_context, get_runtime, record_route
from items_service.models.schemas import HealthResponse
from items_service.observability.context import RequestContext
from items_service.runtime import ServiceRuntime

router = APIRouter(tags=["system"], dependencies=[Depends(record_route)])


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    # Liveness only: no dependency checks.
    return HealthResponse(status="UP", timestamp=datetime.now(timezone.utc).isoformat())


@router.get("/metrics")
async def metrics(
    ctx: RequestContext = Depends(get_request_context),
    runtime: ServiceRuntime = Depends(get_runtime),
) -> Response:
    try:
        body, content_type = runtime.metrics.render()
    except Exception as exc:
        ctx.logger.exception("metrics.render_failed", error=str(exc))
        raise HTTPException(status_code=500, detail="Failed to render metrics") from exc
    return Response(content=body, media_type=content_type)
