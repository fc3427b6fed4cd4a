"""
Prometheus scrape endpoint.

Example:
    GET /metrics

    Response:
        # HELP cabin_booking_attempts_total Total booking creation attempts by outcome
        # TYPE cabin_booking_attempts_total counter
        cabin_booking_attempts_total{mode="room",outcome="success",property="tahoe"} 12.0
        ...
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter()


@router.get("/metrics", response_class=Response)
async def metrics() -> Any:
    """Return all registered metrics in the Prometheus text exposition format."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
