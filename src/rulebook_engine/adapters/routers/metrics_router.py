# src/rulebook_engine/adapters/routers/metrics_router.py
# Copyright (c) Rulebook Engine contributors
# SPDX-License-Identifier: MIT
"""Prometheus scrape endpoint (`/metrics`).

The run-duration histogram is created lazily on first use; the probe creates
it up front so `_bucket`/`_count`/`_sum` series appear on a cold scrape.

Layer:
    adapters/routers
"""

from __future__ import annotations

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from rulebook_engine.infrastructure.observability.metrics import (
    get_generation_candidates_total,
    get_generation_run_duration_seconds,
    get_generation_runs_total,
)

router = APIRouter()


@router.get("/metrics", include_in_schema=False)
async def metrics_probe() -> Response:
    """Expose Prometheus metrics in text format."""
    get_generation_runs_total()
    get_generation_candidates_total()
    get_generation_run_duration_seconds()
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
