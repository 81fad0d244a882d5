"""HTTP routes: pipeline stats, latest detections, and detection settings."""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from src.config import FILTER_MODES
from src.models import ThermalLevel
from src.pipeline import Pipeline


def create_router(pipeline: Pipeline) -> APIRouter:
    router = APIRouter()

    @router.get("/api/stats")
    async def api_stats():
        return JSONResponse(pipeline.stats)

    @router.get("/api/detections")
    async def api_detections():
        result = pipeline.last_result
        if result is None:
            return JSONResponse({"frame_index": 0, "detections": []})
        return JSONResponse(result.to_dict())

    @router.get("/api/settings")
    async def api_settings():
        return JSONResponse(pipeline.settings)

    @router.post("/api/settings")
    async def api_update_settings(request: Request):
        body = await request.json()

        filter_mode = body.get("filter_mode")
        if filter_mode is not None and str(filter_mode).lower() not in FILTER_MODES:
            return JSONResponse({"error": "Invalid filter_mode"}, 400)

        threshold = body.get("confidence_threshold")
        if threshold is not None:
            try:
                threshold = float(threshold)
            except (TypeError, ValueError):
                return JSONResponse({"error": "Invalid confidence_threshold"}, 400)
            if threshold < 0:
                return JSONResponse({"error": "Invalid confidence_threshold"}, 400)

        updated = pipeline.update_detection_settings(filter_mode, threshold)
        return JSONResponse({"status": "ok", "settings": updated})

    @router.post("/api/thermal")
    async def api_report_thermal(request: Request):
        """Push a thermal state from an external OS monitor."""
        body = await request.json()
        try:
            level = ThermalLevel(str(body.get("state", "")).lower())
        except ValueError:
            return JSONResponse({"error": "Invalid thermal state"}, 400)
        state = pipeline.governor.report_thermal(level)
        return JSONResponse({
            "status": "ok",
            "thermal": state.thermal_level.value,
            "frame_rate_target": state.frame_rate_target,
            "frame_skip_pattern": state.frame_skip_pattern,
        })

    return router
