"""FastAPI application factory."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI

from src.pipeline import Pipeline
from src.web.routes import create_router
from src.web.websocket import create_ws_router


def create_app(pipeline: Pipeline) -> FastAPI:
    """Create the result-sink and settings API for a pipeline."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Results are produced on the inference thread and delivered on this loop
        pipeline.set_event_loop(asyncio.get_running_loop())
        yield

    app = FastAPI(title="Realtime Object Detection", version="0.1.0", lifespan=lifespan)
    app.include_router(create_router(pipeline))
    app.include_router(create_ws_router(pipeline))
    return app
