"""WebSocket endpoint broadcasting each frame's detections."""

from __future__ import annotations

import asyncio
import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from src.models import FrameResult
from src.pipeline import Pipeline

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Tracks connected detection subscribers."""

    def __init__(self):
        self.clients: list[WebSocket] = []

    async def connect(self, ws: WebSocket) -> None:
        await ws.accept()
        self.clients.append(ws)
        logger.info("Detection client connected (%d total)", len(self.clients))

    def disconnect(self, ws: WebSocket) -> None:
        if ws in self.clients:
            self.clients.remove(ws)
        logger.info("Detection client disconnected (%d remaining)", len(self.clients))

    async def broadcast(self, data: dict) -> None:
        message = json.dumps(data)
        disconnected = []
        for ws in self.clients:
            try:
                await ws.send_text(message)
            except Exception:
                disconnected.append(ws)
        for ws in disconnected:
            self.disconnect(ws)


def create_ws_router(pipeline: Pipeline) -> APIRouter:
    router = APIRouter()
    manager = ConnectionManager()

    def on_result(result: FrameResult) -> None:
        """Runs on the event loop via call_soon_threadsafe."""
        if manager.clients:
            asyncio.ensure_future(manager.broadcast(result.to_dict()))

    pipeline.add_result_listener(on_result)

    @router.websocket("/ws/detections")
    async def ws_detections(ws: WebSocket):
        await manager.connect(ws)
        try:
            while True:
                # Keep connection alive; results pushed via broadcast
                await ws.receive_text()
        except WebSocketDisconnect:
            pass
        except Exception:
            logger.exception("Detections WebSocket error")
        finally:
            manager.disconnect(ws)

    return router
