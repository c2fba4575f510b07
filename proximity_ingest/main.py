"""HTTP/WebSocket surface of the proximity ingest service.

The ingestion pipeline runs inside the FastAPI lifespan. The HTTP routes
are a thin read API over what the pipeline persisted, and ``/ws/live``
registers dashboard clients with the in-process broadcaster.

Run with:
    uvicorn proximity_ingest.main:app --port 8001
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Query, Request, WebSocket, WebSocketDisconnect, status
from fastapi.middleware.cors import CORSMiddleware

from .common.config import Settings, get_cors_origins, get_settings
from .core.broadcast import WebSocketBroadcaster
from .core.persistence.queries import DEFAULT_ALERT_LIMIT, DEFAULT_LOG_LIMIT, MAX_LIMIT
from .schemas import AlertOut, HealthOut, LatestValueOut, LogEntryOut
from .service import IngestionService

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    service: Optional[IngestionService] = None,
) -> FastAPI:
    """Build the app. Settings are loaded at startup, not at import."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        svc = service or IngestionService(settings or get_settings())
        await svc.start()
        app.state.service = svc
        try:
            yield
        finally:
            await svc.stop()

    app = FastAPI(title="Proximity Ingest Service", version="0.1.0", lifespan=lifespan)

    # Dashboards servidos desde otro origen
    if settings is not None:
        origins = settings.cors_allow_origins
    elif service is not None:
        origins = service.settings.cors_allow_origins
    else:
        origins = get_cors_origins()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(origins),
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    def _service(request: Request) -> IngestionService:
        return request.app.state.service

    @app.get("/health", response_model=HealthOut)
    def health(request: Request):
        detail = _service(request).health_check()
        return HealthOut(status="ok" if detail.get("healthy") else "degraded", detail=detail)

    @app.get("/api/latest", response_model=LatestValueOut)
    def get_latest(request: Request):
        row = _service(request).queries().latest()
        if row is None:
            raise HTTPException(status_code=404, detail="No readings yet")
        return row

    @app.get("/api/logs", response_model=List[LogEntryOut])
    def get_logs(request: Request, limit: int = Query(DEFAULT_LOG_LIMIT, ge=1, le=MAX_LIMIT)):
        return _service(request).queries().recent_logs(limit)

    @app.get("/api/alerts", response_model=List[AlertOut])
    def get_alerts(request: Request, limit: int = Query(DEFAULT_ALERT_LIMIT, ge=1, le=MAX_LIMIT)):
        return _service(request).queries().recent_alerts(limit)

    @app.websocket("/ws/live")
    async def live(websocket: WebSocket):
        """Live dashboard feed.

        Protocol:
        1. Server → {type: "connected"} once the client is registered
        2. Server → {distanceCm, status, timestamp} per processed reading

        Only readings processed while connected are delivered; history
        comes from /api/logs.
        """
        broadcaster = websocket.app.state.service.broadcaster
        if not isinstance(broadcaster, WebSocketBroadcaster):
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Live feed served via Redis")
            return

        await websocket.accept()
        broadcaster.connect(websocket)
        try:
            await websocket.send_json({"type": "connected"})
            while True:
                # Los mensajes del cliente se ignoran; solo mantienen viva la conexión
                await websocket.receive_text()
        except WebSocketDisconnect:
            logger.info("[LIVE] Client disconnected")
        finally:
            broadcaster.disconnect(websocket)

    return app


app = create_app()
