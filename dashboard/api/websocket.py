"""
Interaction KPI Hub — WebSocket Manager
=========================================
Pushes KPI refresh events to connected dashboards.

Usage:
    from dashboard.api.websocket import ws_manager, websocket_endpoint

    # Wired as a KPI service listener at startup:
    service.add_listener(ws_manager.publish_snapshot)

    # In FastAPI:
    app.add_api_websocket_route("/ws/dashboard", websocket_endpoint)
"""
from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, Set

from fastapi import WebSocket, WebSocketDisconnect

from models.interaction_models import KPISnapshot
from scripts.lib.logger import setup_logger

logger = setup_logger("websocket")


class WebSocketManager:
    """Manages active WebSocket connections and broadcasts events."""

    def __init__(self):
        self._connections: Set[WebSocket] = set()

    async def connect(self, websocket: WebSocket):
        """Accept and register a new WebSocket connection."""
        await websocket.accept()
        self._connections.add(websocket)
        logger.info(
            "WebSocket connected. Active connections: %d", len(self._connections)
        )

    def disconnect(self, websocket: WebSocket):
        """Remove a disconnected WebSocket."""
        self._connections.discard(websocket)
        logger.info(
            "WebSocket disconnected. Active connections: %d", len(self._connections)
        )

    @staticmethod
    def _payload(message: Dict[str, Any]) -> str:
        return json.dumps(
            {
                **message,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
            default=str,
        )

    async def broadcast(self, message: Dict[str, Any]):
        """Send a message to all connected clients."""
        if not self._connections:
            return

        payload = self._payload(message)
        disconnected = set()
        for ws in self._connections:
            try:
                await ws.send_text(payload)
            except Exception:
                disconnected.add(ws)

        for ws in disconnected:
            self._connections.discard(ws)

    async def send_to(self, websocket: WebSocket, message: Dict[str, Any]):
        """Send a message to a specific connection."""
        try:
            await websocket.send_text(self._payload(message))
        except Exception:
            self._connections.discard(websocket)

    async def publish_snapshot(self, snapshot: KPISnapshot):
        """KPI service listener: push a freshly computed snapshot."""
        await self.broadcast({
            "event": "kpis_refreshed",
            "data": snapshot.model_dump(mode="json"),
        })

    @property
    def connection_count(self) -> int:
        return len(self._connections)


ws_manager = WebSocketManager()


async def websocket_endpoint(websocket: WebSocket):
    """
    WebSocket endpoint for dashboard live updates.

    Clients connect to ws://host/ws/dashboard and receive:
    - connected: on connect
    - kpis_refreshed: after every fresh KPI snapshot
    - pong: in reply to {"type": "ping"}
    """
    await ws_manager.connect(websocket)

    await ws_manager.send_to(websocket, {
        "event": "connected",
        "data": {"message": "Connected to Interaction KPI Hub live feed"},
    })

    try:
        while True:
            data = await websocket.receive_text()
            try:
                msg = json.loads(data)
            except json.JSONDecodeError:
                continue
            if isinstance(msg, dict) and msg.get("type") == "ping":
                await ws_manager.send_to(websocket, {"event": "pong", "data": {}})
    except WebSocketDisconnect:
        ws_manager.disconnect(websocket)
    except Exception as e:
        logger.warning("WebSocket receive failed: %s", e)
        ws_manager.disconnect(websocket)
