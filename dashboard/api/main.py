"""
Interaction KPI Hub — API Server
==================================

Serves interaction analytics computed over the Supabase interactions table.

Route groups:
  /api/health                - Health check
  /api/interactions/kpis/*   - Interaction KPI families, cache and status
  /ws/dashboard              - WebSocket live feed
"""

import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Load .env before the project modules read their settings
load_dotenv()

from dashboard.api.routers.interaction_kpis import router as interaction_kpis_router
from dashboard.api.websocket import websocket_endpoint, ws_manager
from scripts.analytics.kpi_service import InteractionKPIService
from scripts.lib import supabase_client

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


def build_kpi_service() -> InteractionKPIService:
    """One KPI service per application, pushing fresh snapshots to the live feed."""
    service = InteractionKPIService()
    service.add_listener(ws_manager.publish_snapshot)
    return service


# ─── Lifespan ─────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app):
    """Application startup and shutdown."""
    logger.info("Starting Interaction KPI Hub...")

    if getattr(app.state, "kpi_service", None) is None:
        app.state.kpi_service = build_kpi_service()

    if supabase_client.is_configured():
        logger.info("Supabase configured at %s", supabase_client.SUPABASE_URL)
    else:
        logger.warning("Supabase not configured, KPIs will be served from demo data")

    logger.info("Interaction KPI Hub ready")
    yield
    logger.info("Shutting down Interaction KPI Hub...")


# ─── App Setup ────────────────────────────────────────────────

cors_origins = os.getenv(
    "CORS_ORIGINS", "http://localhost:3000,http://localhost:8001"
).split(",")

app = FastAPI(
    title="Interaction KPI Hub",
    version=VERSION,
    description="CRM interaction analytics with cached KPI snapshots",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(interaction_kpis_router)

app.add_api_websocket_route("/ws/dashboard", websocket_endpoint)


# ─── Health ───────────────────────────────────────────────────

@app.get("/api/health", tags=["system"])
async def health():
    """Health check with KPI engine status."""
    service = app.state.kpi_service
    status = service.get_calculation_status()

    return {
        "status": "degraded" if status.has_error else "healthy",
        "service": "Interaction KPI Hub",
        "version": VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "integrations": {
            "supabase": supabase_client.is_configured(),
        },
        "kpis": status.model_dump(mode="json"),
        "websocket_connections": ws_manager.connection_count,
    }
