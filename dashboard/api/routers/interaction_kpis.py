"""
Interaction KPI Hub — Interaction KPIs Router
===============================================
Dashboard endpoints over the shared InteractionKPIService.

Endpoints:
  GET  /api/interactions/kpis                    - Full KPI snapshot (+ degraded flag)
  GET  /api/interactions/kpis/type-distribution  - Per-type counts and shares
  GET  /api/interactions/kpis/follow-ups         - Follow-up windows and completion
  GET  /api/interactions/kpis/trends             - Period-over-period activity
  GET  /api/interactions/kpis/principals         - Principal performance
  GET  /api/interactions/kpis/cached             - Last cached snapshot, if still valid
  GET  /api/interactions/kpis/status             - Calculation status
  POST /api/interactions/kpis/cache/clear        - Drop every cached result
"""
from __future__ import annotations

from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query, Request

from models.interaction_models import InteractionFilters, InteractionType
from scripts.analytics.kpi_service import InteractionKPIService
from scripts.lib.logger import setup_logger

logger = setup_logger("interaction_kpis_router")

router = APIRouter(prefix="/api/interactions/kpis", tags=["interaction-kpis"])


def get_kpi_service(request: Request) -> InteractionKPIService:
    """The service instance built at startup."""
    return request.app.state.kpi_service


def interaction_filters(
    search: Optional[str] = Query(None, description="Free text over subject and notes"),
    interaction_type: Optional[List[InteractionType]] = Query(
        None, description="Repeatable: EMAIL, CALL, IN_PERSON, DEMO, FOLLOW_UP",
    ),
    opportunity_id: Optional[str] = Query(None, description="Filter by opportunity ID"),
    contact_id: Optional[str] = Query(None, description="Filter by contact ID"),
    organization_id: Optional[str] = Query(None, description="Filter by contact organization ID"),
    created_by: Optional[str] = Query(None, description="Filter by principal"),
    date_from: Optional[str] = Query(None, description="Earliest interaction date (ISO)"),
    date_to: Optional[str] = Query(None, description="Latest interaction date (ISO)"),
    follow_up_needed: Optional[bool] = Query(None, description="Only records with/without follow-up"),
) -> InteractionFilters:
    return InteractionFilters(
        search=search,
        interaction_type=interaction_type or [],
        opportunity_id=opportunity_id,
        contact_id=contact_id,
        organization_id=organization_id,
        created_by=created_by,
        date_from=date_from,
        date_to=date_to,
        follow_up_needed=follow_up_needed,
    )


@router.get("")
async def interaction_kpis(
    filters: InteractionFilters = Depends(interaction_filters),
    service: InteractionKPIService = Depends(get_kpi_service),
):
    """Full KPI snapshot. ``degraded`` is true when demo data was served."""
    outcome = await service.evaluate_interaction_kpis(filters)
    return {
        "kpis": outcome.snapshot,
        "degraded": outcome.is_degraded,
        "reason": outcome.reason,
    }


@router.get("/type-distribution")
async def type_distribution(
    filters: InteractionFilters = Depends(interaction_filters),
    service: InteractionKPIService = Depends(get_kpi_service),
):
    return await service.calculate_type_distribution(filters)


@router.get("/follow-ups")
async def follow_up_metrics(
    filters: InteractionFilters = Depends(interaction_filters),
    service: InteractionKPIService = Depends(get_kpi_service),
):
    return await service.calculate_follow_up_metrics(filters)


@router.get("/trends")
async def activity_trends(
    period: Literal["week", "month", "quarter"] = Query("month", description="Trend period"),
    filters: InteractionFilters = Depends(interaction_filters),
    service: InteractionKPIService = Depends(get_kpi_service),
):
    return await service.calculate_activity_trends(period, filters)


@router.get("/principals")
async def principal_performance(
    principal_id: Optional[str] = Query(None, description="Principal (created_by) to scope to"),
    service: InteractionKPIService = Depends(get_kpi_service),
):
    return await service.calculate_principal_performance(principal_id)


@router.get("/cached")
async def cached_snapshot(service: InteractionKPIService = Depends(get_kpi_service)):
    """Last full snapshot without triggering a recomputation."""
    return {"kpis": service.cached_snapshot}


@router.get("/status")
async def calculation_status(service: InteractionKPIService = Depends(get_kpi_service)):
    return service.get_calculation_status()


@router.post("/cache/clear")
async def clear_cache(service: InteractionKPIService = Depends(get_kpi_service)):
    service.clear_cache()
    logger.info("KPI cache cleared via API")
    return {"status": "cleared"}
