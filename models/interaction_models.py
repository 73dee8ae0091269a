"""
Interaction KPI Hub — Interaction & KPI Pydantic Models
=========================================================

Records read from the interactions table, the normalised view the
calculators work on, filter sets, and every metric family result.
"""
from __future__ import annotations

import hashlib
import json
from datetime import date as Date, datetime, time, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# ─── Enums ──────────────────────────────────────────────────

class InteractionType(str, Enum):
    EMAIL = "EMAIL"
    CALL = "CALL"
    IN_PERSON = "IN_PERSON"
    DEMO = "DEMO"
    FOLLOW_UP = "FOLLOW_UP"


class Priority(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


TrendPeriod = Literal["week", "month", "quarter"]
TREND_PERIODS = ("week", "month", "quarter")


def empty_type_counts(value: int = 0) -> Dict[InteractionType, int]:
    """One entry per interaction type, in enum order."""
    return {t: value for t in InteractionType}


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a Supabase timestamp into an aware UTC datetime.

    Accepts ISO 8601 strings (with or without time, "Z" suffix allowed),
    date and datetime objects. Naive values are treated as UTC.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, Date):
        parsed = datetime.combine(value, time.min)
    elif isinstance(value, str):
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    else:
        raise ValueError(f"Unsupported timestamp value: {value!r}")

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


# ─── Records ────────────────────────────────────────────────

class InteractionRecord(BaseModel):
    """An interaction row joined with its opportunity/contact display fields."""
    model_config = ConfigDict(frozen=True)

    id: str
    interaction_type: InteractionType
    date: datetime
    subject: Optional[str] = None
    notes: Optional[str] = None
    follow_up_needed: bool = False
    follow_up_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    created_by: Optional[str] = None

    opportunity_id: Optional[str] = None
    opportunity_name: Optional[str] = None
    opportunity_stage: Optional[str] = None
    opportunity_organization: Optional[str] = None

    contact_id: Optional[str] = None
    contact_name: Optional[str] = None
    contact_position: Optional[str] = None
    contact_organization: Optional[str] = None

    @field_validator("date", "follow_up_date", "created_at", "updated_at", mode="before")
    @classmethod
    def _parse_timestamps(cls, value):
        return parse_timestamp(value)

    @field_validator("follow_up_needed", mode="before")
    @classmethod
    def _null_flag_is_false(cls, value):
        return False if value is None else value

    @model_validator(mode="before")
    @classmethod
    def _drop_follow_up_date_without_flag(cls, data):
        # A follow-up date only means something when a follow-up is needed.
        if isinstance(data, dict) and not data.get("follow_up_needed"):
            data = {**data, "follow_up_date": None}
        return data

    @property
    def has_opportunity(self) -> bool:
        return bool(self.opportunity_id)

    @property
    def has_contact(self) -> bool:
        return bool(self.contact_id)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "InteractionRecord":
        """Build a record from a raw row with embedded opportunity/contact relations."""
        opportunity = row.get("opportunities") or {}
        contact = row.get("contacts") or {}
        organization = contact.get("organization") or {}

        return cls(
            id=str(row.get("id")) if row.get("id") is not None else None,
            interaction_type=row.get("interaction_type"),
            date=row.get("date"),
            subject=row.get("subject"),
            notes=row.get("notes"),
            follow_up_needed=row.get("follow_up_needed"),
            follow_up_date=row.get("follow_up_date"),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
            created_by=row.get("created_by"),
            opportunity_id=row.get("opportunity_id"),
            opportunity_name=opportunity.get("name"),
            opportunity_stage=opportunity.get("stage"),
            opportunity_organization=opportunity.get("organization_id"),
            contact_id=row.get("contact_id"),
            contact_name=contact.get("name"),
            contact_position=contact.get("position"),
            contact_organization=organization.get("name"),
        )


class InteractionView(InteractionRecord):
    """A record plus the fields derived at fetch time."""
    days_since_interaction: int
    days_to_follow_up: Optional[int] = None
    is_overdue_follow_up: bool = False
    interaction_priority: Priority = Priority.LOW


# ─── Filters ────────────────────────────────────────────────

class InteractionFilters(BaseModel):
    """Optional filters, combined with AND."""
    search: Optional[str] = None
    interaction_type: List[InteractionType] = Field(default_factory=list)
    opportunity_id: Optional[str] = None
    contact_id: Optional[str] = None
    organization_id: Optional[str] = None
    created_by: Optional[str] = None
    date_from: Optional[str] = None
    date_to: Optional[str] = None
    follow_up_needed: Optional[bool] = None

    @property
    def has_search(self) -> bool:
        return bool(self.search and self.search.strip())

    def cache_key(self) -> str:
        """Stable fingerprint of every filter except the free-text search."""
        payload = self.model_dump(mode="json", exclude={"search"})
        payload["interaction_type"] = sorted(payload["interaction_type"])
        encoded = json.dumps(payload, sort_keys=True)
        return hashlib.sha256(encoded.encode()).hexdigest()[:16]


# ─── Metric Families ────────────────────────────────────────

class TypeDistribution(BaseModel):
    model_config = ConfigDict(frozen=True)

    distribution: Dict[InteractionType, int] = Field(default_factory=empty_type_counts)
    percentages: Dict[InteractionType, int] = Field(default_factory=empty_type_counts)
    trends: Dict[InteractionType, Literal["increasing", "decreasing", "stable"]] = Field(
        default_factory=lambda: {t: "stable" for t in InteractionType}
    )
    effectiveness: Dict[InteractionType, int] = Field(default_factory=empty_type_counts)


class FollowUpMetrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_follow_ups_needed: int = 0
    overdue_count: int = 0
    due_today: int = 0
    due_this_week: int = 0
    due_next_week: int = 0
    completion_rate: int = 100
    avg_completion_time_days: int = 0
    overdue_by_type: Dict[InteractionType, int] = Field(default_factory=empty_type_counts)
    success_rate_by_type: Dict[InteractionType, int] = Field(
        default_factory=lambda: empty_type_counts(100)
    )


class PeriodActivity(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_interactions: int = 0
    unique_contacts: int = 0
    unique_opportunities: int = 0
    avg_daily_interactions: int = 0


class GrowthMetrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    interaction_growth: int = 0
    contact_growth: int = 0
    opportunity_growth: int = 0
    daily_average_growth: int = 0


class Projections(BaseModel):
    model_config = ConfigDict(frozen=True)

    estimated_month_end: int = 0
    estimated_quarter_end: int = 0
    target_achievement_rate: int = 0


class ActivityTrends(BaseModel):
    model_config = ConfigDict(frozen=True)

    period: TrendPeriod = "month"
    current_period: PeriodActivity = Field(default_factory=PeriodActivity)
    previous_period: PeriodActivity = Field(default_factory=PeriodActivity)
    growth_metrics: GrowthMetrics = Field(default_factory=GrowthMetrics)
    projections: Projections = Field(default_factory=Projections)


class TypeCount(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: InteractionType
    count: int


class PrincipalMetrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    principal_id: Optional[str] = None
    total_interactions: int = 0
    interactions_this_week: int = 0
    interactions_this_month: int = 0
    follow_ups_completed: int = 0
    follow_ups_pending: int = 0
    overdue_follow_ups: int = 0
    response_time_avg_hours: int = 0
    opportunity_conversion_rate: int = 0
    engagement_score: int = 0
    performance_trend: Literal["improving", "declining", "stable"] = "stable"
    top_interaction_types: List[TypeCount] = Field(default_factory=list)


# ─── KPI Snapshot ───────────────────────────────────────────

class ResponseTimeMetrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    avg_response_time_hours: int = 0
    median_response_time_hours: float = 0
    fastest_response_hours: float = 0
    slowest_response_hours: float = 0


class ActivityTrendSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    this_week_vs_last_week: int = 0
    this_month_vs_last_month: int = 0
    growth_rate_percentage: float = 0
    trend_direction: Literal["up", "down", "stable"] = "stable"


class PrincipalSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_principals_contacted: int = 0
    avg_interactions_per_principal: int = 0
    most_active_principal_count: int = 0
    principals_needing_follow_up: int = 0


class EfficiencyMetrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    conversion_to_opportunity_rate: int = 0
    follow_up_success_rate: int = 100
    interaction_density_score: int = 0
    engagement_quality_score: int = 0


class KPISnapshot(BaseModel):
    """The complete computed metrics bundle for one filter context. Immutable once built."""
    model_config = ConfigDict(frozen=True)

    # Basic
    total_interactions: int = 0
    interactions_this_week: int = 0
    interactions_this_month: int = 0
    overdue_follow_ups: int = 0
    scheduled_follow_ups: int = 0
    avg_interactions_per_week: int = 0

    type_distribution: Dict[InteractionType, int] = Field(default_factory=empty_type_counts)

    # Follow-ups
    follow_up_completion_rate: int = 100
    avg_days_to_follow_up: int = 0

    # Relationships
    interactions_with_opportunities: int = 0
    interactions_with_contacts: int = 0
    unique_contacts_contacted: int = 0
    unique_opportunities_touched: int = 0

    # Recent activity
    created_this_week: int = 0
    follow_ups_completed_this_week: int = 0
    follow_ups_scheduled_this_week: int = 0

    response_time_metrics: ResponseTimeMetrics = Field(default_factory=ResponseTimeMetrics)
    activity_trends: ActivityTrendSummary = Field(default_factory=ActivityTrendSummary)
    principal_metrics: PrincipalSummary = Field(default_factory=PrincipalSummary)
    efficiency_metrics: EfficiencyMetrics = Field(default_factory=EfficiencyMetrics)


class KPIOutcome(BaseModel):
    """A snapshot tagged with whether it came from live data or the demo fallback."""
    status: Literal["ok", "degraded"]
    snapshot: KPISnapshot
    reason: Optional[str] = None

    @property
    def is_degraded(self) -> bool:
        return self.status == "degraded"

    @classmethod
    def ok(cls, snapshot: KPISnapshot) -> "KPIOutcome":
        return cls(status="ok", snapshot=snapshot)

    @classmethod
    def degraded(cls, snapshot: KPISnapshot, reason: str) -> "KPIOutcome":
        return cls(status="degraded", snapshot=snapshot, reason=reason)


class CalculationStatus(BaseModel):
    is_calculating: bool = False
    has_error: bool = False
    last_error: Optional[str] = None
    last_updated: Optional[datetime] = None
