"""
Interaction KPI Hub — Demo Fallback Data
==========================================

Static, internally consistent demo values served whenever the record
source or a calculation fails. Every call returns fresh model instances.
"""
from __future__ import annotations

from typing import List, Optional

from models.interaction_models import (
    ActivityTrendSummary,
    ActivityTrends,
    EfficiencyMetrics,
    FollowUpMetrics,
    GrowthMetrics,
    InteractionType,
    InteractionView,
    KPISnapshot,
    PeriodActivity,
    PrincipalMetrics,
    PrincipalSummary,
    Priority,
    Projections,
    ResponseTimeMetrics,
    TypeCount,
    TypeDistribution,
)

EMAIL = InteractionType.EMAIL
CALL = InteractionType.CALL
IN_PERSON = InteractionType.IN_PERSON
DEMO = InteractionType.DEMO
FOLLOW_UP = InteractionType.FOLLOW_UP

DEMO_TYPE_COUNTS = {EMAIL: 8, CALL: 6, IN_PERSON: 4, DEMO: 3, FOLLOW_UP: 4}


def demo_interactions() -> List[InteractionView]:
    """A small set of already-normalised demo interactions."""
    return [
        InteractionView(
            id="demo-int-1",
            interaction_type=DEMO,
            date="2024-08-15T14:00:00Z",
            subject="Product demonstration for TechCorp integration",
            notes="Presented the enterprise integration solution. Positive response from the technical team.",
            follow_up_needed=True,
            follow_up_date="2024-08-20T00:00:00Z",
            created_at="2024-08-15T14:00:00Z",
            updated_at="2024-08-15T14:00:00Z",
            created_by="sarah.johnson@company.com",
            opportunity_id="demo-opp-1",
            opportunity_name="Enterprise Integration - TechCorp",
            opportunity_stage="DEMO_SCHEDULED",
            opportunity_organization="TechCorp Solutions",
            contact_id="demo-contact-1",
            contact_name="Mike Chen",
            contact_position="CTO",
            contact_organization="TechCorp Solutions",
            days_since_interaction=1,
            days_to_follow_up=5,
            is_overdue_follow_up=False,
            interaction_priority=Priority.HIGH,
        ),
        InteractionView(
            id="demo-int-2",
            interaction_type=CALL,
            date="2024-08-12T10:30:00Z",
            subject="Initial outreach call - StartupCo opportunity",
            notes="Discussed cloud migration needs with Lisa Wang. Scheduled a follow-up demo.",
            follow_up_needed=True,
            follow_up_date="2024-08-19T00:00:00Z",
            created_at="2024-08-12T10:30:00Z",
            updated_at="2024-08-12T10:30:00Z",
            created_by="alex.rodriguez@company.com",
            opportunity_id="demo-opp-2",
            opportunity_name="Cloud Migration - StartupCo",
            opportunity_stage="INITIAL_OUTREACH",
            opportunity_organization="StartupCo Inc",
            contact_id="demo-contact-2",
            contact_name="Lisa Wang",
            contact_position="VP Engineering",
            contact_organization="StartupCo Inc",
            days_since_interaction=4,
            days_to_follow_up=7,
            is_overdue_follow_up=False,
            interaction_priority=Priority.MEDIUM,
        ),
        InteractionView(
            id="demo-int-3",
            interaction_type=EMAIL,
            date="2024-08-08T16:45:00Z",
            subject="Follow-up: Data analytics proposal",
            notes="Sent the analytics suite proposal. Awaiting feedback.",
            follow_up_needed=True,
            follow_up_date="2024-08-14T00:00:00Z",
            created_at="2024-08-08T16:45:00Z",
            updated_at="2024-08-08T16:45:00Z",
            created_by="emma.thompson@company.com",
            opportunity_id="demo-opp-3",
            opportunity_name="Data Analytics - RetailGiant",
            opportunity_stage="FEEDBACK_LOGGED",
            opportunity_organization="RetailGiant Corp",
            contact_id="demo-contact-3",
            contact_name="David Kim",
            contact_position="Data Director",
            contact_organization="RetailGiant Corp",
            days_since_interaction=8,
            days_to_follow_up=-2,
            is_overdue_follow_up=True,
            interaction_priority=Priority.HIGH,
        ),
    ]


def demo_kpi_snapshot() -> KPISnapshot:
    return KPISnapshot(
        total_interactions=25,
        interactions_this_week=8,
        interactions_this_month=18,
        overdue_follow_ups=3,
        scheduled_follow_ups=7,
        avg_interactions_per_week=6,
        type_distribution=dict(DEMO_TYPE_COUNTS),
        follow_up_completion_rate=70,
        avg_days_to_follow_up=5,
        interactions_with_opportunities=15,
        interactions_with_contacts=20,
        unique_contacts_contacted=12,
        unique_opportunities_touched=8,
        created_this_week=8,
        follow_ups_completed_this_week=5,
        follow_ups_scheduled_this_week=3,
        response_time_metrics=ResponseTimeMetrics(
            avg_response_time_hours=18,
            median_response_time_hours=12,
            fastest_response_hours=2,
            slowest_response_hours=72,
        ),
        activity_trends=ActivityTrendSummary(
            this_week_vs_last_week=15,
            this_month_vs_last_month=8,
            growth_rate_percentage=11.5,
            trend_direction="up",
        ),
        principal_metrics=PrincipalSummary(
            total_principals_contacted=5,
            avg_interactions_per_principal=5,
            most_active_principal_count=8,
            principals_needing_follow_up=2,
        ),
        efficiency_metrics=EfficiencyMetrics(
            conversion_to_opportunity_rate=60,
            follow_up_success_rate=70,
            interaction_density_score=21,
            engagement_quality_score=4,
        ),
    )


def demo_type_distribution() -> TypeDistribution:
    return TypeDistribution(
        distribution=dict(DEMO_TYPE_COUNTS),
        percentages={EMAIL: 32, CALL: 24, IN_PERSON: 16, DEMO: 12, FOLLOW_UP: 16},
        trends={
            EMAIL: "stable",
            CALL: "increasing",
            IN_PERSON: "stable",
            DEMO: "increasing",
            FOLLOW_UP: "decreasing",
        },
        effectiveness={EMAIL: 65, CALL: 80, IN_PERSON: 95, DEMO: 90, FOLLOW_UP: 75},
    )


def demo_follow_up_metrics() -> FollowUpMetrics:
    return FollowUpMetrics(
        total_follow_ups_needed=10,
        overdue_count=3,
        due_today=2,
        due_this_week=5,
        due_next_week=2,
        completion_rate=70,
        avg_completion_time_days=5,
        overdue_by_type={EMAIL: 1, CALL: 1, IN_PERSON: 0, DEMO: 1, FOLLOW_UP: 0},
        success_rate_by_type={EMAIL: 75, CALL: 67, IN_PERSON: 100, DEMO: 50, FOLLOW_UP: 100},
    )


def demo_activity_trends(period: str = "month") -> ActivityTrends:
    return ActivityTrends(
        period=period,
        current_period=PeriodActivity(
            total_interactions=25,
            unique_contacts=12,
            unique_opportunities=8,
            avg_daily_interactions=4,
        ),
        previous_period=PeriodActivity(
            total_interactions=20,
            unique_contacts=10,
            unique_opportunities=6,
            avg_daily_interactions=3,
        ),
        growth_metrics=GrowthMetrics(
            interaction_growth=25,
            contact_growth=20,
            opportunity_growth=33,
            daily_average_growth=33,
        ),
        projections=Projections(
            estimated_month_end=120,
            estimated_quarter_end=360,
            target_achievement_rate=100,
        ),
    )


def demo_principal_metrics(principal_id: Optional[str] = None) -> PrincipalMetrics:
    return PrincipalMetrics(
        principal_id=principal_id,
        total_interactions=15,
        interactions_this_week=5,
        interactions_this_month=12,
        follow_ups_completed=8,
        follow_ups_pending=8,
        overdue_follow_ups=1,
        response_time_avg_hours=18,
        opportunity_conversion_rate=75,
        engagement_score=90,
        performance_trend="improving",
        top_interaction_types=[
            TypeCount(type=EMAIL, count=6),
            TypeCount(type=CALL, count=4),
            TypeCount(type=DEMO, count=3),
        ],
    )
