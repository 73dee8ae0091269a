"""
Interaction KPI Hub — Snapshot Aggregation
============================================

Composes the metric calculators into one KPISnapshot and derives the
cross-cutting numbers (growth, principal summary, efficiency scores).
Pure: no fetching and no caching happens here.
"""
from __future__ import annotations

from collections import Counter
from datetime import datetime, timedelta
from typing import Optional, Sequence

from models.interaction_models import (
    ActivityTrendSummary,
    EfficiencyMetrics,
    InteractionView,
    KPISnapshot,
    PrincipalSummary,
)
from scripts.analytics.calculators import (
    calculate_follow_up_metrics,
    calculate_response_times,
    calculate_type_distribution,
    distinct,
    growth,
    in_window,
    is_follow_up_completed,
    month_start,
    percentage,
    previous_month_start,
    resolve_now,
    round_half_up,
    week_start,
)

# Week-over-week change beyond which the trend is "up" or "down"
TREND_DIRECTION_THRESHOLD = 5


def _trend_summary(views: Sequence[InteractionView], now: datetime) -> ActivityTrendSummary:
    this_week_start = week_start(now)
    last_week_start = this_week_start - timedelta(days=7)
    this_month_start = month_start(now)
    last_month_start = previous_month_start(now)

    this_week = sum(1 for v in views if in_window(v, this_week_start))
    last_week = sum(1 for v in views if in_window(v, last_week_start, this_week_start))
    this_month = sum(1 for v in views if in_window(v, this_month_start))
    last_month = sum(1 for v in views if in_window(v, last_month_start, this_month_start))

    week_growth = growth(this_week, last_week)
    month_growth = growth(this_month, last_month)

    if week_growth > TREND_DIRECTION_THRESHOLD:
        direction = "up"
    elif week_growth < -TREND_DIRECTION_THRESHOLD:
        direction = "down"
    else:
        direction = "stable"

    return ActivityTrendSummary(
        this_week_vs_last_week=week_growth,
        this_month_vs_last_month=month_growth,
        growth_rate_percentage=(week_growth + month_growth) / 2,
        trend_direction=direction,
    )


def _principal_summary(views: Sequence[InteractionView]) -> PrincipalSummary:
    per_principal = Counter(v.created_by for v in views if v.created_by)
    principals = len(per_principal)

    return PrincipalSummary(
        total_principals_contacted=principals,
        avg_interactions_per_principal=round_half_up(len(views) / max(principals, 1)),
        most_active_principal_count=max(per_principal.values(), default=0),
        principals_needing_follow_up=distinct(
            v.created_by for v in views if v.is_overdue_follow_up
        ),
    )


def build_kpi_snapshot(
    views: Sequence[InteractionView],
    now: Optional[datetime] = None,
) -> KPISnapshot:
    """Compute the full KPI snapshot for one normalised record set."""
    now = resolve_now(now)
    total = len(views)

    this_week_start = week_start(now)
    next_week_start = this_week_start + timedelta(days=7)
    this_week = [v for v in views if in_window(v, this_week_start)]
    this_month = [v for v in views if in_window(v, month_start(now))]

    types = calculate_type_distribution(views, now)
    follow_ups = calculate_follow_up_metrics(views, now)

    scheduled = [v for v in views if is_follow_up_completed(v)]
    with_opportunities = sum(1 for v in views if v.has_opportunity)
    with_contacts = sum(1 for v in views if v.has_contact)
    unique_contacts = distinct(v.contact_id for v in views)

    completion_rate = follow_ups.completion_rate
    completed = follow_ups.total_follow_ups_needed - follow_ups.overdue_count

    return KPISnapshot(
        total_interactions=total,
        interactions_this_week=len(this_week),
        interactions_this_month=len(this_month),
        overdue_follow_ups=follow_ups.overdue_count,
        scheduled_follow_ups=len(scheduled),
        avg_interactions_per_week=round_half_up(total / 4),
        type_distribution=types.distribution,
        follow_up_completion_rate=completion_rate,
        avg_days_to_follow_up=follow_ups.avg_completion_time_days,
        interactions_with_opportunities=with_opportunities,
        interactions_with_contacts=with_contacts,
        unique_contacts_contacted=unique_contacts,
        unique_opportunities_touched=distinct(v.opportunity_id for v in views),
        created_this_week=len(this_week),
        follow_ups_completed_this_week=sum(1 for v in this_week if is_follow_up_completed(v)),
        follow_ups_scheduled_this_week=sum(
            1 for v in views
            if v.follow_up_date is not None
            and this_week_start <= v.follow_up_date < next_week_start
        ),
        response_time_metrics=calculate_response_times(views),
        activity_trends=_trend_summary(views, now),
        principal_metrics=_principal_summary(views),
        efficiency_metrics=EfficiencyMetrics(
            conversion_to_opportunity_rate=percentage(with_opportunities, total),
            follow_up_success_rate=completion_rate,
            interaction_density_score=round_half_up(total / max(unique_contacts, 1) * 10),
            engagement_quality_score=round_half_up(
                (with_opportunities * 0.4 + completed * 0.3 + len(this_week) * 0.3)
                / max(total * 0.1, 1)
            ),
        ),
    )
