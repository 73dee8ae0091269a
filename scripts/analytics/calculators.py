"""
Interaction KPI Hub — Metric Calculators
==========================================

One pure function per metric family. Each takes the normalised views plus
an explicit ``now`` and returns a fresh result model; none mutates its input
or reaches into another calculator.

Functions:
  calculate_type_distribution()   - counts, percentages, trends, effectiveness
  calculate_follow_up_metrics()   - overdue / due windows / completion rates
  calculate_activity_trends()     - period-over-period activity and growth
  calculate_principal_metrics()   - per-principal engagement rollup
  calculate_response_times()      - hours from interaction to follow-up date
"""
from __future__ import annotations

import math
import statistics
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional, Sequence, Tuple

from models.interaction_models import (
    ActivityTrends,
    FollowUpMetrics,
    GrowthMetrics,
    InteractionType,
    InteractionView,
    PeriodActivity,
    PrincipalMetrics,
    Projections,
    ResponseTimeMetrics,
    TREND_PERIODS,
    TypeCount,
    TypeDistribution,
    empty_type_counts,
)

DAY = timedelta(days=1)

# Type trend: trailing window vs the window before it
TYPE_TREND_WINDOW_DAYS = 7
TYPE_TREND_THRESHOLD = 10

# Week-over-week change that counts as a principal trend
PRINCIPAL_TREND_THRESHOLD = 5

# Projected interactions per month that count as 100% of target
DEFAULT_MONTHLY_TARGET = 100


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from negative infinity."""
    return int(math.floor(value + 0.5))


def percentage(part: float, whole: float, default: int = 0) -> int:
    """Rounded ``part / whole * 100``; ``default`` when ``whole`` is 0."""
    if not whole:
        return default
    return round_half_up(part / whole * 100)


def growth(current: float, previous: float) -> int:
    """Rounded percentage change; 0 when there is no previous baseline."""
    if not previous:
        return 0
    return round_half_up((current - previous) / previous * 100)


def resolve_now(now: Optional[datetime] = None) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now


def start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def week_start(now: datetime) -> datetime:
    """Midnight of the most recent Sunday."""
    days_since_sunday = (now.weekday() + 1) % 7
    return start_of_day(now) - timedelta(days=days_since_sunday)


def month_start(now: datetime) -> datetime:
    return start_of_day(now).replace(day=1)


def previous_month_start(now: datetime) -> datetime:
    return (month_start(now) - DAY).replace(day=1)


def quarter_start(now: datetime) -> datetime:
    first_month = (now.month - 1) // 3 * 3 + 1
    return month_start(now).replace(month=first_month)


def previous_quarter_start(now: datetime) -> datetime:
    start = quarter_start(now)
    month = start.month - 3
    year = start.year
    if month < 1:
        month += 12
        year -= 1
    return start.replace(year=year, month=month)


def period_bounds(period: str, now: datetime) -> Tuple[datetime, datetime]:
    """
    Return ``(current_start, previous_start)`` for a trend period.

    The current period runs from ``current_start`` up to ``now``; the
    previous one from ``previous_start`` up to (excluding) ``current_start``.
    """
    if period == "week":
        current = week_start(now)
        return current, current - timedelta(days=7)
    if period == "month":
        return month_start(now), previous_month_start(now)
    if period == "quarter":
        return quarter_start(now), previous_quarter_start(now)
    raise ValueError(f"Unknown trend period '{period}', expected one of {TREND_PERIODS}")


def in_window(view: InteractionView, start: datetime, end: Optional[datetime] = None) -> bool:
    """True when ``start <= view.date`` and, if given, ``view.date < end``."""
    if view.date < start:
        return False
    return end is None or view.date < end


def distinct(values: Iterable[Optional[str]]) -> int:
    return len({v for v in values if v})


def is_follow_up_completed(view: InteractionView) -> bool:
    # No completion column exists: a needed follow-up counts as on track
    # until it goes overdue.
    return view.follow_up_needed and not view.is_overdue_follow_up


# ---------------------------------------------------------------------------
# Type distribution
# ---------------------------------------------------------------------------

def _type_trend(current: int, baseline: int) -> str:
    change = growth(current, baseline)
    if change > TYPE_TREND_THRESHOLD:
        return "increasing"
    if change < -TYPE_TREND_THRESHOLD:
        return "decreasing"
    return "stable"


def calculate_type_distribution(
    views: Sequence[InteractionView],
    now: Optional[datetime] = None,
) -> TypeDistribution:
    """
    Count, share, short-term trend and opportunity effectiveness per type.

    Trend compares the trailing window against the window before it; a type
    with no baseline activity is "stable".
    """
    now = resolve_now(now)
    window = timedelta(days=TYPE_TREND_WINDOW_DAYS)
    current_start = now - window
    baseline_start = current_start - window

    distribution = empty_type_counts()
    with_opportunity = empty_type_counts()
    current = empty_type_counts()
    baseline = empty_type_counts()

    for view in views:
        t = view.interaction_type
        distribution[t] += 1
        if view.has_opportunity:
            with_opportunity[t] += 1
        if current_start < view.date <= now:
            current[t] += 1
        elif baseline_start < view.date <= current_start:
            baseline[t] += 1

    total = sum(distribution.values())

    return TypeDistribution(
        distribution=distribution,
        percentages={t: percentage(distribution[t], total) for t in InteractionType},
        trends={t: _type_trend(current[t], baseline[t]) for t in InteractionType},
        effectiveness={
            t: percentage(with_opportunity[t], distribution[t]) for t in InteractionType
        },
    )


# ---------------------------------------------------------------------------
# Follow-ups
# ---------------------------------------------------------------------------

def _follow_up_gap_days(view: InteractionView) -> Optional[float]:
    if view.follow_up_date is None:
        return None
    gap = (view.follow_up_date - view.date).total_seconds() / DAY.total_seconds()
    return gap if gap >= 0 else None


def calculate_follow_up_metrics(
    views: Sequence[InteractionView],
    now: Optional[datetime] = None,
) -> FollowUpMetrics:
    """Partition needed follow-ups into overdue and due windows."""
    now = resolve_now(now)
    today = now.date()
    next_week = today + timedelta(days=7)
    week_after_next = today + timedelta(days=14)

    needed = [v for v in views if v.follow_up_needed]
    overdue = [v for v in needed if v.is_overdue_follow_up]

    due_today = due_this_week = due_next_week = 0
    for view in needed:
        if view.follow_up_date is None:
            continue
        due = view.follow_up_date.date()
        if due == today:
            due_today += 1
        if today <= due <= next_week:
            due_this_week += 1
        elif next_week < due <= week_after_next:
            due_next_week += 1

    needed_by_type = Counter(v.interaction_type for v in needed)
    overdue_by_type = empty_type_counts()
    for view in overdue:
        overdue_by_type[view.interaction_type] += 1

    gaps = [g for g in (_follow_up_gap_days(v) for v in needed) if g is not None]

    return FollowUpMetrics(
        total_follow_ups_needed=len(needed),
        overdue_count=len(overdue),
        due_today=due_today,
        due_this_week=due_this_week,
        due_next_week=due_next_week,
        completion_rate=percentage(len(needed) - len(overdue), len(needed), default=100),
        avg_completion_time_days=round_half_up(statistics.mean(gaps)) if gaps else 0,
        overdue_by_type=overdue_by_type,
        success_rate_by_type={
            t: percentage(
                needed_by_type[t] - overdue_by_type[t], needed_by_type[t], default=100
            )
            for t in InteractionType
        },
    )


# ---------------------------------------------------------------------------
# Activity trends
# ---------------------------------------------------------------------------

def _period_activity(views: List[InteractionView], days: int) -> PeriodActivity:
    return PeriodActivity(
        total_interactions=len(views),
        unique_contacts=distinct(v.contact_id for v in views),
        unique_opportunities=distinct(v.opportunity_id for v in views),
        avg_daily_interactions=round_half_up(len(views) / max(days, 1)),
    )


def calculate_activity_trends(
    views: Sequence[InteractionView],
    period: str = "month",
    now: Optional[datetime] = None,
    monthly_target: int = DEFAULT_MONTHLY_TARGET,
) -> ActivityTrends:
    """
    Compare the current period with the one before it.

    Growth is a rounded percentage per dimension and 0 when the previous
    period had nothing to compare against. Projections extrapolate the
    current daily average linearly.
    """
    now = resolve_now(now)
    current_start, previous_start = period_bounds(period, now)

    current_views = [v for v in views if current_start <= v.date <= now]
    previous_views = [v for v in views if in_window(v, previous_start, current_start)]

    current_days = math.ceil((now - current_start).total_seconds() / DAY.total_seconds())
    previous_days = (current_start - previous_start).days

    current = _period_activity(current_views, current_days)
    previous = _period_activity(previous_views, previous_days)

    month_end = round_half_up(current.avg_daily_interactions * 30)

    return ActivityTrends(
        period=period,
        current_period=current,
        previous_period=previous,
        growth_metrics=GrowthMetrics(
            interaction_growth=growth(current.total_interactions, previous.total_interactions),
            contact_growth=growth(current.unique_contacts, previous.unique_contacts),
            opportunity_growth=growth(
                current.unique_opportunities, previous.unique_opportunities
            ),
            daily_average_growth=growth(
                current.avg_daily_interactions, previous.avg_daily_interactions
            ),
        ),
        projections=Projections(
            estimated_month_end=month_end,
            estimated_quarter_end=round_half_up(current.avg_daily_interactions * 90),
            target_achievement_rate=min(100, percentage(month_end, monthly_target)),
        ),
    )


# ---------------------------------------------------------------------------
# Response times
# ---------------------------------------------------------------------------

def response_time_hours(views: Iterable[InteractionView]) -> List[float]:
    """Positive gaps, in hours, between interaction and follow-up date."""
    hours = []
    for view in views:
        if view.follow_up_date is None:
            continue
        gap = (view.follow_up_date - view.date).total_seconds() / 3600
        if gap > 0:
            hours.append(gap)
    return hours


def calculate_response_times(views: Sequence[InteractionView]) -> ResponseTimeMetrics:
    hours = response_time_hours(views)
    if not hours:
        return ResponseTimeMetrics()

    return ResponseTimeMetrics(
        avg_response_time_hours=round_half_up(statistics.mean(hours)),
        median_response_time_hours=statistics.median(hours),
        fastest_response_hours=min(hours),
        slowest_response_hours=max(hours),
    )


# ---------------------------------------------------------------------------
# Principal performance
# ---------------------------------------------------------------------------

def _performance_trend(this_week: int, last_week: int) -> str:
    change = growth(this_week, last_week)
    if change > PRINCIPAL_TREND_THRESHOLD:
        return "improving"
    if change < -PRINCIPAL_TREND_THRESHOLD:
        return "declining"
    return "stable"


def calculate_principal_metrics(
    views: Sequence[InteractionView],
    principal_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> PrincipalMetrics:
    """
    Roll up one principal's interactions (or everyone's when no id is given).

    engagement_score = round(0.3*total + 0.4*completed + 0.3*this_week) * 10,
    with no upper bound.
    """
    now = resolve_now(now)
    scoped = [v for v in views if v.created_by == principal_id] if principal_id else list(views)

    this_week_start = week_start(now)
    last_week_start = this_week_start - timedelta(days=7)

    this_week = [v for v in scoped if in_window(v, this_week_start)]
    last_week = [v for v in scoped if in_window(v, last_week_start, this_week_start)]
    this_month = [v for v in scoped if in_window(v, month_start(now))]

    completed = [v for v in scoped if is_follow_up_completed(v)]
    overdue = [v for v in scoped if v.is_overdue_follow_up]
    hours = response_time_hours(scoped)

    type_counts = Counter(v.interaction_type for v in scoped)
    ranked = sorted(
        (t for t in InteractionType if type_counts[t]),
        key=lambda t: type_counts[t],
        reverse=True,
    )

    engagement = round_half_up(
        0.3 * len(scoped) + 0.4 * len(completed) + 0.3 * len(this_week)
    ) * 10

    return PrincipalMetrics(
        principal_id=principal_id,
        total_interactions=len(scoped),
        interactions_this_week=len(this_week),
        interactions_this_month=len(this_month),
        follow_ups_completed=len(completed),
        follow_ups_pending=len(completed),
        overdue_follow_ups=len(overdue),
        response_time_avg_hours=round_half_up(statistics.mean(hours)) if hours else 0,
        opportunity_conversion_rate=percentage(
            sum(1 for v in scoped if v.has_opportunity), len(scoped)
        ),
        engagement_score=engagement,
        performance_trend=_performance_trend(len(this_week), len(last_week)),
        top_interaction_types=[TypeCount(type=t, count=type_counts[t]) for t in ranked[:3]],
    )
