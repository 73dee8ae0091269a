"""
Interaction KPI Hub — KPI Service
===================================
Orchestrates fetching, calculation, caching and fallback for every metric
family. One instance is built per application and passed to its consumers;
it is the only component that reads or writes the KPI cache.

Functions:
  calculate_interaction_kpis()       - full KPISnapshot (masked on failure)
  evaluate_interaction_kpis()        - same, tagged ok / degraded
  calculate_type_distribution()      - TypeDistribution
  calculate_follow_up_metrics()      - FollowUpMetrics
  calculate_activity_trends()        - ActivityTrends for week/month/quarter
  calculate_principal_performance()  - PrincipalMetrics, optionally per principal
  clear_cache()                      - drop every cached result
  get_calculation_status()           - is-calculating / last error / last updated

Search requests are never cached. Failures are logged, recorded in the
calculation status and replaced by demo data; nothing is raised to callers.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, List, Optional, TypeVar

from models.interaction_models import (
    ActivityTrends,
    CalculationStatus,
    FollowUpMetrics,
    InteractionFilters,
    InteractionView,
    KPIOutcome,
    KPISnapshot,
    PrincipalMetrics,
    TREND_PERIODS,
    TypeDistribution,
)
from scripts.analytics import fallback
from scripts.analytics.aggregator import build_kpi_snapshot
from scripts.analytics.calculators import (
    DEFAULT_MONTHLY_TARGET,
    calculate_activity_trends,
    calculate_follow_up_metrics,
    calculate_principal_metrics,
    calculate_type_distribution,
    resolve_now,
)
from scripts.analytics.kpi_cache import DEFAULT_EXPIRY_SECONDS, KPICache
from scripts.analytics.record_fetcher import RecordFetcher
from scripts.lib.errors import CalculationError
from scripts.lib.logger import setup_logger

logger = setup_logger("kpi_service")


def cache_ttl_seconds() -> float:
    """KPI_CACHE_TTL_SECONDS, read when a service is built so .env values apply."""
    return float(os.environ.get("KPI_CACHE_TTL_SECONDS", DEFAULT_EXPIRY_SECONDS))


def activity_target_per_month() -> int:
    return int(os.environ.get("ACTIVITY_TARGET_PER_MONTH", DEFAULT_MONTHLY_TARGET))


T = TypeVar("T")

SnapshotListener = Callable[[KPISnapshot], Awaitable[None]]


@dataclass
class _Computed:
    value: object
    degraded_reason: Optional[str] = None


class InteractionKPIService:
    """Computes and caches interaction KPIs over the record source."""

    def __init__(
        self,
        fetcher: Optional[RecordFetcher] = None,
        cache: Optional[KPICache] = None,
        clock: Callable[[], datetime] = None,
        monthly_target: Optional[int] = None,
    ):
        self._clock = clock or resolve_now
        self.fetcher = fetcher if fetcher is not None else RecordFetcher(clock=self._clock)
        self.cache = cache if cache is not None else KPICache(expiry_seconds=cache_ttl_seconds())
        self.monthly_target = (
            monthly_target if monthly_target is not None else activity_target_per_month()
        )

        self._snapshot_key: Optional[str] = None
        self._is_calculating = False
        self._last_error: Optional[str] = None
        self._listeners: List[SnapshotListener] = []

    # ─── Public API ──────────────────────────────────────────

    async def calculate_interaction_kpis(
        self, filters: Optional[InteractionFilters] = None,
    ) -> KPISnapshot:
        """Full KPI snapshot; demo numbers when anything fails."""
        outcome = await self.evaluate_interaction_kpis(filters)
        return outcome.snapshot

    async def evaluate_interaction_kpis(
        self, filters: Optional[InteractionFilters] = None,
    ) -> KPIOutcome:
        """Full KPI snapshot tagged with whether it came from live data."""
        filters = filters or InteractionFilters()
        key = f"kpis:{filters.cache_key()}"

        computed = await self._cached(
            family="kpis",
            key=key,
            filters=filters,
            compute=lambda views, now: build_kpi_snapshot(views, now),
            fallback=fallback.demo_kpi_snapshot,
            track_status=True,
        )

        if computed.degraded_reason:
            return KPIOutcome.degraded(computed.value, computed.degraded_reason)

        if not filters.has_search:
            self._snapshot_key = key
        return KPIOutcome.ok(computed.value)

    async def calculate_type_distribution(
        self, filters: Optional[InteractionFilters] = None,
    ) -> TypeDistribution:
        filters = filters or InteractionFilters()
        computed = await self._cached(
            family="type_distribution",
            key=f"type_distribution:{filters.cache_key()}",
            filters=filters,
            compute=calculate_type_distribution,
            fallback=fallback.demo_type_distribution,
        )
        return computed.value

    async def calculate_follow_up_metrics(
        self, filters: Optional[InteractionFilters] = None,
    ) -> FollowUpMetrics:
        filters = filters or InteractionFilters()
        computed = await self._cached(
            family="follow_ups",
            key=f"follow_ups:{filters.cache_key()}",
            filters=filters,
            compute=calculate_follow_up_metrics,
            fallback=fallback.demo_follow_up_metrics,
        )
        return computed.value

    async def calculate_activity_trends(
        self,
        period: str = "month",
        filters: Optional[InteractionFilters] = None,
    ) -> ActivityTrends:
        """
        Current vs previous period activity.

        Raises:
            ValueError: if ``period`` is not week, month or quarter.
        """
        if period not in TREND_PERIODS:
            raise ValueError(f"Unknown trend period '{period}', expected one of {TREND_PERIODS}")

        filters = filters or InteractionFilters()
        computed = await self._cached(
            family="trends",
            key=f"trends:{period}:{filters.cache_key()}",
            filters=filters,
            compute=lambda views, now: calculate_activity_trends(
                views, period, now, monthly_target=self.monthly_target,
            ),
            fallback=lambda: fallback.demo_activity_trends(period),
        )
        return computed.value

    async def calculate_principal_performance(
        self, principal_id: Optional[str] = None,
    ) -> PrincipalMetrics:
        filters = InteractionFilters(created_by=principal_id)
        computed = await self._cached(
            family="principal",
            key=f"principal:{principal_id or '*'}:{filters.cache_key()}",
            filters=filters,
            compute=lambda views, now: calculate_principal_metrics(views, principal_id, now),
            fallback=lambda: fallback.demo_principal_metrics(principal_id),
        )
        return computed.value

    @property
    def cached_snapshot(self) -> Optional[KPISnapshot]:
        """The last full snapshot, while it is still within the expiry."""
        if self._snapshot_key is None:
            return None
        return self.cache.get(self._snapshot_key)

    def clear_cache(self) -> None:
        self.cache.clear()
        self._snapshot_key = None

    def get_calculation_status(self) -> CalculationStatus:
        return CalculationStatus(
            is_calculating=self._is_calculating,
            has_error=self._last_error is not None,
            last_error=self._last_error,
            last_updated=self.cache.last_updated,
        )

    def add_listener(self, listener: SnapshotListener) -> None:
        """Register an async callback run after each fresh full snapshot."""
        self._listeners.append(listener)

    # ─── Internals ───────────────────────────────────────────

    async def _cached(
        self,
        family: str,
        key: str,
        filters: InteractionFilters,
        compute: Callable[[List[InteractionView], datetime], T],
        fallback: Callable[[], T],
        track_status: bool = False,
    ) -> _Computed:
        use_cache = not filters.has_search
        if use_cache:
            cached = self.cache.get(key)
            if cached is not None:
                return _Computed(cached)

        if track_status:
            self._is_calculating = True
            self._last_error = None

        try:
            fetched = await self.fetcher.fetch(filters)
            try:
                value = compute(fetched.records, self._clock())
            except Exception as e:
                raise CalculationError(family, e) from e
        except Exception as e:
            logger.error("Interaction %s calculation failed: %s", family, e, exc_info=True)
            self._last_error = str(e)
            return _Computed(fallback(), degraded_reason=str(e))
        finally:
            if track_status:
                self._is_calculating = False

        if fetched.is_degraded:
            # Computed over demo records; keep it out of the cache so the
            # next call retries the record source.
            self._last_error = fetched.degraded_reason
            return _Computed(value, degraded_reason=fetched.degraded_reason)

        if use_cache:
            self.cache.set(key, value)
        logger.info(
            "Recomputed %s over %d interactions%s",
            family, len(fetched.records), " (search, uncached)" if not use_cache else "",
        )

        if track_status:
            await self._notify(value)
        return _Computed(value)

    async def _notify(self, snapshot: KPISnapshot) -> None:
        for listener in list(self._listeners):
            try:
                await listener(snapshot)
            except Exception as e:
                logger.warning("KPI snapshot listener failed: %s", e)
