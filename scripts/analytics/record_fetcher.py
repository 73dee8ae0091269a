"""
Interaction KPI Hub — Record Fetcher
======================================
Reads interaction rows from Supabase, applies the filter set and
normalises every row into an InteractionView.

Failures never reach the caller: the fetcher logs a warning and hands back
the demo interactions with ``degraded_reason`` set, so the calculators
always receive a list.

Usage:
    fetcher = RecordFetcher()
    result = await fetcher.fetch(InteractionFilters(follow_up_needed=True))
    views = result.records
"""
from __future__ import annotations

import asyncio
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from models.interaction_models import (
    InteractionFilters,
    InteractionRecord,
    InteractionType,
    InteractionView,
    Priority,
)
from scripts.analytics.calculators import DAY, resolve_now, start_of_day
from scripts.analytics.fallback import demo_interactions
from scripts.lib.errors import DataFetchError, HubError, SchemaValidationError
from scripts.lib.logger import setup_logger

logger = setup_logger("record_fetcher")

INTERACTIONS_TABLE = "interactions"

INTERACTION_SELECT = (
    "*, "
    "opportunities:opportunity_id(name, stage, organization_id, probability_percent), "
    "contacts:contact_id(name, position, email, phone, is_primary, "
    "organization:organization_id(name, type, industry))"
)


@dataclass
class FetchResult:
    records: List[InteractionView] = field(default_factory=list)
    degraded_reason: Optional[str] = None

    @property
    def is_degraded(self) -> bool:
        return self.degraded_reason is not None


# ---------------------------------------------------------------------------
# Normalisation
# ---------------------------------------------------------------------------

def is_overdue(record: InteractionRecord, now: datetime) -> bool:
    """Needed, dated, and due strictly before the start of today."""
    if not record.follow_up_needed or record.follow_up_date is None:
        return False
    return record.follow_up_date < start_of_day(now)


def calculate_priority(record: InteractionRecord, overdue: bool) -> Priority:
    """First matching rule wins."""
    if overdue or (record.interaction_type == InteractionType.DEMO and record.has_opportunity):
        return Priority.HIGH
    if (
        record.follow_up_needed
        or (record.interaction_type == InteractionType.CALL and record.has_opportunity)
        or record.interaction_type == InteractionType.IN_PERSON
    ):
        return Priority.MEDIUM
    return Priority.LOW


def normalize_record(record: InteractionRecord, now: Optional[datetime] = None) -> InteractionView:
    """Derive days-since, days-to-follow-up, overdue flag and priority."""
    now = resolve_now(now)
    overdue = is_overdue(record, now)

    days_to_follow_up = None
    if record.follow_up_date is not None:
        days_to_follow_up = math.floor((record.follow_up_date - now) / DAY)

    return InteractionView(
        **record.model_dump(),
        days_since_interaction=math.floor((now - record.date) / DAY),
        days_to_follow_up=days_to_follow_up,
        is_overdue_follow_up=overdue,
        interaction_priority=calculate_priority(record, overdue),
    )


def normalize_rows(rows: List[Dict[str, Any]], now: Optional[datetime] = None) -> List[InteractionView]:
    """
    Normalise raw rows against one shared ``now``.

    Raises:
        SchemaValidationError: if any row doesn't match the interaction shape.
    """
    now = resolve_now(now)
    views = []
    for row in rows:
        if not isinstance(row, dict):
            raise SchemaValidationError(f"Expected a row object, got {type(row).__name__}")
        try:
            record = InteractionRecord.from_row(row)
        except (ValidationError, AttributeError, TypeError, ValueError) as e:
            raise SchemaValidationError(
                f"Malformed interaction row: {e}", record_id=str(row.get("id")),
            ) from e
        views.append(normalize_record(record, now))
    return views


# ---------------------------------------------------------------------------
# Fetcher
# ---------------------------------------------------------------------------

def quote_filter_value(value: str) -> str:
    """
    Double-quote a value for PostgREST logic-tree filters such as ``or=(...)``.

    Inside quotes, commas, dots and parentheses are literal; backslashes and
    double quotes are escaped.
    """
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def apply_filters(query, filters: InteractionFilters):
    """Apply every present filter to a Supabase query builder (AND semantics)."""
    query = query.is_("deleted_at", "null")

    if filters.has_search:
        term = filters.search.strip()
        pattern = quote_filter_value(f"%{term}%")
        query = query.or_(f"subject.ilike.{pattern},notes.ilike.{pattern}")
    if filters.interaction_type:
        query = query.in_("interaction_type", [t.value for t in filters.interaction_type])
    if filters.opportunity_id:
        query = query.eq("opportunity_id", filters.opportunity_id)
    if filters.contact_id:
        query = query.eq("contact_id", filters.contact_id)
    if filters.organization_id:
        query = query.eq("contacts.organization_id", filters.organization_id)
    if filters.created_by:
        query = query.eq("created_by", filters.created_by)
    if filters.date_from:
        query = query.gte("date", filters.date_from)
    if filters.date_to:
        query = query.lte("date", filters.date_to)
    if filters.follow_up_needed is not None:
        query = query.eq("follow_up_needed", filters.follow_up_needed)

    return query.order("date", desc=True)


class RecordFetcher:
    """Fetches and normalises interactions from the record source."""

    def __init__(
        self,
        client=None,
        client_factory: Callable[[], Any] = None,
        clock: Callable[[], datetime] = None,
    ):
        self._client = client
        self._client_factory = client_factory
        self._clock = clock or resolve_now

    def _get_client(self):
        if self._client is None:
            if self._client_factory is None:
                from scripts.lib.supabase_client import get_client
                self._client_factory = get_client
            self._client = self._client_factory()
        return self._client

    def _query(self, filters: InteractionFilters) -> List[Dict[str, Any]]:
        try:
            client = self._get_client()
            query = apply_filters(
                client.table(INTERACTIONS_TABLE).select(INTERACTION_SELECT), filters,
            )
            result = query.execute()
        except HubError:
            raise
        except Exception as e:
            raise DataFetchError(str(e), source=INTERACTIONS_TABLE) from e

        rows = getattr(result, "data", None)
        if rows is None:
            return []
        if not isinstance(rows, list):
            raise SchemaValidationError(
                f"Expected a list of rows, got {type(rows).__name__}",
            )
        return rows

    async def fetch(self, filters: Optional[InteractionFilters] = None) -> FetchResult:
        """
        Fetch interactions matching ``filters``, newest first.

        Returns:
            FetchResult with normalised views, or the demo interactions and a
            ``degraded_reason`` when the source fails.
        """
        filters = filters or InteractionFilters()
        try:
            rows = await asyncio.to_thread(self._query, filters)
            views = normalize_rows(rows, self._clock())
        except HubError as e:
            logger.warning("Interaction fetch failed, using demo data: %s", e)
            return FetchResult(records=demo_interactions(), degraded_reason=str(e))

        logger.debug("Fetched %d interactions", len(views))
        return FetchResult(records=views)
