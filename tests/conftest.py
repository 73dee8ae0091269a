"""Shared fixtures: a fixed clock and an in-memory stand-in for the Supabase client."""

from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

# Wednesday; the week started on Sunday 2026-10-11
NOW = datetime(2026, 10, 14, 15, 0, tzinfo=timezone.utc)


class FakeQuery:
    """Chainable query builder that records every call."""

    def __init__(self, client):
        self._client = client

    def _record(self, name, *args, **kwargs):
        self._client.calls.append((name, args, kwargs))
        return self

    def select(self, *args, **kwargs):
        return self._record("select", *args, **kwargs)

    def is_(self, *args, **kwargs):
        return self._record("is_", *args, **kwargs)

    def or_(self, *args, **kwargs):
        return self._record("or_", *args, **kwargs)

    def in_(self, *args, **kwargs):
        return self._record("in_", *args, **kwargs)

    def eq(self, *args, **kwargs):
        return self._record("eq", *args, **kwargs)

    def gte(self, *args, **kwargs):
        return self._record("gte", *args, **kwargs)

    def lte(self, *args, **kwargs):
        return self._record("lte", *args, **kwargs)

    def order(self, *args, **kwargs):
        return self._record("order", *args, **kwargs)

    def execute(self):
        self._client.executions += 1
        if self._client.error is not None:
            raise self._client.error
        return SimpleNamespace(data=self._client.rows)


class FakeSupabaseClient:
    def __init__(self, rows=None, error=None):
        self.rows = rows if rows is not None else []
        self.error = error
        self.calls = []
        self.tables = []
        self.executions = 0

    def table(self, name):
        self.tables.append(name)
        return FakeQuery(self)

    def calls_named(self, name):
        return [args for call, args, _ in self.calls if call == name]


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def make_row():
    """Factory for raw interaction rows as returned by the select with embeds."""
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        row = {
            "id": f"int-{counter['n']}",
            "interaction_type": "EMAIL",
            "date": "2026-10-13T10:00:00+00:00",
            "subject": "Check-in",
            "notes": None,
            "follow_up_needed": False,
            "follow_up_date": None,
            "created_at": "2026-10-13T10:00:00+00:00",
            "updated_at": "2026-10-13T10:00:00+00:00",
            "created_by": "principal-1",
            "opportunity_id": None,
            "contact_id": None,
            "opportunities": None,
            "contacts": None,
        }
        row.update(overrides)
        return row

    return _make


@pytest.fixture
def fake_client_factory():
    return FakeSupabaseClient
