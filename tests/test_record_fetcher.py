"""Tests for interaction fetching and normalisation."""

import pytest

from models.interaction_models import (
    InteractionFilters,
    InteractionRecord,
    InteractionType,
    Priority,
)
from scripts.analytics.record_fetcher import (
    INTERACTIONS_TABLE,
    RecordFetcher,
    apply_filters,
    calculate_priority,
    normalize_rows,
    quote_filter_value,
)
from scripts.lib.errors import ConfigError, SchemaValidationError

DEMO_IDS = ["demo-int-1", "demo-int-2", "demo-int-3"]


class TestNormalisation:
    def test_days_since_interaction(self, make_row, now):
        view = normalize_rows([make_row(date="2026-10-10T15:00:00Z")], now)[0]
        assert view.days_since_interaction == 4

    def test_follow_up_due_today_is_not_overdue(self, make_row, now):
        view = normalize_rows(
            [make_row(follow_up_needed=True, follow_up_date="2026-10-14")], now,
        )[0]
        assert view.is_overdue_follow_up is False

    def test_follow_up_due_yesterday_is_overdue(self, make_row, now):
        view = normalize_rows(
            [make_row(follow_up_needed=True, follow_up_date="2026-10-13")], now,
        )[0]
        assert view.is_overdue_follow_up is True
        assert view.interaction_priority == Priority.HIGH
        assert view.days_to_follow_up == -2

    def test_days_to_follow_up_floors(self, make_row, now):
        view = normalize_rows(
            [make_row(follow_up_needed=True, follow_up_date="2026-10-16T00:00:00Z")], now,
        )[0]
        assert view.days_to_follow_up == 1

    def test_follow_up_date_dropped_without_flag(self, make_row, now):
        view = normalize_rows(
            [make_row(follow_up_needed=False, follow_up_date="2026-10-01")], now,
        )[0]
        assert view.follow_up_date is None
        assert view.days_to_follow_up is None
        assert view.is_overdue_follow_up is False

    def test_null_follow_up_flag_is_false(self, make_row, now):
        view = normalize_rows([make_row(follow_up_needed=None)], now)[0]
        assert view.follow_up_needed is False

    def test_embedded_relations_are_flattened(self, make_row, now):
        row = make_row(
            opportunity_id="opp-1",
            contact_id="c-1",
            opportunities={"name": "Renewal", "stage": "NEGOTIATION", "organization_id": "org-1"},
            contacts={
                "name": "Ana Ruiz",
                "position": "CFO",
                "organization": {"name": "Acme"},
            },
        )
        view = normalize_rows([row], now)[0]
        assert view.opportunity_name == "Renewal"
        assert view.opportunity_stage == "NEGOTIATION"
        assert view.contact_name == "Ana Ruiz"
        assert view.contact_organization == "Acme"

    def test_malformed_row_raises(self, make_row, now):
        with pytest.raises(SchemaValidationError):
            normalize_rows([make_row(interaction_type="FAX")], now)

    def test_missing_date_raises(self, make_row, now):
        with pytest.raises(SchemaValidationError):
            normalize_rows([make_row(date=None)], now)


class TestPriority:
    @staticmethod
    def _record(interaction_type, opportunity_id=None, follow_up_needed=False):
        return InteractionRecord(
            id="r-1",
            interaction_type=interaction_type,
            date="2026-10-13T10:00:00Z",
            opportunity_id=opportunity_id,
            follow_up_needed=follow_up_needed,
            follow_up_date="2026-10-20" if follow_up_needed else None,
        )

    @pytest.mark.parametrize("interaction_type,opportunity_id,follow_up,overdue,expected", [
        (InteractionType.EMAIL, None, False, True, Priority.HIGH),
        (InteractionType.DEMO, "opp-1", False, False, Priority.HIGH),
        (InteractionType.DEMO, None, False, False, Priority.LOW),
        (InteractionType.CALL, "opp-1", False, False, Priority.MEDIUM),
        (InteractionType.CALL, None, False, False, Priority.LOW),
        (InteractionType.IN_PERSON, None, False, False, Priority.MEDIUM),
        (InteractionType.EMAIL, None, True, False, Priority.MEDIUM),
        (InteractionType.EMAIL, None, False, False, Priority.LOW),
    ])
    def test_priority_rules(self, interaction_type, opportunity_id, follow_up, overdue, expected):
        record = self._record(interaction_type, opportunity_id, follow_up)
        assert calculate_priority(record, overdue) == expected


class TestSearchFilter:
    def test_quote_escapes_backslash_and_quote(self):
        assert quote_filter_value('say "hi"') == '"say \\"hi\\""'
        assert quote_filter_value("C:\\temp") == '"C:\\\\temp"'

    def test_comma_stays_inside_one_condition(self, fake_client_factory):
        client = fake_client_factory()
        apply_filters(client.table(INTERACTIONS_TABLE), InteractionFilters(search="Smith, id.eq.1"))

        [(expression,)] = client.calls_named("or_")
        assert expression == (
            'subject.ilike."%Smith, id.eq.1%",notes.ilike."%Smith, id.eq.1%"'
        )

    def test_parentheses_are_quoted(self, fake_client_factory):
        client = fake_client_factory()
        apply_filters(client.table(INTERACTIONS_TABLE), InteractionFilters(search="Q3 (draft)"))

        [(expression,)] = client.calls_named("or_")
        assert expression == 'subject.ilike."%Q3 (draft)%",notes.ilike."%Q3 (draft)%"'


class TestRecordFetcher:
    @pytest.mark.asyncio
    async def test_fetch_normalises_rows(self, fake_client_factory, make_row, clock):
        client = fake_client_factory(rows=[make_row(), make_row(interaction_type="CALL")])
        result = await RecordFetcher(client=client, clock=clock).fetch()

        assert result.is_degraded is False
        assert [v.interaction_type for v in result.records] == [
            InteractionType.EMAIL, InteractionType.CALL,
        ]
        assert client.tables == [INTERACTIONS_TABLE]

    @pytest.mark.asyncio
    async def test_empty_result_is_not_degraded(self, fake_client_factory, clock):
        client = fake_client_factory(rows=[])
        result = await RecordFetcher(client=client, clock=clock).fetch()
        assert result.records == []
        assert result.is_degraded is False

    @pytest.mark.asyncio
    async def test_filters_are_applied(self, fake_client_factory, clock):
        client = fake_client_factory()
        filters = InteractionFilters(
            search=" pricing ",
            interaction_type=[InteractionType.CALL, InteractionType.DEMO],
            created_by="principal-1",
            date_from="2026-10-01",
            follow_up_needed=False,
        )
        await RecordFetcher(client=client, clock=clock).fetch(filters)

        assert client.calls_named("is_") == [("deleted_at", "null")]
        assert client.calls_named("or_") == [('subject.ilike."%pricing%",notes.ilike."%pricing%"',)]
        assert client.calls_named("in_") == [("interaction_type", ["CALL", "DEMO"])]
        assert ("created_by", "principal-1") in client.calls_named("eq")
        assert ("follow_up_needed", False) in client.calls_named("eq")
        assert client.calls_named("gte") == [("date", "2026-10-01")]
        assert client.calls_named("lte") == []
        assert client.calls[-1] == ("order", ("date",), {"desc": True})

    @pytest.mark.asyncio
    async def test_no_filters_only_excludes_deleted(self, fake_client_factory, clock):
        client = fake_client_factory()
        await RecordFetcher(client=client, clock=clock).fetch(InteractionFilters())

        names = [name for name, _, _ in client.calls]
        assert names == ["select", "is_", "order"]

    @pytest.mark.asyncio
    async def test_source_failure_falls_back_to_demo(self, fake_client_factory, clock):
        client = fake_client_factory(error=RuntimeError("connection refused"))
        result = await RecordFetcher(client=client, clock=clock).fetch()

        assert result.is_degraded is True
        assert "connection refused" in result.degraded_reason
        assert "DATA_FETCH_FAILED" in result.degraded_reason
        assert [v.id for v in result.records] == DEMO_IDS

    @pytest.mark.asyncio
    async def test_missing_credentials_fall_back_to_demo(self, clock):
        def factory():
            raise ConfigError("SUPABASE_URL is not set", config_key="SUPABASE_URL")

        result = await RecordFetcher(client_factory=factory, clock=clock).fetch()
        assert result.is_degraded is True
        assert "CONFIG_ERROR" in result.degraded_reason
        assert [v.id for v in result.records] == DEMO_IDS

    @pytest.mark.asyncio
    async def test_malformed_row_falls_back_to_demo(self, fake_client_factory, make_row, clock):
        client = fake_client_factory(rows=[make_row(), make_row(interaction_type=None)])
        result = await RecordFetcher(client=client, clock=clock).fetch()

        assert result.is_degraded is True
        assert "SCHEMA_INVALID" in result.degraded_reason
        assert [v.id for v in result.records] == DEMO_IDS

    @pytest.mark.asyncio
    async def test_non_list_payload_falls_back_to_demo(self, fake_client_factory, clock):
        client = fake_client_factory(rows={"unexpected": "shape"})
        result = await RecordFetcher(client=client, clock=clock).fetch()
        assert result.is_degraded is True
