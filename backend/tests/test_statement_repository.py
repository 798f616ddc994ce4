"""
Tests for StatementRepository.

These tests verify:
- Identifier MERGE never duplicates a value
- Statement ids are unique, duplicate triples are allowed
- create echoes the caller's object_value, the graph stores JSON text
- Count + page pagination partitions a static result set
- Containment search, delete semantics, ingest parsing and non-atomicity
"""
from datetime import datetime, timezone

import pytest

from models.statement import StatementInput
from repositories.statement_repository import (
    COUNT_ALL,
    SEARCH_LIMIT,
    InvalidArgumentError,
)
from services.query_executor import QueryError


async def _create(repository, subject, predicate, obj, **kwargs):
    return await repository.create_statement(
        StatementInput(subject_identifier=subject, predicate=predicate, object_value=obj, **kwargs)
    )


class TestCreateStatement:
    """Tests for create_statement."""

    @pytest.mark.asyncio
    async def test_round_trip(self, repository):
        """create then get returns the same subject, predicate and object."""
        created = await _create(repository, "alice", "knows", "bob")

        fetched = await repository.get_statement(created.id)

        assert fetched is not None
        assert fetched.id == created.id
        assert fetched.subject_identifier == "alice"
        assert fetched.predicate == "knows"
        assert fetched.object_value == '"bob"'

    @pytest.mark.asyncio
    async def test_stores_json_but_echoes_original(self, repository, graph):
        """Structured objects are stored serialized and returned as sent."""
        value = {"name": "Bob", "age": 42}
        created = await _create(repository, "alice", "describes", value)

        assert created.object_value == value
        stored = graph.edges[created.id]
        assert stored['object_value'] == '{"name":"Bob","age":42}'
        assert '{"name":"Bob","age":42}' in graph.identifiers

    @pytest.mark.asyncio
    async def test_scalar_objects_serialize(self, repository, graph):
        created = await _create(repository, "x", "count", 7)
        assert graph.edges[created.id]['object_value'] == '7'
        assert created.object_value == 7

    @pytest.mark.asyncio
    async def test_timestamp_defaults_to_creation_time(self, repository):
        created = await _create(repository, "alice", "knows", "bob")
        assert created.statement_timestamp == created.created_at
        assert created.created_at.endswith("Z")

    @pytest.mark.asyncio
    async def test_explicit_timestamp_is_kept(self, repository, graph):
        created = await _create(
            repository, "alice", "born", "1990",
            statement_timestamp="1990-05-01T00:00:00.000Z",
        )
        assert created.statement_timestamp == "1990-05-01T00:00:00.000Z"
        assert created.created_at != created.statement_timestamp
        assert graph.edges[created.id]['timestamp'] == "1990-05-01T00:00:00.000Z"

    @pytest.mark.asyncio
    async def test_datetime_timestamp_is_formatted(self, repository):
        when = datetime(2024, 2, 29, 12, 30, 15, 250000, tzinfo=timezone.utc)
        created = await _create(repository, "a", "p", "o", statement_timestamp=when)
        assert created.statement_timestamp == "2024-02-29T12:30:15.250Z"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("stamp", ["2024-06-01T10:00:00.12Z", "20240601T100000Z"])
    async def test_short_fraction_and_basic_format_timestamps_accepted(self, repository, graph, stamp):
        created = await _create(repository, "a", "p", "o", statement_timestamp=stamp)
        assert created.statement_timestamp == stamp
        assert graph.edges[created.id]['timestamp'] == stamp

    @pytest.mark.asyncio
    async def test_source_id_is_optional(self, repository):
        without = await _create(repository, "a", "p", "o")
        empty = await _create(repository, "a", "p", "o", source_id="")
        with_source = await _create(repository, "a", "p", "o", source_id="wiki")

        assert without.source_id is None
        assert empty.source_id is None
        assert (await repository.get_statement(with_source.id)).source_id == "wiki"

    @pytest.mark.asyncio
    async def test_identifier_merge_is_idempotent(self, repository, graph):
        """N statements about the same subject leave exactly one Identifier."""
        for i in range(5):
            await _create(repository, "alice", "likes", f"thing-{i}")

        assert list(graph.identifiers).count("alice") == 1
        assert graph.identifiers["alice"] == 5
        assert sum(1 for e in graph.edges.values() if e['subject'] == "alice") == 5

    @pytest.mark.asyncio
    async def test_duplicate_triples_get_distinct_ids(self, repository):
        first = await _create(repository, "alice", "knows", "bob", source_id="a")
        second = await _create(repository, "alice", "knows", "bob", source_id="b")

        assert first.id != second.id
        page = await repository.statements_by_subject("alice", 10, 0)
        assert page.total_count == 2

    @pytest.mark.asyncio
    async def test_ids_are_unique(self, repository):
        created = [await _create(repository, "s", "p", i) for i in range(50)]
        assert len({s.id for s in created}) == 50

    @pytest.mark.asyncio
    @pytest.mark.parametrize("subject,predicate", [("", "knows"), ("alice", ""), (None, "knows")])
    async def test_rejects_empty_subject_or_predicate(self, repository, graph, subject, predicate):
        with pytest.raises(InvalidArgumentError):
            await _create(repository, subject, predicate, "bob")
        assert graph.calls == []

    @pytest.mark.asyncio
    async def test_rejects_unserializable_object(self, repository, graph):
        with pytest.raises(InvalidArgumentError):
            await _create(repository, "alice", "has", {1, 2, 3})
        assert graph.calls == []

    @pytest.mark.asyncio
    async def test_rejects_non_iso_timestamp(self, repository, graph):
        with pytest.raises(InvalidArgumentError):
            await _create(repository, "alice", "knows", "bob", statement_timestamp="yesterday")
        assert graph.calls == []


class TestReads:
    """Tests for subject listing, lookups and pagination."""

    @pytest.mark.asyncio
    async def test_list_subjects_sorted_distinct(self, repository):
        for subject in ["carol", "alice", "bob", "alice"]:
            await _create(repository, subject, "p", "o")

        assert await repository.list_subjects() == ["alice", "bob", "carol"]

    @pytest.mark.asyncio
    async def test_object_only_identifiers_are_not_subjects(self, repository, graph):
        await _create(repository, "alice", "knows", "bob")
        assert '"bob"' in graph.identifiers
        assert await repository.list_subjects() == ["alice"]

    @pytest.mark.asyncio
    async def test_get_missing_statement_is_none(self, repository):
        assert await repository.get_statement("no-such-id") is None

    @pytest.mark.asyncio
    async def test_by_subject_newest_first(self, repository, clock):
        first = await _create(repository, "alice", "p", "1")
        second = await _create(repository, "alice", "p", "2")
        await _create(repository, "bob", "p", "3")

        page = await repository.statements_by_subject("alice", 10, 0)

        assert [s.id for s in page.statements] == [second.id, first.id]
        assert page.total_count == 2
        assert page.has_more is False

    @pytest.mark.asyncio
    async def test_by_subject_is_case_sensitive(self, repository):
        await _create(repository, "Alice", "p", "o")
        page = await repository.statements_by_subject("alice", 10, 0)
        assert page.statements == []
        assert page.total_count == 0

    @pytest.mark.asyncio
    async def test_unknown_subject_gives_empty_page(self, repository):
        page = await repository.statements_by_subject("nobody", 10, 0)
        assert page.statements == []
        assert page.total_count == 0
        assert page.has_more is False

    @pytest.mark.asyncio
    async def test_pagination_partitions_static_set(self, repository, clock):
        for i in range(23):
            await _create(repository, "alice", "p", i)
        full = await repository.statements_by_subject("alice", 100, 0)

        collected, flags = [], []
        offset, limit = 0, 5
        while True:
            page = await repository.statements_by_subject("alice", limit, offset)
            collected.extend(s.id for s in page.statements)
            flags.append(page.has_more)
            if not page.has_more:
                break
            offset += limit

        assert collected == [s.id for s in full.statements]
        assert len(set(collected)) == 23
        assert flags == [True, True, True, True, False]

    @pytest.mark.asyncio
    async def test_pagination_stable_when_created_at_ties(self, repository):
        """A whole ingest batch shares created_at; pages still partition it."""
        data = "\n".join(f"s,p,o{i}" for i in range(12))
        await repository.ingest(data, "batch")

        ids = []
        for offset in range(0, 12, 4):
            page = await repository.paginated_statements(4, offset)
            ids.extend(s.id for s in page.statements)

        assert len(ids) == 12
        assert len(set(ids)) == 12

    @pytest.mark.asyncio
    async def test_offset_past_end(self, repository):
        await _create(repository, "alice", "p", "o")
        page = await repository.statements_by_subject("alice", 10, 5)
        assert page.statements == []
        assert page.total_count == 1
        assert page.has_more is False

    @pytest.mark.asyncio
    async def test_by_predicate_exact_match(self, repository, clock):
        knows = await _create(repository, "alice", "knows", "bob")
        await _create(repository, "alice", "knows_of", "carol")
        await _create(repository, "bob", "Knows", "dave")

        page = await repository.statements_by_predicate("knows", 10, 0)

        assert [s.id for s in page.statements] == [knows.id]
        assert page.total_count == 1

    @pytest.mark.asyncio
    async def test_paginated_statements_all(self, repository, clock):
        created = [await _create(repository, f"s{i}", "p", "o") for i in range(3)]

        page = await repository.paginated_statements(2, 0)

        assert [s.id for s in page.statements] == [created[2].id, created[1].id]
        assert page.total_count == 3
        assert page.has_more is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize("limit,offset", [(-1, 0), (10, -1), ("10", 0), (10, 1.5), (True, 0)])
    async def test_bad_page_bounds_rejected_before_backend(self, repository, graph, limit, offset):
        with pytest.raises(InvalidArgumentError):
            await repository.statements_by_subject("alice", limit, offset)
        with pytest.raises(InvalidArgumentError):
            await repository.statements_by_predicate("p", limit, offset)
        with pytest.raises(InvalidArgumentError):
            await repository.paginated_statements(limit, offset)
        assert graph.calls == []

    @pytest.mark.asyncio
    async def test_count_and_page_are_separate_reads(self, repository, graph):
        """
        A write landing between the count and the page is visible in the page
        but not in total_count; has_more is computed from the stale count.
        """
        await _create(repository, "alice", "p", "first")

        graph.after_query[COUNT_ALL] = lambda: graph.insert_edge(
            id="late", subject="bob", predicate="p", object_value="late",
            source_id=None, timestamp="2099-01-01T00:00:00.000Z",
            created_at="2099-01-01T00:00:00.000Z",
        )

        page = await repository.paginated_statements(10, 0)

        assert page.total_count == 1
        assert len(page.statements) == 2
        assert page.has_more is False

    @pytest.mark.asyncio
    async def test_records_are_reshaped(self, repository, graph):
        graph.insert_edge(
            id="e1", subject="alice", predicate="knows", object_value="bob",
            source_id="", timestamp="2020-01-01T00:00:00.000Z",
            created_at="2021-01-01T00:00:00.000Z",
        )

        statement = await repository.get_statement("e1")

        assert statement.to_dict() == {
            'id': "e1",
            'subject_identifier': "alice",
            'predicate': "knows",
            'object_value': "bob",
            'source_id': None,
            'statement_timestamp': "2020-01-01T00:00:00.000Z",
            'created_at': "2021-01-01T00:00:00.000Z",
        }

    @pytest.mark.asyncio
    async def test_graph_snapshot(self, repository):
        await repository.ingest("a,likes,b\nc,likes,d\na,knows,c", "viz")

        snapshot = await repository.graph_snapshot()

        assert len(snapshot.statements) == 3
        assert sorted(snapshot.subjects) == ["a", "c"]


class TestSearch:
    """Tests for search_statements."""

    @pytest.mark.asyncio
    async def test_matches_object_or_subject_case_insensitive(self, repository):
        await repository.ingest(
            "Alice,knows,Bob\ncarol,likes,ALICE cooper\ndave,owns,boat", "s"
        )

        results = await repository.search_statements("alice")

        assert sorted(s.subject_identifier for s in results) == ["Alice", "carol"]

    @pytest.mark.asyncio
    async def test_matches_serialized_object_text(self, repository):
        await _create(repository, "x", "has", {"color": "Red"})
        results = await repository.search_statements("red")
        assert len(results) == 1

    @pytest.mark.asyncio
    async def test_no_match(self, repository):
        await _create(repository, "alice", "knows", "bob")
        assert await repository.search_statements("zebra") == []

    @pytest.mark.asyncio
    async def test_empty_query_matches_everything_up_to_cap(self, repository):
        data = "\n".join(f"s{i},p,o{i}" for i in range(SEARCH_LIMIT + 5))
        await repository.ingest(data, "bulk")

        assert len(await repository.search_statements("")) == SEARCH_LIMIT
        assert len(await repository.search_statements("o1")) == 16  # o1, o10-o19, o100-o104

    @pytest.mark.asyncio
    async def test_whitespace_query_is_allowed(self, repository):
        await _create(repository, "new york", "is", "city")
        results = await repository.search_statements(" ")
        assert [s.subject_identifier for s in results] == ["new york"]

    @pytest.mark.asyncio
    async def test_missing_query_rejected(self, repository, graph):
        with pytest.raises(InvalidArgumentError):
            await repository.search_statements(None)
        assert graph.calls == []


class TestDeleteStatement:
    """Tests for delete_statement."""

    @pytest.mark.asyncio
    async def test_delete_then_lookup(self, repository):
        created = await _create(repository, "alice", "knows", "bob")

        result = await repository.delete_statement(created.id)

        assert result.success is True
        assert result.message == "Statement deleted"
        assert result.id == created.id
        assert await repository.get_statement(created.id) is None

    @pytest.mark.asyncio
    async def test_delete_twice_is_soft_failure(self, repository):
        created = await _create(repository, "alice", "knows", "bob")
        await repository.delete_statement(created.id)

        again = await repository.delete_statement(created.id)

        assert again.success is False
        assert again.message == "Statement not found"
        assert again.id == created.id

    @pytest.mark.asyncio
    async def test_delete_keeps_identifiers(self, repository, graph):
        created = await _create(repository, "alice", "knows", "bob")
        await repository.delete_statement(created.id)

        assert "alice" in graph.identifiers
        assert await repository.list_subjects() == []


class TestIngest:
    """Tests for ingest."""

    @pytest.mark.asyncio
    async def test_parses_lines_and_skips_malformed(self, repository, graph):
        result = await repository.ingest("a,likes,b\nbadline\nc, knows , d", "test")

        assert result.success is True
        assert result.message == "Ingested 2 statements"
        assert result.entities_created == 2
        assert result.statements_created == 2

        triples = sorted(
            (e['subject'], e['predicate'], e['object_value']) for e in graph.edges.values()
        )
        assert triples == [("a", "likes", "b"), ("c", "knows", "d")]

    @pytest.mark.asyncio
    async def test_objects_stored_raw(self, repository, graph):
        await repository.ingest("alice,knows,bob", "test")
        edge = next(iter(graph.edges.values()))
        assert edge['object_value'] == "bob"
        assert "bob" in graph.identifiers

    @pytest.mark.asyncio
    async def test_batch_shares_one_timestamp_and_source(self, repository, graph, clock):
        await repository.ingest("a,p,1\nb,p,2\nc,p,3", "feed.csv")

        edges = list(graph.edges.values())
        assert {e['created_at'] for e in edges} == {"2025-01-01T00:00:00.000Z"}
        assert all(e['timestamp'] == e['created_at'] for e in edges)
        assert {e['source_id'] for e in edges} == {"feed.csv"}

    @pytest.mark.asyncio
    async def test_no_dedup_within_batch(self, repository, graph):
        result = await repository.ingest("a,p,b\na,p,b", "dup")

        assert result.statements_created == 2
        assert result.entities_created == 1
        assert len(graph.edges) == 2

    @pytest.mark.asyncio
    async def test_only_subjects_count_as_entities(self, repository):
        result = await repository.ingest("a,p,x\na,q,y\nb,p,x", "s")
        assert result.entities_created == 2
        assert result.statements_created == 3

    @pytest.mark.asyncio
    async def test_empty_input(self, repository, graph):
        result = await repository.ingest("\n  \n", "empty")

        assert result.statements_created == 0
        assert result.entities_created == 0
        assert result.message == "Ingested 0 statements"
        assert graph.calls == []

    @pytest.mark.asyncio
    async def test_failure_keeps_earlier_lines(self, repository, graph):
        """A backend error on line 3 propagates; lines 1-2 stay committed."""
        graph.fail_on_create = 3

        with pytest.raises(QueryError):
            await repository.ingest("a,p,1\nb,p,2\nc,p,3\nd,p,4", "partial")

        assert sorted(e['subject'] for e in graph.edges.values()) == ["a", "b"]

    @pytest.mark.asyncio
    async def test_unsupported_format(self, repository, graph):
        with pytest.raises(InvalidArgumentError):
            await repository.ingest("a,p,b", "s", format="turtle")
        assert graph.calls == []


class TestBackendErrors:
    """Backend failures surface unchanged."""

    @pytest.mark.asyncio
    async def test_read_error_propagates(self, repository, graph):
        graph.fail_all = QueryError("Neo4j query failed: 503 - unavailable")

        with pytest.raises(QueryError) as exc_info:
            await repository.list_subjects()

        assert exc_info.value.message == "Neo4j query failed: 503 - unavailable"

    @pytest.mark.asyncio
    async def test_delete_error_is_not_a_soft_failure(self, repository, graph):
        graph.fail_all = QueryError("boom")
        with pytest.raises(QueryError):
            await repository.delete_statement("x")
