"""
Tests for Record Merger

Tests document merging, topology detection, attribute filtering and the
degrade-to-empty policy on store failures.
"""

import logging

import pytest
from unittest.mock import AsyncMock, Mock


FULL_ATTRIBUTES = {
    "branch": "main",
    "current_revision": "abc123",
    "deploy_user": "alice",
    "release_timestamp": "2024-01-01T00:00:00Z",
}


def make_store(documents=None, error=None):
    store = Mock()
    if error is not None:
        store.fetch = AsyncMock(side_effect=error)
    else:
        store.fetch = AsyncMock(return_value=documents or [])
    return store


class TestTopology:
    """Tests for topology detection"""

    def test_flat_fragments(self):
        from deploywatch.lookup.record_merger import detect_topology
        from deploywatch.common.schemas import Topology

        assert detect_topology({"deploy": {"branch": "main"}}) == Topology.FLAT

    def test_flat_attributes_directly(self):
        from deploywatch.lookup.record_merger import detect_topology
        from deploywatch.common.schemas import Topology

        assert detect_topology({"branch": "main"}) == Topology.FLAT

    def test_roles(self):
        from deploywatch.lookup.record_merger import detect_topology
        from deploywatch.common.schemas import Topology

        entry = {"worker": {"deploy": {"branch": "main"}}}
        assert detect_topology(entry) == Topology.ROLES

    def test_nested_value_inside_fragment_stays_flat(self):
        from deploywatch.lookup.record_merger import detect_topology
        from deploywatch.common.schemas import Topology

        entry = {
            "deploy": {"branch": "main", "meta": {"host": "web-1"}},
            "rev": {"current_revision": "abc123"},
        }
        assert detect_topology(entry) == Topology.FLAT

    def test_merge_keeps_fragment_keys_out_of_roles(self):
        from deploywatch.lookup.record_merger import RecordMerger
        from deploywatch.common.schemas import Topology

        document = {"web": {
            "deploy": {"branch": "main", "meta": {"host": "web-1"}},
            "rev": {"current_revision": "abc123"},
        }}

        record = RecordMerger(make_store()).merge("staging", [document])

        assert record["web"].topology == Topology.FLAT
        assert record["web"].roles == {}
        assert record["web"].attributes.branch == "main"
        assert record["web"].attributes.current_revision == "abc123"


class TestRecordMerger:
    """Tests for RecordMerger.merge"""

    @pytest.fixture
    def merger(self):
        from deploywatch.lookup.record_merger import RecordMerger
        return RecordMerger(make_store())

    def test_flat_fragments_are_unioned(self, merger):
        document = {
            "web": {
                "deploy": {"branch": "main", "deploy_user": "alice"},
                "revision": {"current_revision": "abc123"},
            }
        }

        record = merger.merge("staging", [document])

        attributes = record["web"].attributes
        assert attributes.branch == "main"
        assert attributes.deploy_user == "alice"
        assert attributes.current_revision == "abc123"

    def test_unrecognized_keys_are_dropped(self, merger):
        document = {"web": {"deploy": dict(FULL_ATTRIBUTES, previous_revision="zzz", host="web-1")}}

        record = merger.merge("staging", [document])

        assert record["web"].attributes.present() == FULL_ATTRIBUTES

    def test_unrecognized_keys_are_dropped_for_roles(self, merger):
        document = {"api": {"worker": {"deploy": dict(FULL_ATTRIBUTES, queue="default")}}}

        record = merger.merge("prod", [document])

        assert record["api"].roles["worker"].present() == FULL_ATTRIBUTES

    def test_later_document_wins(self, merger):
        first = {"web": {"deploy": dict(FULL_ATTRIBUTES)}}
        second = {"web": {"deploy": {"branch": "hotfix"}}}

        record = merger.merge("staging", [first, second])

        attributes = record["web"].attributes
        assert attributes.branch == "hotfix"
        assert attributes.current_revision == "abc123"
        assert attributes.deploy_user == "alice"
        assert attributes.release_timestamp == "2024-01-01T00:00:00Z"

    def test_merge_is_idempotent(self, merger):
        document = {
            "web": {"deploy": dict(FULL_ATTRIBUTES)},
            "api": {"worker": {"deploy": {"branch": "main"}}},
        }

        once = merger.merge("staging", [document])
        twice = merger.merge("staging", [document, document])

        assert once == twice

    def test_projects_from_all_documents(self, merger):
        first = {"web": {"deploy": {"branch": "main"}}}
        second = {"api": {"deploy": {"branch": "develop"}}}

        record = merger.merge("staging", [first, second])

        assert list(record.projects) == ["web", "api"]

    def test_roles_merge_per_role(self, merger):
        from deploywatch.common.schemas import Topology

        first = {"api": {"worker": {"deploy": {"branch": "main", "deploy_user": "bob"}}}}
        second = {"api": {
            "worker": {"deploy": {"branch": "feature"}},
            "web": {"deploy": {"branch": "main"}},
        }}

        record = merger.merge("prod", [first, second])

        project = record["api"]
        assert project.topology == Topology.ROLES
        assert list(project.roles) == ["worker", "web"]
        assert project.roles["worker"].branch == "feature"
        assert project.roles["worker"].deploy_user == "bob"
        assert project.roles["web"].branch == "main"

    def test_topology_fixed_by_first_document(self, merger, caplog):
        from deploywatch.common.schemas import Topology

        first = {"api": {"worker": {"deploy": {"branch": "main"}}}}
        second = {"api": {"deploy": {"branch": "other"}}}

        with caplog.at_level(logging.WARNING, logger="deploywatch.lookup.merger"):
            record = merger.merge("prod", [first, second])

        assert record["api"].topology == Topology.ROLES
        assert record["api"].roles["worker"].branch == "main"
        assert "api" in caplog.text

    def test_empty_project_is_dropped_and_logged(self, merger, caplog):
        documents = [
            {"web": {}, "api": {"deploy": {"branch": "main"}}},
            {"web": {}},
        ]

        with caplog.at_level(logging.ERROR, logger="deploywatch.lookup.merger"):
            record = merger.merge("staging", documents)

        assert "web" not in record
        assert "api" in record
        assert "no params for web" in caplog.text

    def test_project_with_only_unknown_keys_is_dropped(self, merger, caplog):
        document = {"web": {"deploy": {"host": "web-1"}}}

        with caplog.at_level(logging.ERROR, logger="deploywatch.lookup.merger"):
            record = merger.merge("staging", [document])

        assert record.is_empty
        assert "no params for web" in caplog.text

    def test_empty_role_is_dropped(self, merger):
        document = {"api": {
            "worker": {"deploy": {"branch": "main"}},
            "cron": {"deploy": {"host": "cron-1"}},
        }}

        record = merger.merge("prod", [document])

        assert list(record["api"].roles) == ["worker"]

    def test_values_are_strings(self, merger):
        document = {"web": {"deploy": {"branch": "main", "current_revision": 1234}}}

        record = merger.merge("staging", [document])

        assert record["web"].attributes.current_revision == "1234"


class TestCollect:
    """Tests for RecordMerger.collect"""

    @pytest.mark.asyncio
    async def test_collect_merges_fetched_documents(self):
        from deploywatch.lookup.record_merger import RecordMerger

        store = make_store([{"web": {"deploy": dict(FULL_ATTRIBUTES)}}])
        record = await RecordMerger(store).collect("staging")

        store.fetch.assert_awaited_once_with("staging")
        assert record.environment == "staging"
        assert record["web"].attributes.branch == "main"
        assert record.fetch_failed is False

    @pytest.mark.asyncio
    async def test_no_documents(self):
        from deploywatch.lookup.record_merger import RecordMerger

        record = await RecordMerger(make_store([])).collect("staging")

        assert record.is_empty
        assert record.fetch_failed is False

    @pytest.mark.asyncio
    async def test_store_failure_degrades_to_empty(self, caplog):
        from deploywatch.common.store_client import StoreError
        from deploywatch.lookup.record_merger import RecordMerger

        store = make_store(error=StoreError("connection refused"))

        with caplog.at_level(logging.ERROR, logger="deploywatch.lookup.merger"):
            record = await RecordMerger(store).collect("staging")

        assert record.is_empty
        assert record.fetch_failed is True
        assert "connection refused" in caplog.text

    @pytest.mark.asyncio
    async def test_fetch_result_distinguishes_failure(self):
        from deploywatch.common.store_client import StoreError
        from deploywatch.lookup.record_merger import RecordMerger

        failed = await RecordMerger(make_store(error=StoreError("timeout"))).fetch("prod")
        empty = await RecordMerger(make_store([])).fetch("prod")

        assert failed.failed is True
        assert failed.error == "timeout"
        assert empty.failed is False
        assert empty.documents == []
