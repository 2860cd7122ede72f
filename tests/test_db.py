"""Tests for the SQLite world state: keys, transactions, queries, MVCC."""

import json

import pytest

from db import WorldState, create_composite_key, split_composite_key
from errors import MVCCConflictError, StorageError


@pytest.fixture
def ws(tmp_path):
    return WorldState(str(tmp_path / "world_state.db"))


def _doc(doc_type, i):
    return json.dumps({"docType": doc_type, "n": i}).encode("utf-8")


# ── Composite Keys ────────────────────────────────────────────────────


class TestCompositeKeys:
    def test_layout(self):
        assert create_composite_key("doc~service", ["Service", "s1"]) == "\x00doc~service\x00Service\x00s1\x00"

    def test_split(self):
        key = create_composite_key("doc~evaluation", ["Evaluation", "e1"])
        assert split_composite_key(key) == ("doc~evaluation", ["Evaluation", "e1"])

    def test_reserved_character(self):
        with pytest.raises(StorageError):
            create_composite_key("idx", ["bad\x00part"])

    def test_split_plain_key(self):
        with pytest.raises(StorageError):
            split_composite_key("s1")


# ── Transactions ──────────────────────────────────────────────────────


class TestTransactions:
    def test_commit_and_versions(self, ws):
        with ws.transaction("tx-1") as ctx:
            ctx.put_state("k", b"v1")
        assert ws.get_version("k") == 1
        with ws.transaction("tx-2") as ctx:
            assert ctx.get_state("k") == b"v1"
            ctx.put_state("k", b"v2")
        assert ws.get_version("k") == 2

    def test_reads_own_writes(self, ws):
        with ws.transaction() as ctx:
            ctx.put_state("k", b"pending")
            assert ctx.get_state("k") == b"pending"
            ctx.del_state("k")
            assert ctx.get_state("k") is None

    def test_exception_discards_writes(self, ws):
        with pytest.raises(RuntimeError):
            with ws.transaction() as ctx:
                ctx.put_state("k", b"v")
                raise RuntimeError("abort")
        assert ws.get_version("k") is None

    def test_delete(self, ws):
        with ws.transaction() as ctx:
            ctx.put_state("k", b"v")
        with ws.transaction() as ctx:
            ctx.del_state("k")
        with ws.transaction() as ctx:
            assert ctx.get_state("k") is None

    def test_empty_value_rejected(self, ws):
        with ws.transaction() as ctx:
            with pytest.raises(StorageError):
                ctx.put_state("k", b"")

    def test_tx_id_stamped(self, ws):
        with ws.transaction() as ctx:
            assert ctx.tx_id


class TestMVCC:
    def test_stale_read_rejected(self, ws):
        with ws.transaction() as ctx:
            ctx.put_state("counter", b"1")

        with pytest.raises(MVCCConflictError):
            with ws.transaction("slow") as slow:
                assert slow.get_state("counter") == b"1"
                with ws.transaction("fast") as fast:
                    fast.get_state("counter")
                    fast.put_state("counter", b"2")
                slow.put_state("counter", b"3")

        with ws.transaction() as ctx:
            assert ctx.get_state("counter") == b"2"

    def test_phantom_create_rejected(self, ws):
        with pytest.raises(MVCCConflictError):
            with ws.transaction("slow") as slow:
                assert slow.get_state("svc") is None
                with ws.transaction("fast") as fast:
                    fast.put_state("svc", b"created")
                slow.put_state("svc", b"also created")

    def test_mvcc_conflict_is_storage_error(self):
        assert issubclass(MVCCConflictError, StorageError)

    def test_read_only_transaction_never_conflicts(self, ws):
        with ws.transaction() as ctx:
            ctx.put_state("k", b"1")
        with ws.transaction() as reader:
            reader.get_state("k")
            with ws.transaction() as writer:
                writer.put_state("k", b"2")


# ── Queries ───────────────────────────────────────────────────────────


class TestRangeQuery:
    def test_partial_composite_key(self, ws):
        with ws.transaction() as ctx:
            for sid in ("s2", "s1"):
                ctx.put_state(create_composite_key("doc~service", ["Service", sid]), b"\x00")
            ctx.put_state(create_composite_key("doc~evaluation", ["Evaluation", "e1"]), b"\x00")
        with ws.transaction() as ctx:
            keys = [k for k, _ in ctx.get_state_by_partial_composite_key("doc~service", ["Service"])]
        assert [split_composite_key(k)[1][1] for k in keys] == ["s1", "s2"]

    def test_pending_writes_not_visible(self, ws):
        with ws.transaction() as ctx:
            ctx.put_state(create_composite_key("doc~service", ["Service", "s1"]), b"\x00")
            assert list(ctx.get_state_by_partial_composite_key("doc~service", ["Service"])) == []


class TestPagedQuery:
    SELECTOR = json.dumps({"selector": {"docType": "Evaluation"}})

    def _seed(self, ws):
        with ws.transaction() as ctx:
            for i in range(5):
                ctx.put_state(f"e{i}", _doc("Evaluation", i))
                ctx.put_state(create_composite_key("doc~evaluation", ["Evaluation", f"e{i}"]), b"\x00")
            ctx.put_state("svc", _doc("Service", 0))
            ctx.put_state("blob", b"\x01\x02")

    def test_pages(self, ws):
        self._seed(ws)
        with ws.transaction() as ctx:
            first, meta = ctx.get_query_result_with_pagination(self.SELECTOR, 2)
            assert meta.fetched_records_count == 2
            assert [k for k, _ in first] == ["e0", "e1"]
            second, meta2 = ctx.get_query_result_with_pagination(self.SELECTOR, 2, meta.bookmark)
            assert [k for k, _ in second] == ["e2", "e3"]
            everything, meta3 = ctx.get_query_result_with_pagination(self.SELECTOR, 100)
            assert meta3.fetched_records_count == 5
            assert all(doc["docType"] == "Evaluation" for _, doc in everything)

    def test_bad_query(self, ws):
        with ws.transaction() as ctx:
            with pytest.raises(StorageError):
                ctx.get_query_result_with_pagination("not json", 10)
            with pytest.raises(StorageError):
                ctx.get_query_result_with_pagination(json.dumps({"fields": []}), 10)

    def test_bad_page_size(self, ws):
        with ws.transaction() as ctx:
            with pytest.raises(StorageError):
                ctx.get_query_result_with_pagination(self.SELECTOR, 0)
