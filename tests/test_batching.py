"""Tests for the batch cursor used by set-valued store lookups."""

import pytest

from app.utils.batching import DEFAULT_BATCH_SIZE, batched_lookup, chunked


class TestChunked:
    def test_splits_in_order(self):
        assert list(chunked([1, 2, 3, 4, 5], 2)) == [[1, 2], [3, 4], [5]]

    def test_exact_multiple(self):
        assert list(chunked(range(4), 2)) == [[0, 1], [2, 3]]

    def test_empty_input(self):
        assert list(chunked([], 3)) == []

    def test_invalid_size(self):
        with pytest.raises(ValueError, match="at least 1"):
            list(chunked([1], 0))


class TestBatchedLookup:
    def test_no_call_exceeds_batch_size(self):
        calls = []

        def lookup(batch):
            calls.append(list(batch))
            return [f"row-{item}" for item in batch]

        ids = [f"user-{i:04d}" for i in range(1201)]
        rows = batched_lookup(ids, lookup, DEFAULT_BATCH_SIZE)

        assert [len(call) for call in calls] == [500, 500, 201]
        assert len(rows) == 1201

    def test_duplicates_looked_up_once(self):
        calls = []
        batched_lookup(["b", "a", "b", "a"], lambda batch: calls.append(list(batch)) or [], 10)
        assert calls == [["a", "b"]]

    def test_result_set_independent_of_batch_size(self):
        ids = {f"user-{i}" for i in range(37)}

        def lookup(batch):
            return [item for item in batch if item.endswith("3")]

        small = batched_lookup(ids, lookup, 4)
        large = batched_lookup(ids, lookup, 500)

        assert set(small) == set(large)

    def test_empty_ids_skip_lookup(self):
        def lookup(batch):
            raise AssertionError("lookup should not be called")

        assert batched_lookup([], lookup) == []
