"""Tests for best-size mapping aggregation."""

import pytest

from mcs_atom_mapper.mappers.data_classes import AggregationResult, IndexMapping
from mcs_atom_mapper.mappers.mcs.aggregator import MappingAggregator


def mapping(*pairs):
    return IndexMapping(tuple(pairs))


class TestMappingAggregator:
    def test_larger_mapping_resets(self):
        aggregator = MappingAggregator()
        assert aggregator.add(mapping((0, 0)))
        assert aggregator.add(mapping((0, 1)))
        assert aggregator.add(mapping((0, 0), (1, 1)))
        result = aggregator.result()
        assert result.best_size == 2
        assert result.mappings == (mapping((0, 0), (1, 1)),)

    def test_equal_size_appends(self):
        aggregator = MappingAggregator()
        aggregator.add(mapping((0, 0), (1, 1)))
        assert aggregator.add(mapping((0, 1), (1, 0)))
        assert len(aggregator) == 2

    def test_duplicate_ignored(self):
        aggregator = MappingAggregator()
        aggregator.add(mapping((1, 1), (0, 0)))
        assert not aggregator.add(mapping((0, 0), (1, 1)))
        assert len(aggregator) == 1

    def test_smaller_and_empty_ignored(self):
        aggregator = MappingAggregator()
        aggregator.add(mapping((0, 0), (1, 1)))
        assert not aggregator.add(mapping((2, 2)))
        assert not aggregator.add(mapping())
        assert aggregator.best_size == 2

    def test_empty_aggregator(self):
        result = MappingAggregator().result()
        assert result == AggregationResult()
        assert result.is_empty

    def test_add_all(self):
        aggregator = MappingAggregator()
        kept = aggregator.add_all(
            [mapping((0, 0)), mapping((0, 0)), mapping((0, 1)), mapping((0, 0), (1, 1))]
        )
        assert kept == 3
        assert aggregator.result().best_size == 2

    @pytest.mark.parametrize(
        "sizes",
        [
            [1, 2, 3, 2, 1],
            [3, 1, 3, 2, 4],
            [2, 2, 2],
        ],
    )
    def test_best_size_never_decreases(self, sizes):
        aggregator = MappingAggregator()
        seen = []
        for offset, size in enumerate(sizes):
            candidate = IndexMapping(tuple((i, i + offset) for i in range(size)))
            aggregator.add(candidate)
            seen.append(aggregator.best_size)
        assert seen == sorted(seen)
        assert aggregator.size_history == sorted(set(aggregator.size_history))
        assert all(m.size == aggregator.best_size for m in aggregator.result().mappings)
