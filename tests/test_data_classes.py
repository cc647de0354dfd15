"""Tests for the mapping data classes."""

import pytest

from mcs_atom_mapper.mappers.data_classes import (
    AtomMapping,
    IndexMapping,
    MappingAlgorithm,
    MappingResult,
    MappingScore,
)


class TestIndexMapping:
    def test_pairs_sorted_by_source(self):
        mapping = IndexMapping(((2, 0), (0, 5), (1, 3)))
        assert mapping.pairs == ((0, 5), (1, 3), (2, 0))
        assert mapping.size == len(mapping) == 3
        assert list(mapping) == [(0, 5), (1, 3), (2, 0)]

    def test_equality_ignores_input_order(self):
        assert IndexMapping(((1, 1), (0, 0))) == IndexMapping.from_dict({0: 0, 1: 1})
        assert hash(IndexMapping(((1, 1), (0, 0)))) == hash(IndexMapping(((0, 0), (1, 1))))

    @pytest.mark.parametrize(
        "pairs",
        [
            ((0, 1), (0, 2)),
            ((0, 1), (2, 1)),
        ],
    )
    def test_not_injective(self, pairs):
        with pytest.raises(ValueError):
            IndexMapping(pairs)

    def test_inverted(self):
        mapping = IndexMapping(((0, 2), (1, 0)))
        assert mapping.inverted().as_dict() == {2: 0, 0: 1}
        assert mapping.inverted().inverted() == mapping
        assert mapping.source_indices() == frozenset({0, 1})
        assert mapping.target_indices() == frozenset({0, 2})


class TestMappingScore:
    def test_total_score_default_weights(self):
        score = MappingScore(num_bond_changes=2, num_bonds_formed=1, similarity_score=1.0)
        assert score.total_score() == pytest.approx(10.0 * 2 + 5.0 - 50.0)

    def test_total_score_custom_weights(self):
        score = MappingScore(ring_changes=2)
        assert score.total_score({"ring_changes": 1.5}) == pytest.approx(3.0)

    def test_to_dict(self):
        data = MappingScore(num_mapped_atoms=4).to_dict()
        assert data["num_mapped_atoms"] == 4
        assert "total_score" in data


def test_mapping_dict():
    result = MappingResult(
        atom_mappings=frozenset([AtomMapping(0, 1, 1, 2)]),
        bond_changes=[],
        score=MappingScore(),
        algorithm_used=MappingAlgorithm.MIN,
    )
    assert result.get_mapping_dict() == {(0, 1): (1, 2)}
    assert result.aggregation.is_empty
    assert result.standardized
