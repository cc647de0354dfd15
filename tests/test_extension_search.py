"""Tests for the McGregor-style extension search."""

import pytest

from conftest import assert_mapping_valid, graph_from_smiles
from mcs_atom_mapper.exceptions import SearchCancelled
from mcs_atom_mapper.mappers.data_classes import IndexMapping
from mcs_atom_mapper.mappers.mcs.extension_search import ExtensionSearch, extend_mappings
from mcs_atom_mapper.mappers.mcs.matching import MAX_POLICY, MIN_POLICY
from mcs_atom_mapper.utils.cancellation import CancellationToken

SEED = IndexMapping(((0, 0), (1, 1)))


def test_adds_disconnected_fragment():
    source = graph_from_smiles("CC", "O")
    target = graph_from_smiles("CC", "O", "N")
    results = extend_mappings([SEED], source, target, MAX_POLICY)
    assert [m.as_dict() for m in results] == [{0: 0, 1: 1, 2: 2}]


def test_larger_source_is_searched_from_target():
    source = graph_from_smiles("CC", "O", "N")
    target = graph_from_smiles("CC", "O")
    results = extend_mappings([SEED], source, target, MAX_POLICY)
    assert [m.as_dict() for m in results] == [{0: 0, 1: 1, 2: 2}]
    for mapping in results:
        assert_mapping_valid(mapping, source, target, MAX_POLICY)


def test_induced_rule_blocks_extension():
    source = graph_from_smiles("CCO")
    target = graph_from_smiles("CC", "O")
    results = extend_mappings([SEED], source, target, MAX_POLICY)
    assert [m.as_dict() for m in results] == [{0: 0, 1: 1}]


def test_incompatible_bond_blocks_extension(ethanol, acetaldehyde):
    results = extend_mappings([SEED], ethanol, acetaldehyde, MIN_POLICY)
    assert [m.as_dict() for m in results] == [{0: 0, 1: 1}]
    results = extend_mappings([SEED], ethanol, acetaldehyde, MAX_POLICY)
    assert [m.as_dict() for m in results] == [{0: 0, 1: 1, 2: 2}]


def test_ties_kept_and_duplicates_dropped():
    source = graph_from_smiles("CC", "O")
    target = graph_from_smiles("CC", "O", "N")
    swapped = IndexMapping(((0, 1), (1, 0)))
    results = extend_mappings([SEED, swapped, SEED], source, target, MAX_POLICY)
    assert {m.pairs for m in results} == {
        ((0, 0), (1, 1), (2, 2)),
        ((0, 1), (1, 0), (2, 2)),
    }


def test_best_size_shared_across_seeds():
    source = graph_from_smiles("CC", "O")
    target = graph_from_smiles("CC", "O", "N")
    small = IndexMapping(((2, 2),))
    results = extend_mappings([small, SEED], source, target, MAX_POLICY)
    assert all(m.size == 3 for m in results)


def test_unresolvable_seed_gives_empty_contribution(ethanol):
    bad_seed = IndexMapping(((0, 10),))
    assert extend_mappings([bad_seed], ethanol, ethanol, MAX_POLICY) == []


def test_cancelled_token():
    token = CancellationToken()
    token.cancel()
    source = graph_from_smiles("CC", "O")
    with pytest.raises(SearchCancelled):
        ExtensionSearch(source, source, MAX_POLICY, token=token).extend([SEED])


def test_invalid_max_mappings(ethanol):
    with pytest.raises(ValueError):
        ExtensionSearch(ethanol, ethanol, MAX_POLICY, max_mappings=0)
