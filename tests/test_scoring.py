"""Tests for bond change computation and mapping scores."""

import pytest
from rdkit import Chem

from mcs_atom_mapper.mappers.data_classes import AtomMapping, BondChangeType
from mcs_atom_mapper.scoring import MappingScorer


def identity_mapping(num_atoms, reactant_mol=0, product_mol=0):
    return frozenset(
        AtomMapping(reactant_mol, i, product_mol, i) for i in range(num_atoms)
    )


@pytest.fixture
def scorer():
    return MappingScorer()


class TestBondChanges:
    def test_order_change(self, scorer):
        reactants = [Chem.MolFromSmiles("CCO")]
        products = [Chem.MolFromSmiles("CC=O")]
        changes = scorer.compute_bond_changes(reactants, products, identity_mapping(3))
        assert len(changes) == 1
        change = changes[0]
        assert change.change_type is BondChangeType.ORDER_CHANGE
        assert (change.atom1_map, change.atom2_map) == (2, 3)
        assert change.old_order == pytest.approx(1.0)
        assert change.new_order == pytest.approx(2.0)

    def test_ring_opening(self, scorer):
        reactants = [Chem.MolFromSmiles("C1CCCCC1")]
        products = [Chem.MolFromSmiles("CCCCCC")]
        changes = scorer.compute_bond_changes(reactants, products, identity_mapping(6))
        assert len(changes) == 1
        assert changes[0].change_type is BondChangeType.BROKEN
        assert changes[0].in_ring
        assert (changes[0].atom1_map, changes[0].atom2_map) == (1, 6)

    def test_bond_formed_between_molecules(self, scorer):
        reactants = [Chem.MolFromSmiles("C"), Chem.MolFromSmiles("O")]
        products = [Chem.MolFromSmiles("CO")]
        mapping = frozenset([AtomMapping(0, 0, 0, 0), AtomMapping(1, 0, 0, 1)])
        changes = scorer.compute_bond_changes(reactants, products, mapping)
        assert [c.change_type for c in changes] == [BondChangeType.FORMED]
        assert not changes[0].in_ring

    def test_unmapped_atoms_ignored(self, scorer):
        reactants = [Chem.MolFromSmiles("CCO")]
        products = [Chem.MolFromSmiles("CC=O")]
        changes = scorer.compute_bond_changes(reactants, products, identity_mapping(2))
        assert changes == []


class TestScoreMapping:
    def test_identity_scores_zero_changes(self, scorer):
        mols = [Chem.MolFromSmiles("CCO")]
        score = scorer.score_mapping(mols, mols, identity_mapping(3))
        assert score.num_bond_changes == 0
        assert score.num_mapped_atoms == 3
        assert score.similarity_score == pytest.approx(1.0)

    def test_ring_changes_counted(self, scorer):
        reactants = [Chem.MolFromSmiles("C1CCCCC1")]
        products = [Chem.MolFromSmiles("CCCCCC")]
        score = scorer.score_mapping(reactants, products, identity_mapping(6))
        assert score.ring_changes == 1
        assert score.num_bonds_broken == 1
        assert score.num_bond_changes == 1

    def test_partial_coverage(self, scorer):
        reactants = [Chem.MolFromSmiles("CCO")]
        products = [Chem.MolFromSmiles("CC")]
        score = scorer.score_mapping(reactants, products, identity_mapping(2))
        assert score.similarity_score == pytest.approx((2 / 3 + 1.0) / 2)

    def test_weights_used_for_total(self):
        scorer = MappingScorer(bond_change_weight=1.0, similarity_weight=0.0)
        reactants = [Chem.MolFromSmiles("CCO")]
        products = [Chem.MolFromSmiles("CC=O")]
        score = scorer.score_mapping(reactants, products, identity_mapping(3))
        assert scorer.total_score(score) == pytest.approx(1.0)
