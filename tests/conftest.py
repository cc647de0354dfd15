"""Shared fixtures and graph builders for the test suite."""

from typing import Sequence, Tuple

import pytest
from rdkit import Chem

from mcs_atom_mapper.mappers.data_classes import ReactionComponents
from mcs_atom_mapper.utils.chem_utils import parse_reaction_smiles
from mcs_atom_mapper.utils.graph_utils import AtomNode, BondEdge, MolecularGraph


def graph_from_smiles(*smiles: str, name: str = "") -> MolecularGraph:
    """One concrete graph holding every SMILES as a separate component."""
    return MolecularGraph.from_mols([Chem.MolFromSmiles(s) for s in smiles], name=name)


def graph_by_hand(
    elements: Sequence[str], bonds: Sequence[Tuple[int, int, float]] = ()
) -> MolecularGraph:
    atoms = [AtomNode(idx=i, element=e) for i, e in enumerate(elements)]
    edges = [BondEdge(begin=b, end=e, order=o) for b, e, o in bonds]
    return MolecularGraph(atoms, edges)


def reaction_from_smiles(reaction_smiles: str) -> ReactionComponents:
    reactants, products = parse_reaction_smiles(reaction_smiles)
    return ReactionComponents(reactants, products, original_smiles=reaction_smiles)


def assert_mapping_valid(mapping, source, target, policy):
    """Every pair is atom-compatible and every mapped source bond has a compatible image."""
    pairs = mapping.as_dict()
    assert len(set(pairs.values())) == len(pairs)
    for s, t in pairs.items():
        assert policy.atoms_match(source.get_atom(s), target.get_atom(t))
    for bond in source.bonds:
        if bond.begin in pairs and bond.end in pairs:
            image = target.get_bond(pairs[bond.begin], pairs[bond.end])
            assert image is not None
            assert policy.bonds_match(bond, image, query=source.is_query)


@pytest.fixture
def ethanol():
    return graph_from_smiles("CCO", name="ethanol")


@pytest.fixture
def acetaldehyde():
    return graph_from_smiles("CC=O", name="acetaldehyde")


@pytest.fixture
def oxidation():
    return reaction_from_smiles("CCO>>CC=O")


@pytest.fixture
def identity_reaction():
    return reaction_from_smiles("CCO>>CCO")


@pytest.fixture
def disjoint_reaction():
    return reaction_from_smiles("CC>>O")
