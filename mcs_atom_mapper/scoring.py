"""
Scoring functions for evaluating atom mappings.

This module computes the bond changes implied by an atom-to-atom mapping and
the metrics the mapping policies use to choose between equally large MCS
mappings.
"""

from typing import Dict, FrozenSet, List, Optional, Tuple

from rdkit import Chem

from mcs_atom_mapper.mappers.data_classes import (
    AtomMapping,
    BondChange,
    BondChangeType,
    MappingScore,
)
from mcs_atom_mapper.utils.chem_utils import atom_map_numbers

BondTable = Dict[FrozenSet[int], Tuple[float, bool]]


class MappingScorer:
    """
    Scorer for atom-to-atom mappings.

    Metrics include:
    - Number of bonds formed, broken and changed in order
    - Ring opening/closing events
    - Fraction of atoms covered by the mapping
    """

    def __init__(
        self,
        bond_change_weight: float = 10.0,
        bond_formed_weight: float = 5.0,
        bond_broken_weight: float = 5.0,
        ring_weight: float = 25.0,
        similarity_weight: float = -50.0,
    ):
        """
        Initialize the scorer with custom weights.

        Args:
            bond_change_weight: Weight for number of bond changes
            bond_formed_weight: Weight for number of bonds formed
            bond_broken_weight: Weight for number of bonds broken
            ring_weight: Weight for ring changes
            similarity_weight: Weight for similarity, negative since higher is better
        """
        self.weights = {
            "num_bond_changes": bond_change_weight,
            "num_bonds_formed": bond_formed_weight,
            "num_bonds_broken": bond_broken_weight,
            "ring_changes": ring_weight,
            "similarity_score": similarity_weight,
        }

    def total_score(self, score: MappingScore) -> float:
        """Weighted total of a score with this scorer's weights (lower is better)."""
        return score.total_score(self.weights)

    def score_mapping(
        self,
        reactants: List[Chem.Mol],
        products: List[Chem.Mol],
        mapping: FrozenSet[AtomMapping],
        bond_changes: Optional[List[BondChange]] = None,
    ) -> MappingScore:
        """
        Compute the score of a mapping.

        Args:
            reactants: List of reactant molecules
            products: List of product molecules
            mapping: Set of atom mappings
            bond_changes: Pre-computed bond changes (optional)

        Returns:
            MappingScore object with all metrics
        """
        if bond_changes is None:
            bond_changes = self.compute_bond_changes(reactants, products, mapping)

        num_formed = sum(
            1 for bc in bond_changes if bc.change_type == BondChangeType.FORMED
        )
        num_broken = sum(
            1 for bc in bond_changes if bc.change_type == BondChangeType.BROKEN
        )
        num_order_changes = sum(
            1 for bc in bond_changes if bc.change_type == BondChangeType.ORDER_CHANGE
        )

        return MappingScore(
            num_bond_changes=num_formed + num_broken + num_order_changes,
            num_bonds_formed=num_formed,
            num_bonds_broken=num_broken,
            num_order_changes=num_order_changes,
            ring_changes=self._count_ring_changes(bond_changes),
            num_mapped_atoms=len(mapping),
            similarity_score=self._calculate_similarity(reactants, products, mapping),
        )

    def _mapped_bonds(
        self, mols: List[Chem.Mol], maps: Dict[Tuple[int, int], int]
    ) -> BondTable:
        """Bonds between mapped atoms, keyed by their map numbers."""
        bonds: BondTable = {}
        for mol_idx, mol in enumerate(mols):
            for bond in mol.GetBonds():
                atom1_key = (mol_idx, bond.GetBeginAtomIdx())
                atom2_key = (mol_idx, bond.GetEndAtomIdx())
                if atom1_key in maps and atom2_key in maps:
                    bonds[frozenset([maps[atom1_key], maps[atom2_key]])] = (
                        bond.GetBondTypeAsDouble(),
                        bond.IsInRing(),
                    )
        return bonds

    def compute_bond_changes(
        self,
        reactants: List[Chem.Mol],
        products: List[Chem.Mol],
        mapping: FrozenSet[AtomMapping],
    ) -> List[BondChange]:
        """
        Compute all bond changes in the reaction.

        Map numbers are those ``atom_map_numbers`` assigns, so they agree
        with the mapped reaction SMILES.

        Args:
            reactants: List of reactant molecules
            products: List of product molecules
            mapping: Set of atom mappings

        Returns:
            List of BondChange objects
        """
        reactant_to_map, product_to_map = atom_map_numbers(mapping)
        reactant_bonds = self._mapped_bonds(reactants, reactant_to_map)
        product_bonds = self._mapped_bonds(products, product_to_map)

        changes = []

        # Broken bonds (in reactants but not products)
        for bond_key in sorted(reactant_bonds.keys() - product_bonds.keys(), key=sorted):
            order, in_ring = reactant_bonds[bond_key]
            map1, map2 = sorted(bond_key)
            changes.append(
                BondChange(
                    atom1_map=map1,
                    atom2_map=map2,
                    change_type=BondChangeType.BROKEN,
                    old_order=order,
                    new_order=None,
                    in_ring=in_ring,
                )
            )

        # Formed bonds (in products but not reactants)
        for bond_key in sorted(product_bonds.keys() - reactant_bonds.keys(), key=sorted):
            order, in_ring = product_bonds[bond_key]
            map1, map2 = sorted(bond_key)
            changes.append(
                BondChange(
                    atom1_map=map1,
                    atom2_map=map2,
                    change_type=BondChangeType.FORMED,
                    old_order=None,
                    new_order=order,
                    in_ring=in_ring,
                )
            )

        # Order changes (in both but different order)
        for bond_key in sorted(reactant_bonds.keys() & product_bonds.keys(), key=sorted):
            r_order, r_ring = reactant_bonds[bond_key]
            p_order, p_ring = product_bonds[bond_key]
            if abs(r_order - p_order) > 0.1:
                map1, map2 = sorted(bond_key)
                changes.append(
                    BondChange(
                        atom1_map=map1,
                        atom2_map=map2,
                        change_type=BondChangeType.ORDER_CHANGE,
                        old_order=r_order,
                        new_order=p_order,
                        in_ring=r_ring or p_ring,
                    )
                )

        return changes

    def _count_ring_changes(self, bond_changes: List[BondChange]) -> int:
        """Count ring opening and closing events."""
        return sum(
            1
            for bc in bond_changes
            if bc.in_ring
            and bc.change_type in (BondChangeType.FORMED, BondChangeType.BROKEN)
        )

    def _calculate_similarity(
        self,
        reactants: List[Chem.Mol],
        products: List[Chem.Mol],
        mapping: FrozenSet[AtomMapping],
    ) -> float:
        """
        Calculate overall similarity based on the mapping.

        Returns fraction of atoms that are successfully mapped.
        """
        total_reactant_atoms = sum(mol.GetNumAtoms() for mol in reactants)
        total_product_atoms = sum(mol.GetNumAtoms() for mol in products)

        if total_reactant_atoms == 0 or total_product_atoms == 0:
            return 0.0

        mapped_atoms = len(mapping)
        reactant_coverage = mapped_atoms / total_reactant_atoms
        product_coverage = mapped_atoms / total_product_atoms

        return (reactant_coverage + product_coverage) / 2
