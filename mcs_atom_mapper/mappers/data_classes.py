"""
Data classes for atom-to-atom mapping.

This module contains the data structures used throughout the atom mapping
process: index mappings produced by the MCS searches, their aggregation,
reaction components, bond changes, scoring metrics and per-policy results.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Dict, FrozenSet, List, Mapping, Optional, Set, Tuple


class MappingAlgorithm(Enum):
    """Enumeration of the mapping policies run by the orchestrator."""

    MIN = auto()  # Minimize the number of bond changes
    MAX = auto()  # Maximize the common substructure
    MIXTURE = auto()  # Hybrid approach combining MIN and MAX
    RINGS = auto()  # Bond and ring sensitive, minimize ring changes


class SearchMode(Enum):
    """Enumeration mode of a subgraph search."""

    FIRST = "first"  # Stop at the first complete mapping
    ALL = "all"  # Collect every maximum mapping


class StandardizationFailurePolicy(Enum):
    """What a mapping task does when the standardizer raises."""

    CONTINUE = "continue"  # Log and map the unstandardized reaction
    FAIL_TASK = "fail_task"  # Fail the task, its policy is left out


class BondChangeType(Enum):
    """Types of bond changes in a reaction."""

    FORMED = auto()
    BROKEN = auto()
    ORDER_CHANGE = auto()


@dataclass(frozen=True)
class IndexMapping:
    """
    Injective mapping from source graph indices to target graph indices.

    Attributes:
        pairs: (source_index, target_index) pairs sorted by source index
    """

    pairs: Tuple[Tuple[int, int], ...] = ()

    def __post_init__(self):
        ordered = tuple(sorted((int(s), int(t)) for s, t in self.pairs))
        sources = [s for s, _ in ordered]
        targets = [t for _, t in ordered]
        if len(set(sources)) != len(sources) or len(set(targets)) != len(targets):
            raise ValueError(f"Invalid input: mapping is not injective: {ordered}")
        object.__setattr__(self, "pairs", ordered)

    @classmethod
    def from_dict(cls, mapping: Mapping[int, int]) -> "IndexMapping":
        return cls(tuple(mapping.items()))

    @property
    def size(self) -> int:
        return len(self.pairs)

    def __len__(self) -> int:
        return len(self.pairs)

    def __iter__(self):
        return iter(self.pairs)

    def as_dict(self) -> Dict[int, int]:
        return dict(self.pairs)

    def inverted(self) -> "IndexMapping":
        """Swap source and target roles."""
        return IndexMapping(tuple((t, s) for s, t in self.pairs))

    def source_indices(self) -> FrozenSet[int]:
        return frozenset(s for s, _ in self.pairs)

    def target_indices(self) -> FrozenSet[int]:
        return frozenset(t for _, t in self.pairs)


@dataclass(frozen=True)
class AggregationResult:
    """
    Best mappings collected by one aggregation pass.

    Attributes:
        best_size: Size shared by every mapping in ``mappings``
        mappings: Distinct mappings of size ``best_size``
    """

    best_size: int = 0
    mappings: Tuple[IndexMapping, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.mappings


@dataclass(frozen=True)
class MCSSolution:
    """
    Result of one MCS pipeline run between a source and a target graph.

    Attributes:
        is_subgraph: True if a mapping covers every source atom
        aggregation: Best mappings found
        extended: True if the extension stage supplied the mappings
    """

    is_subgraph: bool
    aggregation: AggregationResult
    extended: bool = False

    @property
    def mappings(self) -> Tuple[IndexMapping, ...]:
        return self.aggregation.mappings

    @property
    def best_size(self) -> int:
        return self.aggregation.best_size


@dataclass(frozen=True)
class AtomMapping:
    """
    Represents a mapping between a reactant atom and a product atom.

    Attributes:
        reactant_mol_idx: Index of the molecule in reactants list
        reactant_atom_idx: Atom index within the reactant molecule
        product_mol_idx: Index of the molecule in products list
        product_atom_idx: Atom index within the product molecule
    """

    reactant_mol_idx: int
    reactant_atom_idx: int
    product_mol_idx: int
    product_atom_idx: int

    def __repr__(self) -> str:
        return (
            f"AtomMapping(R{self.reactant_mol_idx}:{self.reactant_atom_idx} -> "
            f"P{self.product_mol_idx}:{self.product_atom_idx})"
        )


@dataclass(frozen=True)
class BondChange:
    """
    Represents a bond change during a reaction.

    Attributes:
        atom1_map: Atom map number of first atom
        atom2_map: Atom map number of second atom
        change_type: Type of bond change
        old_order: Bond order before reaction (None if formed)
        new_order: Bond order after reaction (None if broken)
        in_ring: True if the bond is a ring bond on the side where it exists
    """

    atom1_map: int
    atom2_map: int
    change_type: BondChangeType
    old_order: Optional[float] = None
    new_order: Optional[float] = None
    in_ring: bool = False

    def __repr__(self) -> str:
        return (
            f"BondChange({self.atom1_map}-{self.atom2_map}, "
            f"{self.change_type.name}, {self.old_order}->{self.new_order})"
        )


@dataclass
class MappingScore:
    """
    Scoring metrics for evaluating a mapping solution.

    Attributes:
        num_bond_changes: Number of bonds that change
        num_bonds_formed: Number of new bonds formed
        num_bonds_broken: Number of bonds broken
        num_order_changes: Number of bonds whose order changes
        ring_changes: Number of ring bonds formed or broken
        num_mapped_atoms: Size of the mapping
        similarity_score: Mean fraction of mapped atoms on both sides
    """

    num_bond_changes: int = 0
    num_bonds_formed: int = 0
    num_bonds_broken: int = 0
    num_order_changes: int = 0
    ring_changes: int = 0
    num_mapped_atoms: int = 0
    similarity_score: float = 0.0

    def total_score(self, weights: Optional[Dict[str, float]] = None) -> float:
        """
        Calculate weighted total score (lower is better).

        Args:
            weights: Optional dictionary of metric weights

        Returns:
            Weighted total score
        """
        if weights is None:
            weights = {
                "num_bond_changes": 10.0,
                "num_bonds_formed": 5.0,
                "num_bonds_broken": 5.0,
                "ring_changes": 25.0,
                "similarity_score": -50.0,  # Negative because higher is better
            }

        score = 0.0
        for metric, weight in weights.items():
            score += weight * getattr(self, metric, 0)
        return score

    def to_dict(self) -> Dict[str, float]:
        """Convert to dictionary for easy inspection."""
        return {
            "num_bond_changes": self.num_bond_changes,
            "num_bonds_formed": self.num_bonds_formed,
            "num_bonds_broken": self.num_bonds_broken,
            "num_order_changes": self.num_order_changes,
            "ring_changes": self.ring_changes,
            "num_mapped_atoms": self.num_mapped_atoms,
            "similarity_score": self.similarity_score,
            "total_score": self.total_score(),
        }


@dataclass
class ReactionComponents:
    """
    Parsed components of a chemical reaction.

    Attributes:
        reactants: List of reactant molecules (RDKit Mol objects)
        products: List of product molecules (RDKit Mol objects)
        original_smiles: Original reaction SMILES
    """

    reactants: List
    products: List
    original_smiles: str = ""

    @property
    def num_reactant_atoms(self) -> int:
        """Total number of atoms in reactants."""
        return sum(mol.GetNumAtoms() for mol in self.reactants)

    @property
    def num_product_atoms(self) -> int:
        """Total number of atoms in products."""
        return sum(mol.GetNumAtoms() for mol in self.products)


@dataclass
class MappingResult:
    """
    Complete result of one mapping policy on a reaction.

    Attributes:
        atom_mappings: Set of atom mappings between reactants and products
        bond_changes: List of bond changes in the reaction
        score: Scoring metrics for this mapping
        algorithm_used: Which policy produced this mapping
        aggregation: Every best-size mapping the search found
        is_subgraph: True if all reactant atoms were mapped
        standardized: False if the task fell back to the unstandardized input
        reaction: The reaction the indices refer to
        mapped_smiles: SMILES with atom mapping numbers
        reaction_center: Atom map numbers involved in bond changes
    """

    atom_mappings: FrozenSet[AtomMapping]
    bond_changes: List[BondChange]
    score: MappingScore
    algorithm_used: MappingAlgorithm
    aggregation: AggregationResult = field(default_factory=AggregationResult)
    is_subgraph: bool = False
    standardized: bool = True
    reaction: Optional[ReactionComponents] = None
    mapped_smiles: str = ""
    reaction_center: Set[int] = field(default_factory=set)

    def get_mapping_dict(self) -> Dict[Tuple[int, int], Tuple[int, int]]:
        """
        Get mapping as dictionary from (mol_idx, atom_idx) -> (mol_idx, atom_idx).

        Returns:
            Dictionary mapping reactant atoms to product atoms
        """
        return {
            (m.reactant_mol_idx, m.reactant_atom_idx): (
                m.product_mol_idx,
                m.product_atom_idx,
            )
            for m in self.atom_mappings
        }
