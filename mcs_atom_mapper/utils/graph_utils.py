"""
Graph-based utilities for molecular matching.

This module provides the immutable labeled-graph view of a molecule (or of a
whole reaction side) that the MCS searches work on. A graph is either
concrete, with element and bond-order labels taken from real molecules, or a
query, whose atoms and bonds may be wildcards.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Hashable, Iterable, List, Optional, Sequence, Tuple

from rdkit import Chem

from mcs_atom_mapper.exceptions import IndexResolutionError

SINGLE_OR_AROMATIC: FrozenSet[float] = frozenset([1.0, 1.5])

# Element, atomic number or wildcard, optionally bracketed
_SIMPLE_ATOM_SMARTS = re.compile(r"^\[?(\*|#\d+|[A-Z][a-z]?|[a-z]{1,2})\]?$")
_SIMPLE_BOND_SMARTS = frozenset(["", "~", "-", "=", "#", ":"])


class GraphKind(Enum):
    """Tag selecting the matcher behavior of a graph."""

    CONCRETE = "concrete"
    QUERY = "query"


@dataclass(frozen=True)
class AtomNode:
    """
    A node of a molecular graph.

    Attributes:
        idx: Index of the node in its graph
        element: Element symbol, None for a query wildcard
        is_wildcard: True if the node matches any atom
        atom_type: Optional finer atom label (element, hybridization, aromaticity)
        mol_idx: Index of the molecule the atom came from
        atom_idx: Index of the atom inside that molecule
    """

    idx: int
    element: Optional[str]
    is_wildcard: bool = False
    atom_type: Optional[str] = None
    mol_idx: int = 0
    atom_idx: int = -1


@dataclass(frozen=True)
class BondEdge:
    """
    An edge of a molecular graph.

    Attributes:
        begin: Index of the first atom
        end: Index of the second atom
        order: Bond order (1.5 for aromatic bonds)
        in_ring: Whether the bond is a ring bond
        query_orders: For query bonds, the admissible target orders;
            None means any bond
    """

    begin: int
    end: int
    order: float = 1.0
    in_ring: bool = False
    query_orders: Optional[FrozenSet[float]] = None

    @property
    def key(self) -> Tuple[int, int]:
        return (min(self.begin, self.end), max(self.begin, self.end))


class MolecularGraph:
    """
    Graph representation of a molecule for matching purposes.

    Instances are immutable once constructed. Nodes are indexed 0..n-1 in
    the order given; bonds are undirected.
    """

    def __init__(
        self,
        atoms: Sequence[AtomNode],
        bonds: Iterable[BondEdge] = (),
        kind: GraphKind = GraphKind.CONCRETE,
        name: str = "",
    ):
        """
        Initialize a molecular graph.

        Args:
            atoms: Nodes of the graph; atoms[i].idx must equal i
            bonds: Edges of the graph
            kind: Concrete or query graph
            name: Optional label used in log messages

        Raises:
            ValueError: If node indices are inconsistent or a bond is invalid
        """
        self._atoms: Tuple[AtomNode, ...] = tuple(atoms)
        self._kind = kind
        self.name = name

        for position, atom in enumerate(self._atoms):
            if atom.idx != position:
                raise ValueError(
                    f"Invalid input: atom at position {position} has index {atom.idx}."
                )

        adjacency: Dict[int, Dict[int, BondEdge]] = {
            i: {} for i in range(len(self._atoms))
        }
        bond_list: List[BondEdge] = []
        for bond in bonds:
            if bond.begin == bond.end:
                raise ValueError(f"Invalid input: self-loop on atom {bond.begin}.")
            for idx in (bond.begin, bond.end):
                if idx not in adjacency:
                    raise ValueError(
                        f"Invalid input: bond {bond.key} references missing atom {idx}."
                    )
            if bond.end in adjacency[bond.begin]:
                raise ValueError(f"Invalid input: duplicate bond {bond.key}.")
            adjacency[bond.begin][bond.end] = bond
            adjacency[bond.end][bond.begin] = bond
            bond_list.append(bond)

        self._bonds: Tuple[BondEdge, ...] = tuple(bond_list)
        self._adjacency: Dict[int, Dict[int, BondEdge]] = adjacency
        self._neighbors: Tuple[FrozenSet[int], ...] = tuple(
            frozenset(adjacency[i]) for i in range(len(self._atoms))
        )
        self._signature: Optional[Hashable] = None

    @property
    def kind(self) -> GraphKind:
        return self._kind

    @property
    def is_query(self) -> bool:
        return self._kind is GraphKind.QUERY

    @property
    def num_atoms(self) -> int:
        return len(self._atoms)

    @property
    def num_bonds(self) -> int:
        return len(self._bonds)

    @property
    def atoms(self) -> Tuple[AtomNode, ...]:
        return self._atoms

    @property
    def bonds(self) -> Tuple[BondEdge, ...]:
        return self._bonds

    def __len__(self) -> int:
        return len(self._atoms)

    def __repr__(self) -> str:
        return (
            f"MolecularGraph(name={self.name!r}, kind={self._kind.value}, "
            f"atoms={self.num_atoms}, bonds={self.num_bonds})"
        )

    def _check_index(self, atom_idx: int) -> None:
        if not isinstance(atom_idx, int) or not 0 <= atom_idx < len(self._atoms):
            raise IndexResolutionError(
                f"Atom index {atom_idx} not found in graph {self.name or '<unnamed>'}"
            )

    def get_atom(self, atom_idx: int) -> AtomNode:
        """Get the node with the given index."""
        self._check_index(atom_idx)
        return self._atoms[atom_idx]

    def get_neighbors(self, atom_idx: int) -> FrozenSet[int]:
        """Get neighboring atom indices."""
        self._check_index(atom_idx)
        return self._neighbors[atom_idx]

    def get_bonds(self, atom_idx: int) -> Tuple[BondEdge, ...]:
        """Get the bonds incident to an atom."""
        self._check_index(atom_idx)
        return tuple(self._adjacency[atom_idx].values())

    def get_bond(self, atom1_idx: int, atom2_idx: int) -> Optional[BondEdge]:
        """Get the bond between two atoms, or None if they are not bonded."""
        self._check_index(atom1_idx)
        self._check_index(atom2_idx)
        return self._adjacency[atom1_idx].get(atom2_idx)

    def degree(self, atom_idx: int) -> int:
        return len(self.get_neighbors(atom_idx))

    def element_counts(self) -> Dict[str, int]:
        """Count atoms per element, ignoring wildcards."""
        counts: Dict[str, int] = {}
        for atom in self._atoms:
            if atom.is_wildcard or atom.element is None:
                continue
            counts[atom.element] = counts.get(atom.element, 0) + 1
        return counts

    @property
    def signature(self) -> Hashable:
        """Structural key of the graph, identical for identically built graphs."""
        if self._signature is None:
            self._signature = (
                self._kind.value,
                tuple(
                    (a.element, a.is_wildcard, a.atom_type) for a in self._atoms
                ),
                tuple(
                    sorted(
                        (
                            b.key,
                            b.order,
                            b.in_ring,
                            None if b.query_orders is None else tuple(sorted(b.query_orders)),
                        )
                        for b in self._bonds
                    )
                ),
            )
        return self._signature

    @classmethod
    def from_mols(
        cls, mols: Sequence[Chem.Mol], name: str = ""
    ) -> "MolecularGraph":
        """
        Build one concrete graph from one or more RDKit molecules.

        The molecules become disconnected components of the graph; every node
        remembers its molecule and atom index so that a mapping can be
        translated back onto the molecules.

        Args:
            mols: RDKit molecules, e.g. all reactants of a reaction
            name: Optional label for the graph

        Returns:
            Concrete MolecularGraph
        """
        atoms: List[AtomNode] = []
        bonds: List[BondEdge] = []
        offset = 0
        for mol_idx, mol in enumerate(mols):
            for atom in mol.GetAtoms():
                atoms.append(
                    AtomNode(
                        idx=offset + atom.GetIdx(),
                        element=atom.GetSymbol(),
                        atom_type=_atom_type(atom),
                        mol_idx=mol_idx,
                        atom_idx=atom.GetIdx(),
                    )
                )
            for bond in mol.GetBonds():
                bonds.append(
                    BondEdge(
                        begin=offset + bond.GetBeginAtomIdx(),
                        end=offset + bond.GetEndAtomIdx(),
                        order=bond.GetBondTypeAsDouble(),
                        in_ring=bond.IsInRing(),
                    )
                )
            offset += mol.GetNumAtoms()
        return cls(atoms, bonds, kind=GraphKind.CONCRETE, name=name)

    @classmethod
    def from_mol(cls, mol: Chem.Mol, name: str = "") -> "MolecularGraph":
        return cls.from_mols([mol], name=name)

    @classmethod
    def from_smarts(cls, smarts: str, name: str = "") -> "MolecularGraph":
        """
        Build a query graph from a SMARTS pattern.

        '*' atoms become wildcards and '~' bonds match any bond. Bonds left
        implicit in the pattern match single or aromatic bonds. Atoms are
        matched by element only, so an aromatic 'c' also matches aliphatic
        carbon. Atom lists, negations, recursive SMARTS, atom properties such
        as charge or H count, and bond lists are not supported.

        Args:
            smarts: SMARTS pattern
            name: Optional label for the graph

        Returns:
            Query MolecularGraph

        Raises:
            ValueError: If the pattern cannot be parsed or uses unsupported
                atom or bond primitives
        """
        query = Chem.MolFromSmarts(smarts)
        if query is None:
            raise ValueError(f"Invalid input: could not parse SMARTS {smarts!r}.")

        atoms: List[AtomNode] = []
        for atom in query.GetAtoms():
            if not _SIMPLE_ATOM_SMARTS.match(atom.GetSmarts()):
                raise ValueError(
                    f"Invalid input: unsupported SMARTS atom {atom.GetSmarts()!r} in {smarts!r}."
                )
            wildcard = atom.GetAtomicNum() == 0
            atoms.append(
                AtomNode(
                    idx=atom.GetIdx(),
                    element=None if wildcard else atom.GetSymbol(),
                    is_wildcard=wildcard,
                    atom_idx=atom.GetIdx(),
                )
            )

        bonds: List[BondEdge] = []
        for bond in query.GetBonds():
            bond_smarts = bond.GetSmarts()
            if bond_smarts not in _SIMPLE_BOND_SMARTS:
                raise ValueError(
                    f"Invalid input: unsupported SMARTS bond {bond_smarts!r} in {smarts!r}."
                )
            if bond_smarts == "~":
                query_orders = None
            elif bond_smarts == "":
                query_orders = SINGLE_OR_AROMATIC
            else:
                query_orders = frozenset([bond.GetBondTypeAsDouble()])
            bonds.append(
                BondEdge(
                    begin=bond.GetBeginAtomIdx(),
                    end=bond.GetEndAtomIdx(),
                    order=bond.GetBondTypeAsDouble(),
                    query_orders=query_orders,
                )
            )
        return cls(atoms, bonds, kind=GraphKind.QUERY, name=name or smarts)


def _atom_type(atom: Chem.Atom) -> str:
    aromatic = ".ar" if atom.GetIsAromatic() else ""
    return f"{atom.GetSymbol()}.{atom.GetHybridization()}{aromatic}"


def common_atom_upper_bound(graph1: MolecularGraph, graph2: MolecularGraph) -> int:
    """
    Upper bound on the size of any common subgraph of two concrete graphs.

    Counts the atoms the two graphs could share element-wise.

    Args:
        graph1: First molecular graph
        graph2: Second molecular graph

    Returns:
        Size of the element multiset intersection
    """
    counts1 = graph1.element_counts()
    counts2 = graph2.element_counts()
    return sum(min(n, counts2.get(element, 0)) for element, n in counts1.items())
