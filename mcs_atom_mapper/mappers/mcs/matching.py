"""
Atom and bond compatibility rules.

A MatchingPolicy bundles the three strictness switches used by the MCS
searches. The four presets used by the orchestrator are plain data in
``POLICY_PRESETS``.
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional

from mcs_atom_mapper.mappers.data_classes import MappingAlgorithm
from mcs_atom_mapper.utils.graph_utils import AtomNode, BondEdge, MolecularGraph


class BondMatchMode(Enum):
    """Graded bond compatibility rules."""

    ANY = "any"
    ORDER = "order"
    STRICT_ORDER_RING = "strict_order_ring"


@dataclass(frozen=True)
class MatchingPolicy:
    """
    Comparator configuration for one MCS search.

    Attributes:
        bond_sensitive: Bond orders must match
        ring_sensitive: Bond orders and ring membership must match
        atom_type_sensitive: Atom types must match in addition to elements
    """

    bond_sensitive: bool = True
    ring_sensitive: bool = False
    atom_type_sensitive: bool = False

    @property
    def bond_mode(self) -> BondMatchMode:
        if self.ring_sensitive:
            return BondMatchMode.STRICT_ORDER_RING
        if self.bond_sensitive:
            return BondMatchMode.ORDER
        return BondMatchMode.ANY

    def atoms_match(self, source_atom: AtomNode, target_atom: AtomNode) -> bool:
        """
        Check if a source atom may be mapped onto a target atom.

        Args:
            source_atom: Atom of the source (possibly query) graph
            target_atom: Atom of the target graph

        Returns:
            True if atoms are compatible
        """
        if source_atom.is_wildcard:
            return True
        if source_atom.element != target_atom.element:
            return False
        if (
            self.atom_type_sensitive
            and source_atom.atom_type is not None
            and target_atom.atom_type is not None
        ):
            return source_atom.atom_type == target_atom.atom_type
        return True

    def bonds_match(
        self, source_bond: BondEdge, target_bond: BondEdge, query: bool = False
    ) -> bool:
        """
        Check if a source bond may be mapped onto a target bond.

        Args:
            source_bond: Bond of the source graph
            target_bond: Bond of the target graph
            query: True if the source graph is a query graph

        Returns:
            True if bonds are compatible
        """
        if query:
            if source_bond.query_orders is None:
                return True
            return target_bond.order in source_bond.query_orders

        mode = self.bond_mode
        if mode is BondMatchMode.ANY:
            return True
        if source_bond.order != target_bond.order:
            return False
        if mode is BondMatchMode.STRICT_ORDER_RING:
            return source_bond.in_ring == target_bond.in_ring
        return True

    def describe(self) -> str:
        return (
            f"bonds={self.bond_mode.value}, "
            f"atom_types={'on' if self.atom_type_sensitive else 'off'}"
        )


MIN_POLICY = MatchingPolicy(bond_sensitive=True, ring_sensitive=False, atom_type_sensitive=False)
MAX_POLICY = MatchingPolicy(bond_sensitive=False, ring_sensitive=False, atom_type_sensitive=False)
MIXTURE_POLICY = MatchingPolicy(bond_sensitive=True, ring_sensitive=False, atom_type_sensitive=True)
RINGS_POLICY = MatchingPolicy(bond_sensitive=True, ring_sensitive=True, atom_type_sensitive=False)

POLICY_PRESETS: Mapping[MappingAlgorithm, MatchingPolicy] = MappingProxyType(
    {
        MappingAlgorithm.MIN: MIN_POLICY,
        MappingAlgorithm.MAX: MAX_POLICY,
        MappingAlgorithm.MIXTURE: MIXTURE_POLICY,
        MappingAlgorithm.RINGS: RINGS_POLICY,
    }
)


def get_policy(
    algorithm: MappingAlgorithm,
    policies: Optional[Mapping[MappingAlgorithm, MatchingPolicy]] = None,
) -> MatchingPolicy:
    """Look up the matching policy of an algorithm; ``policies`` overrides the presets."""
    if policies and algorithm in policies:
        return policies[algorithm]
    return POLICY_PRESETS[algorithm]


def pair_is_feasible(
    policy: MatchingPolicy,
    source: MolecularGraph,
    target: MolecularGraph,
    core_source: Mapping[int, int],
    core_target: Mapping[int, int],
    source_idx: int,
    target_idx: int,
    induced: bool = False,
    check_degree: bool = False,
) -> bool:
    """
    Check whether (source_idx, target_idx) can join a partial mapping.

    Every already-mapped neighbor of the source atom must be mapped onto a
    neighbor of the target atom through a compatible bond. With ``induced``
    the converse is required too, so bonds between mapped atoms exist on
    both sides or on neither.

    Args:
        policy: Active matching policy
        source: Source graph
        target: Target graph
        core_source: Current mapping, source index -> target index
        core_target: Current mapping, target index -> source index
        source_idx: Candidate source atom
        target_idx: Candidate target atom
        induced: Also require target bonds between mapped atoms to exist in source
        check_degree: Require deg(target atom) >= deg(source atom)

    Returns:
        True if the pair keeps the mapping consistent
    """
    if source_idx in core_source or target_idx in core_target:
        return False
    if not policy.atoms_match(source.get_atom(source_idx), target.get_atom(target_idx)):
        return False
    if check_degree and target.degree(target_idx) < source.degree(source_idx):
        return False

    query = source.is_query
    for neighbor in source.get_neighbors(source_idx):
        if neighbor not in core_source:
            continue
        target_bond = target.get_bond(target_idx, core_source[neighbor])
        if target_bond is None:
            return False
        source_bond = source.get_bond(source_idx, neighbor)
        if not policy.bonds_match(source_bond, target_bond, query=query):
            return False

    if induced:
        for neighbor in target.get_neighbors(target_idx):
            if (
                neighbor in core_target
                and source.get_bond(source_idx, core_target[neighbor]) is None
            ):
                return False
    return True
