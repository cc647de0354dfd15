"""mcs_atom_mapper initialization."""

from mcs_atom_mapper.main import map_reactions
from mcs_atom_mapper.mappers.data_classes import (
    MappingAlgorithm,
    SearchMode,
    StandardizationFailurePolicy,
)
from mcs_atom_mapper.mappers.mcs.matching import POLICY_PRESETS, MatchingPolicy
from mcs_atom_mapper.mappers.mcs.mcs_mapper import MCSReactionMapper
from mcs_atom_mapper.mappers.mcs.orchestrator import (
    ConcurrentMappingTool,
    map_reaction_concurrently,
)
from mcs_atom_mapper.mappers.mcs.substructure import find_mcs
from mcs_atom_mapper.scoring import MappingScorer
from mcs_atom_mapper.utils.chem_utils import RDKitStandardizer, write_mapped_reaction
from mcs_atom_mapper.utils.graph_utils import MolecularGraph

__all__ = [
    "map_reactions",
    "MCSReactionMapper",
    "ConcurrentMappingTool",
    "map_reaction_concurrently",
    "find_mcs",
    "MolecularGraph",
    "MatchingPolicy",
    "POLICY_PRESETS",
    "MappingAlgorithm",
    "SearchMode",
    "StandardizationFailurePolicy",
    "MappingScorer",
    "RDKitStandardizer",
    "write_mapped_reaction",
]

__version__ = "0.1.0"
