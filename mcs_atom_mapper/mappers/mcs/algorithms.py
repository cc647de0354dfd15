"""
Mapping algorithm implementations.

This module implements the MIN, MAX, MIXTURE and RINGS algorithms for
atom-to-atom mapping. Each one searches the maximum common subgraph of the
reactant and product sides under its own matching policy, then picks one of
the equally large mappings with its own selection objective.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from typing import Dict, FrozenSet, Mapping, Optional, Tuple, Type

from mcs_atom_mapper.exceptions import StandardizationError
from mcs_atom_mapper.mappers.data_classes import (
    AtomMapping,
    IndexMapping,
    MappingAlgorithm,
    MappingResult,
    MappingScore,
    ReactionComponents,
    SearchMode,
    StandardizationFailurePolicy,
)
from mcs_atom_mapper.mappers.mcs.matching import MatchingPolicy, get_policy
from mcs_atom_mapper.mappers.mcs.subgraph_search import DEFAULT_MAX_MAPPINGS
from mcs_atom_mapper.mappers.mcs.substructure import find_mcs
from mcs_atom_mapper.scoring import MappingScorer
from mcs_atom_mapper.utils.cache import ResultCache
from mcs_atom_mapper.utils.cancellation import CancellationToken, check
from mcs_atom_mapper.utils.chem_utils import (
    Standardizer,
    copy_reaction,
    mapped_reaction_smiles,
    prepare_hydrogens,
)
from mcs_atom_mapper.utils.graph_utils import MolecularGraph
from mcs_atom_mapper.utils.logging_config import logger


def to_atom_mappings(
    mapping: IndexMapping, reactants: MolecularGraph, products: MolecularGraph
) -> FrozenSet[AtomMapping]:
    """
    Translate graph indices of a mapping back to molecule and atom indices.

    Args:
        mapping: Mapping from reactant graph indices to product graph indices
        reactants: Graph built from the reactant molecules
        products: Graph built from the product molecules

    Returns:
        Frozen set of AtomMapping objects
    """
    atom_mappings = []
    for r_idx, p_idx in mapping:
        r_atom = reactants.get_atom(r_idx)
        p_atom = products.get_atom(p_idx)
        atom_mappings.append(
            AtomMapping(r_atom.mol_idx, r_atom.atom_idx, p_atom.mol_idx, p_atom.atom_idx)
        )
    return frozenset(atom_mappings)


class BaseMappingAlgorithm(ABC):
    """
    Abstract base class for mapping algorithms.

    Subclasses define the algorithm type and the selection objective; the
    search itself is shared.
    """

    def __init__(
        self,
        scorer: Optional[MappingScorer] = None,
        policy: Optional[MatchingPolicy] = None,
        max_mappings: int = DEFAULT_MAX_MAPPINGS,
    ):
        """
        Initialize the algorithm.

        Args:
            scorer: Optional scorer for evaluating mappings
            policy: Matching policy, the preset of the algorithm by default
            max_mappings: Maximum number of equal-size mappings kept by the search
        """
        self.scorer = scorer or MappingScorer()
        self.policy = policy or get_policy(self.algorithm_type)
        self.max_mappings = max_mappings

    @property
    @abstractmethod
    def algorithm_type(self) -> MappingAlgorithm:
        """Return the algorithm type."""
        pass

    @abstractmethod
    def selection_key(self, score: MappingScore) -> Tuple:
        """Sort key of a candidate mapping, the smallest is selected."""
        pass

    def map_reaction(
        self,
        reaction: ReactionComponents,
        token: Optional[CancellationToken] = None,
        cache: Optional[ResultCache] = None,
    ) -> MappingResult:
        """
        Generate the atom mapping of a reaction under this algorithm's policy.

        Args:
            reaction: Parsed (and prepared) reaction components
            token: Optional cancellation token for the search
            cache: Optional cache shared by the tasks of one run

        Returns:
            MappingResult of the selected mapping; its atom mappings are empty
            when the sides share no compatible atoms
        """
        reactant_graph = MolecularGraph.from_mols(reaction.reactants, name="reactants")
        product_graph = MolecularGraph.from_mols(reaction.products, name="products")

        solution = find_mcs(
            reactant_graph,
            product_graph,
            self.policy,
            mode=SearchMode.ALL,
            token=token,
            cache=cache,
            max_mappings=self.max_mappings,
        )
        if solution.aggregation.is_empty:
            logger.warning(f"{self.algorithm_type.name}: no common substructure found")

        best: Optional[MappingResult] = None
        best_key = None
        for mapping in solution.mappings:
            check(token)
            atom_mappings = to_atom_mappings(mapping, reactant_graph, product_graph)
            candidate = self._build_result(reaction, atom_mappings)
            key = self.selection_key(candidate.score)
            if best_key is None or key < best_key:
                best, best_key = candidate, key

        if best is None:
            best = self._build_result(reaction, frozenset())

        atom_mappings = best.atom_mappings
        best.aggregation = solution.aggregation
        best.is_subgraph = solution.is_subgraph
        best.reaction = reaction
        best.mapped_smiles = mapped_reaction_smiles(reaction, atom_mappings)
        logger.debug(
            f"{self.algorithm_type.name}: selected mapping of {len(atom_mappings)} atoms "
            f"with {best.score.num_bond_changes} bond changes"
        )
        return best

    def _build_result(
        self, reaction: ReactionComponents, atom_mappings: FrozenSet[AtomMapping]
    ) -> MappingResult:
        bond_changes = self.scorer.compute_bond_changes(
            reaction.reactants, reaction.products, atom_mappings
        )
        score = self.scorer.score_mapping(
            reaction.reactants, reaction.products, atom_mappings, bond_changes
        )
        reaction_center = set()
        for bc in bond_changes:
            reaction_center.add(bc.atom1_map)
            reaction_center.add(bc.atom2_map)
        return MappingResult(
            atom_mappings=atom_mappings,
            bond_changes=bond_changes,
            score=score,
            algorithm_used=self.algorithm_type,
            reaction_center=reaction_center,
        )


class MinAlgorithm(BaseMappingAlgorithm):
    """
    MIN algorithm: Minimize bond changes.

    Bond orders must match during the search; among the largest mappings the
    one with the fewest formed, broken and changed bonds is selected.
    """

    @property
    def algorithm_type(self) -> MappingAlgorithm:
        return MappingAlgorithm.MIN

    def selection_key(self, score: MappingScore) -> Tuple:
        return (score.num_bond_changes, score.num_bonds_formed, score.ring_changes)


class MaxAlgorithm(BaseMappingAlgorithm):
    """
    MAX algorithm: Maximize common substructure.

    Bond orders are ignored during the search so the common substructure is
    as large as possible; ties go to the fewest bond changes.
    """

    @property
    def algorithm_type(self) -> MappingAlgorithm:
        return MappingAlgorithm.MAX

    def selection_key(self, score: MappingScore) -> Tuple:
        return (-score.num_mapped_atoms, score.num_bond_changes)


class MixtureAlgorithm(BaseMappingAlgorithm):
    """
    MIXTURE algorithm: Hybrid approach.

    Atom types and bond orders must match; candidates are ranked by a
    weighted combination of the MIN and MAX objectives.
    """

    def __init__(
        self,
        scorer: Optional[MappingScorer] = None,
        policy: Optional[MatchingPolicy] = None,
        max_mappings: int = DEFAULT_MAX_MAPPINGS,
        min_weight: float = 0.5,
        max_weight: float = 0.5,
    ):
        super().__init__(scorer, policy, max_mappings)
        self.min_weight = min_weight
        self.max_weight = max_weight

    @property
    def algorithm_type(self) -> MappingAlgorithm:
        return MappingAlgorithm.MIXTURE

    def _hybrid_score(self, score: MappingScore) -> float:
        """Calculate hybrid score combining MIN and MAX objectives."""
        min_component = score.num_bond_changes
        max_component = -score.similarity_score * 100  # Negate for minimization

        return self.min_weight * min_component + self.max_weight * max_component

    def selection_key(self, score: MappingScore) -> Tuple:
        return (self._hybrid_score(score), score.num_bond_changes)


class RingsAlgorithm(BaseMappingAlgorithm):
    """
    RINGS algorithm: Preserve ring systems.

    Ring membership must match along with bond orders; the mapping opening
    or closing the fewest rings is selected.
    """

    @property
    def algorithm_type(self) -> MappingAlgorithm:
        return MappingAlgorithm.RINGS

    def selection_key(self, score: MappingScore) -> Tuple:
        return (score.ring_changes, score.num_bond_changes)


ALGORITHM_CLASSES: Dict[MappingAlgorithm, Type[BaseMappingAlgorithm]] = {
    MappingAlgorithm.MIN: MinAlgorithm,
    MappingAlgorithm.MAX: MaxAlgorithm,
    MappingAlgorithm.MIXTURE: MixtureAlgorithm,
    MappingAlgorithm.RINGS: RingsAlgorithm,
}


def create_algorithm(
    algorithm: MappingAlgorithm,
    scorer: Optional[MappingScorer] = None,
    policies: Optional[Mapping[MappingAlgorithm, MatchingPolicy]] = None,
    max_mappings: int = DEFAULT_MAX_MAPPINGS,
) -> BaseMappingAlgorithm:
    """Instantiate the algorithm class of ``algorithm`` with its policy."""
    return ALGORITHM_CLASSES[algorithm](
        scorer=scorer,
        policy=get_policy(algorithm, policies),
        max_mappings=max_mappings,
    )


@dataclass
class PolicyTask:
    """
    One unit of work of the orchestrator.

    Attributes:
        algorithm: Policy to run
        policy: Matching policy of that algorithm
        reaction: Input reaction, never modified by the task
        timeout: Seconds the task may run, None for no limit
        token: Cancellation token; its deadline starts when the task starts
    """

    algorithm: MappingAlgorithm
    policy: MatchingPolicy
    reaction: ReactionComponents
    timeout: Optional[float] = None
    token: CancellationToken = field(default_factory=CancellationToken)


def map_with_policy(
    task: PolicyTask,
    standardizer: Optional[Standardizer] = None,
    remove_hydrogen: bool = True,
    cache: Optional[ResultCache] = None,
    on_standardization_failure: StandardizationFailurePolicy = StandardizationFailurePolicy.CONTINUE,
    max_mappings: int = DEFAULT_MAX_MAPPINGS,
    scorer: Optional[MappingScorer] = None,
) -> MappingResult:
    """
    Run one mapping policy on a reaction.

    The task works on its own copy of the reaction: standardize, prepare
    hydrogens, search and select.

    Args:
        task: The task to run
        standardizer: Optional standardizer applied before the search
        remove_hydrogen: Remove explicit hydrogens if True, add them otherwise
        cache: Optional cache shared by the tasks of one run
        on_standardization_failure: What to do when the standardizer fails
        max_mappings: Maximum number of equal-size mappings kept by the search
        scorer: Optional scorer for evaluating mappings

    Returns:
        MappingResult of the policy

    Raises:
        StandardizationError: If standardization fails and the failure policy
            is FAIL_TASK
        SearchCancelled: If the task was cancelled or ran past its deadline
    """
    task.token.start_clock(task.timeout)
    logger.info(f"Starting {task.algorithm.name} mapping ({task.policy.describe()})")

    reaction = copy_reaction(task.reaction)
    standardized = True
    if standardizer is not None:
        try:
            reaction = standardizer.standardize(reaction)
        except Exception as e:
            if on_standardization_failure is StandardizationFailurePolicy.FAIL_TASK:
                raise StandardizationError(
                    f"{task.algorithm.name}: standardization failed: {e}"
                ) from e
            logger.warning(
                f"{task.algorithm.name}: standardization failed, "
                f"mapping the unstandardized reaction: {e}"
            )
            reaction = copy_reaction(task.reaction)
            standardized = False

    reaction = prepare_hydrogens(reaction, remove_hydrogen)
    algorithm = create_algorithm(
        task.algorithm,
        scorer=scorer,
        policies={task.algorithm: task.policy},
        max_mappings=max_mappings,
    )
    result = algorithm.map_reaction(reaction, token=task.token, cache=cache)
    logger.info(
        f"Finished {task.algorithm.name} mapping: {len(result.atom_mappings)} atoms mapped"
    )
    return replace(result, standardized=standardized)
