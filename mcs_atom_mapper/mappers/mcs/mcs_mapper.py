"""
Reaction mapping front-end with consensus selection.

MCSReactionMapper parses reaction SMILES, runs every mapping policy
concurrently and picks the best-scoring result as its mapping.
"""

from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Set, Tuple

from mcs_atom_mapper.exceptions import ReactionParseError
from mcs_atom_mapper.mappers.data_classes import (
    MappingAlgorithm,
    MappingResult,
    ReactionComponents,
    StandardizationFailurePolicy,
)
from mcs_atom_mapper.mappers.mcs.orchestrator import (
    DEFAULT_TASK_TIMEOUT,
    POLICY_ORDER,
    ConcurrentMappingTool,
)
from mcs_atom_mapper.mappers.reaction_mapper import ReactionMapper
from mcs_atom_mapper.scoring import MappingScorer
from mcs_atom_mapper.utils.chem_utils import (
    RDKitStandardizer,
    Standardizer,
    parse_reaction_smiles,
)
from mcs_atom_mapper.utils.logging_config import logger


class MCSReactionMapper(ReactionMapper):
    """
    Main class for atom-to-atom mapping of chemical reactions.

    Runs the MIN, MAX, MIXTURE (and RINGS) policies concurrently and selects
    the best result by total score.

    Example usage:
        >>> mapper = MCSReactionMapper("mcs_default")
        >>> result = mapper.map_reaction("CC(=O)Cl.N>>CC(=O)N.Cl")
        >>> print(result["mapping"])
    """

    def __init__(
        self,
        mapper_name: str,
        mapper_weight: float = 3,
        standardizer: Optional[Standardizer] = None,
        scorer: Optional[MappingScorer] = None,
        remove_hydrogen: bool = True,
        check_complex: bool = True,
        timeout: float = DEFAULT_TASK_TIMEOUT,
        max_workers: Optional[int] = None,
        on_standardization_failure: StandardizationFailurePolicy = StandardizationFailurePolicy.CONTINUE,
    ):
        """
        Initialize the reaction mapper.

        Args:
            mapper_name: Name of this mapper
            mapper_weight: Weight of this mapper, between 0 and 1000
            standardizer: Standardizer applied by every task, RDKit cleanup by default
            scorer: Custom scorer for evaluating mappings
            remove_hydrogen: Remove explicit hydrogens before mapping
            check_complex: Also run the ring-sensitive RINGS policy
            timeout: Timeout in seconds for each policy
            max_workers: Thread pool size, the number of processors by default
            on_standardization_failure: What a task does when standardization fails
        """
        super().__init__("mcs", mapper_name, mapper_weight)
        self.standardizer = standardizer if standardizer is not None else RDKitStandardizer()
        self.scorer = scorer or MappingScorer()
        self.remove_hydrogen = remove_hydrogen
        self.check_complex = check_complex
        self.timeout = timeout
        self.max_workers = max_workers
        self.on_standardization_failure = on_standardization_failure

    def parse_reaction(self, reaction_smiles: str) -> ReactionComponents:
        """
        Parse a reaction SMILES string into its components.

        Args:
            reaction_smiles: Reaction in SMILES format (reactants>agents>products)

        Returns:
            ReactionComponents object containing parsed molecules

        Raises:
            ReactionParseError: If the reaction SMILES cannot be parsed
        """
        reactants, products = parse_reaction_smiles(reaction_smiles)
        return ReactionComponents(
            reactants=reactants,
            products=products,
            original_smiles=reaction_smiles,
        )

    def map_reaction_all_algorithms(
        self, reaction_smiles: str
    ) -> Mapping[MappingAlgorithm, MappingResult]:
        """
        Run all algorithms and return their results.

        Args:
            reaction_smiles: Reaction in SMILES format

        Returns:
            Read-only table of the completed algorithms' results, empty if
            the reaction cannot be parsed
        """
        try:
            reaction = self.parse_reaction(reaction_smiles)
        except ReactionParseError as e:
            logger.error(f"Failed to parse reaction: {e}")
            return MappingProxyType({})

        tool = ConcurrentMappingTool(
            reaction,
            self.standardizer,
            remove_hydrogen=self.remove_hydrogen,
            check_complex=self.check_complex,
            timeout=self.timeout,
            max_workers=self.max_workers,
            on_standardization_failure=self.on_standardization_failure,
            scorer=self.scorer,
        )
        return tool.solutions

    def select_consensus(
        self, results: Mapping[MappingAlgorithm, MappingResult]
    ) -> Optional[MappingResult]:
        """
        Select the best result across algorithms.

        Results are ranked by total score (lower is better); ties go to the
        larger mapping, then to the earlier policy.

        Args:
            results: Results by algorithm

        Returns:
            The selected result, None if there is none with mapped atoms
        """
        candidates = [r for r in results.values() if r.atom_mappings]
        if not candidates:
            return None
        return min(
            candidates,
            key=lambda r: (
                self.scorer.total_score(r.score),
                -len(r.atom_mappings),
                POLICY_ORDER.index(r.algorithm_used),
            ),
        )

    def map_reaction(self, reaction_smiles: str) -> Dict[str, Any]:
        """
        Map atoms in a reaction SMILES.

        Args:
            reaction_smiles: Reaction in SMILES format (reactants>agents>products)

        Returns:
            Dictionary with the mapped reaction SMILES under "mapping" (empty
            if mapping fails) and details of the selected result
        """
        default_mapping_dict = {"mapping": "", "additional_info": [{}]}
        if not self._reaction_smiles_valid(reaction_smiles):
            logger.error(f"Invalid reaction SMILES: {reaction_smiles}")
            return default_mapping_dict

        results = self.map_reaction_all_algorithms(reaction_smiles)
        best_result = self.select_consensus(results)
        if best_result is None:
            logger.warning(f"No mapping results found for {reaction_smiles}")
            return default_mapping_dict

        return {
            "mapping": best_result.mapped_smiles,
            "additional_info": [
                {
                    "algorithm": best_result.algorithm_used.name,
                    "is_subgraph": best_result.is_subgraph,
                    "standardized": best_result.standardized,
                    "reaction_center": sorted(best_result.reaction_center),
                    "score": best_result.score.to_dict(),
                    "completed_algorithms": [a.name for a in results],
                }
            ],
        }

    def get_reaction_center(self, reaction_smiles: str) -> Optional[Set[int]]:
        """
        Get the atoms involved in the reaction center.

        The reaction center consists of atoms involved in bond
        formation, breaking, or order changes.

        Args:
            reaction_smiles: Reaction in SMILES format

        Returns:
            Set of atom map numbers in the reaction center, or None if mapping fails
        """
        result = self.select_consensus(self.map_reaction_all_algorithms(reaction_smiles))
        if result:
            return result.reaction_center
        return None

    def validate_mapping(
        self, reaction_smiles: str, result: MappingResult
    ) -> Tuple[bool, List[str]]:
        """
        Validate a mapping result for chemical consistency.

        Checks:
        - Element conservation
        - Mapped atoms have the same element
        - All atoms are mapped

        Args:
            reaction_smiles: Original reaction SMILES
            result: Mapping result to validate

        Returns:
            Tuple of (is_valid, list of error messages)
        """
        errors: List[str] = []

        reaction = result.reaction
        if reaction is None:
            try:
                reaction = self.parse_reaction(reaction_smiles)
            except ReactionParseError as e:
                return False, [f"Could not parse reaction: {e}"]

        reactant_elements: Dict[str, int] = {}
        product_elements: Dict[str, int] = {}

        for mol in reaction.reactants:
            for atom in mol.GetAtoms():
                symbol = atom.GetSymbol()
                reactant_elements[symbol] = reactant_elements.get(symbol, 0) + 1

        for mol in reaction.products:
            for atom in mol.GetAtoms():
                symbol = atom.GetSymbol()
                product_elements[symbol] = product_elements.get(symbol, 0) + 1

        all_elements = set(reactant_elements.keys()) | set(product_elements.keys())
        for element in sorted(all_elements):
            r_count = reactant_elements.get(element, 0)
            p_count = product_elements.get(element, 0)
            if r_count != p_count:
                errors.append(
                    f"Element {element} not conserved: {r_count} in reactants, {p_count} in products"
                )

        for am in result.atom_mappings:
            r_atom = reaction.reactants[am.reactant_mol_idx].GetAtomWithIdx(
                am.reactant_atom_idx
            )
            p_atom = reaction.products[am.product_mol_idx].GetAtomWithIdx(
                am.product_atom_idx
            )
            if r_atom.GetAtomicNum() != p_atom.GetAtomicNum():
                errors.append(
                    f"Mapping mismatch: {r_atom.GetSymbol()} mapped to {p_atom.GetSymbol()}"
                )

        total_reactant_atoms = sum(mol.GetNumAtoms() for mol in reaction.reactants)
        total_product_atoms = sum(mol.GetNumAtoms() for mol in reaction.products)
        mapped_atoms = len(result.atom_mappings)

        if mapped_atoms < min(total_reactant_atoms, total_product_atoms):
            errors.append(
                f"Incomplete mapping: {mapped_atoms} atoms mapped out of "
                f"{total_reactant_atoms} reactant atoms and {total_product_atoms} product atoms"
            )

        is_valid = len(errors) == 0
        return is_valid, errors
