"""
McGregor-style extension of seed mappings.

Seeds from the subgraph search are grown by backtracking over every still
unmapped source atom, trying each compatible target atom and the option of
leaving the atom unmapped. Pairs are checked against all committed pairs with
the induced rule, so the grown mappings may span several disconnected
fragments of a reaction side.
"""

from collections import deque
from typing import Dict, Iterable, List, Optional, Sequence

from mcs_atom_mapper.exceptions import IndexResolutionError
from mcs_atom_mapper.mappers.data_classes import IndexMapping
from mcs_atom_mapper.mappers.mcs.aggregator import MappingAggregator
from mcs_atom_mapper.mappers.mcs.matching import MatchingPolicy, pair_is_feasible
from mcs_atom_mapper.mappers.mcs.subgraph_search import DEFAULT_MAX_MAPPINGS
from mcs_atom_mapper.utils.cancellation import CancellationToken, check
from mcs_atom_mapper.utils.graph_utils import MolecularGraph
from mcs_atom_mapper.utils.logging_config import logger


class ExtensionSearch:
    """
    Grow seed mappings into the largest compatible common subgraphs.

    The smaller of the two graphs is always searched from: when the source is
    larger than the target, seeds are inverted, the search runs from target to
    source and the results are inverted back.
    """

    def __init__(
        self,
        source: MolecularGraph,
        target: MolecularGraph,
        policy: MatchingPolicy,
        token: Optional[CancellationToken] = None,
        max_mappings: int = DEFAULT_MAX_MAPPINGS,
    ):
        if max_mappings < 1:
            raise ValueError("Invalid input: max_mappings must be at least 1.")
        self.source = source
        self.target = target
        self.policy = policy
        self.token = token
        self.max_mappings = max_mappings

        self._inverted = source.num_atoms > target.num_atoms
        if self._inverted:
            self._from, self._to = target, source
        else:
            self._from, self._to = source, target
        self._aggregator = MappingAggregator("extension")

    def extend(self, seeds: Iterable[IndexMapping]) -> List[IndexMapping]:
        """
        Extend every seed and keep the best-size results.

        Args:
            seeds: Mappings from source indices to target indices

        Returns:
            Distinct extended mappings of the best size reached, in source
            to target orientation. Empty if a seed index cannot be resolved.
        """
        self._aggregator = MappingAggregator("extension")
        seeds = list(seeds)
        try:
            for seed in seeds:
                self._validate_seed(seed)
            for seed in seeds:
                oriented = seed.inverted() if self._inverted else seed
                self._extend_seed(oriented)
        except IndexResolutionError as e:
            logger.error(f"Extension search aborted: {e}")
            return []

        results = list(self._aggregator.result().mappings)
        if self._inverted:
            results = [mapping.inverted() for mapping in results]
        logger.debug(
            f"Extension of {len(seeds)} seed(s) reached size "
            f"{self._aggregator.best_size} with {len(results)} mapping(s)"
        )
        return results

    def _validate_seed(self, seed: IndexMapping) -> None:
        for source_idx, target_idx in seed:
            self.source.get_atom(source_idx)
            self.target.get_atom(target_idx)

    def _search_order(self, core: Dict[int, int]) -> List[int]:
        """Unmapped atoms, those reachable from the seed first."""
        graph = self._from
        order: List[int] = []
        visited = set(core)
        queue = deque(sorted(core))
        while queue:
            current = queue.popleft()
            for neighbor in sorted(graph.get_neighbors(current)):
                if neighbor not in visited:
                    visited.add(neighbor)
                    order.append(neighbor)
                    queue.append(neighbor)
        rest = [i for i in range(graph.num_atoms) if i not in visited]
        rest.sort(key=lambda i: (-graph.degree(i), i))
        return order + rest

    def _extend_seed(self, seed: IndexMapping) -> None:
        core_from: Dict[int, int] = seed.as_dict()
        core_to: Dict[int, int] = {t: s for s, t in seed}
        order = self._search_order(core_from)
        domains = {
            s: [
                t
                for t in range(self._to.num_atoms)
                if t not in core_to
                and self.policy.atoms_match(self._from.get_atom(s), self._to.get_atom(t))
            ]
            for s in order
        }
        self._backtrack(core_from, core_to, order, domains, 0)

    def _upper_bound(
        self,
        core_from: Dict[int, int],
        core_to: Dict[int, int],
        order: Sequence[int],
        domains: Dict[int, List[int]],
        position: int,
    ) -> int:
        remaining = sum(
            1
            for s in order[position:]
            if any(t not in core_to for t in domains[s])
        )
        size = len(core_from)
        return size + min(remaining, self._to.num_atoms - size)

    def _backtrack(
        self,
        core_from: Dict[int, int],
        core_to: Dict[int, int],
        order: Sequence[int],
        domains: Dict[int, List[int]],
        position: int,
    ) -> None:
        check(self.token)
        best = self._aggregator.best_size
        full = len(self._aggregator) >= self.max_mappings
        bound = self._upper_bound(core_from, core_to, order, domains, position)
        if bound < best or (full and bound <= best):
            return

        if position == len(order):
            if not full or len(core_from) > best:
                self._aggregator.add(IndexMapping.from_dict(core_from))
            return

        source_idx = order[position]
        for target_idx in domains[source_idx]:
            if not pair_is_feasible(
                self.policy,
                self._from,
                self._to,
                core_from,
                core_to,
                source_idx,
                target_idx,
                induced=True,
            ):
                continue
            core_from[source_idx] = target_idx
            core_to[target_idx] = source_idx
            self._backtrack(core_from, core_to, order, domains, position + 1)
            del core_from[source_idx]
            del core_to[target_idx]

        self._backtrack(core_from, core_to, order, domains, position + 1)


def extend_mappings(
    seeds: Iterable[IndexMapping],
    source: MolecularGraph,
    target: MolecularGraph,
    policy: MatchingPolicy,
    token: Optional[CancellationToken] = None,
    max_mappings: int = DEFAULT_MAX_MAPPINGS,
) -> List[IndexMapping]:
    """Run an ExtensionSearch over ``seeds``."""
    return ExtensionSearch(
        source, target, policy, token=token, max_mappings=max_mappings
    ).extend(seeds)
