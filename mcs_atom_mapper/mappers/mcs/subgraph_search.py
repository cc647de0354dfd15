"""
VF2-style subgraph search.

SubgraphSearch maps the atoms of a source graph onto a target graph by
depth-first state-space search. It first looks for complete mappings, where
every source atom is mapped (substructure matching). In ``SearchMode.ALL``,
when no complete mapping exists and the source is concrete, it falls back to
enumerating the largest connected common induced subgraphs; those are the
seeds the extension search later tries to grow.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Set, Tuple

from mcs_atom_mapper.exceptions import IndexResolutionError
from mcs_atom_mapper.mappers.data_classes import IndexMapping, SearchMode
from mcs_atom_mapper.mappers.mcs.matching import MatchingPolicy, pair_is_feasible
from mcs_atom_mapper.utils.cancellation import CancellationToken, check
from mcs_atom_mapper.utils.graph_utils import MolecularGraph
from mcs_atom_mapper.utils.logging_config import logger

DEFAULT_MAX_MAPPINGS = 500


@dataclass(frozen=True)
class SubgraphResult:
    """
    Output of a subgraph search.

    Attributes:
        is_subgraph: True if a mapping covers every source atom
        mappings: Maximum-size mappings found
    """

    is_subgraph: bool
    mappings: Tuple[IndexMapping, ...] = ()


class _SearchState:
    """Partial mapping owned by one search call."""

    def __init__(self):
        self.core_source: Dict[int, int] = {}
        self.core_target: Dict[int, int] = {}

    @property
    def size(self) -> int:
        return len(self.core_source)

    def add(self, source_idx: int, target_idx: int) -> None:
        self.core_source[source_idx] = target_idx
        self.core_target[target_idx] = source_idx

    def remove(self, source_idx: int, target_idx: int) -> None:
        del self.core_source[source_idx]
        del self.core_target[target_idx]

    def snapshot(self) -> IndexMapping:
        return IndexMapping.from_dict(self.core_source)


class SubgraphSearch:
    """
    Backtracking search for source-to-target atom mappings.

    Example usage:
        >>> search = SubgraphSearch(source, target, MAX_POLICY)
        >>> result = search.search(SearchMode.FIRST)
        >>> result.is_subgraph
    """

    def __init__(
        self,
        source: MolecularGraph,
        target: MolecularGraph,
        policy: MatchingPolicy,
        token: Optional[CancellationToken] = None,
        max_mappings: int = DEFAULT_MAX_MAPPINGS,
    ):
        """
        Initialize the search.

        Args:
            source: Graph whose atoms are mapped, possibly a query graph
            target: Graph the source atoms are mapped onto
            policy: Atom and bond compatibility rules
            token: Optional cancellation token checked at every step
            max_mappings: Maximum number of equal-size mappings kept
        """
        if max_mappings < 1:
            raise ValueError("Invalid input: max_mappings must be at least 1.")
        self.source = source
        self.target = target
        self.policy = policy
        self.token = token
        self.max_mappings = max_mappings

        self._results: List[IndexMapping] = []
        self._seen: Set[IndexMapping] = set()
        self._best_size = 0

    def search(self, mode: SearchMode = SearchMode.ALL) -> SubgraphResult:
        """
        Run the search.

        Args:
            mode: FIRST stops at the first complete mapping, ALL collects
                every maximum mapping

        Returns:
            SubgraphResult with the subgraph flag and the mappings found
        """
        self._reset()
        try:
            return self._search(mode)
        except IndexResolutionError as e:
            logger.error(f"Subgraph search aborted on {self.source!r}: {e}")
            return SubgraphResult(is_subgraph=False)

    def _reset(self) -> None:
        self._results = []
        self._seen = set()
        self._best_size = 0

    def _search(self, mode: SearchMode) -> SubgraphResult:
        n_source = self.source.num_atoms
        n_target = self.target.num_atoms
        if n_source == 0 or n_target == 0:
            return SubgraphResult(is_subgraph=False)

        if n_source <= n_target:
            self._match_complete(_SearchState(), stop_at_first=mode is SearchMode.FIRST)
            if self._results:
                logger.debug(
                    f"{len(self._results)} complete mapping(s) of {n_source} atoms found"
                )
                return SubgraphResult(is_subgraph=True, mappings=tuple(self._results))
        else:
            logger.debug(
                f"Source has {n_source} atoms, target {n_target}: not a subgraph"
            )

        if mode is SearchMode.FIRST or self.source.is_query:
            return SubgraphResult(is_subgraph=False)

        self._match_partial()
        return SubgraphResult(is_subgraph=False, mappings=tuple(self._results))

    def _record(self, state: _SearchState) -> None:
        size = state.size
        if size == 0 or size < self._best_size:
            return
        if size > self._best_size:
            self._best_size = size
            self._results = []
            self._seen = set()
        if len(self._results) >= self.max_mappings:
            return
        mapping = state.snapshot()
        if mapping not in self._seen:
            self._seen.add(mapping)
            self._results.append(mapping)

    @property
    def _full(self) -> bool:
        return len(self._results) >= self.max_mappings

    def _next_source_node(self, state: _SearchState) -> int:
        """Pick the unmapped source atom with most mapped neighbors."""
        best_key = None
        best_idx = -1
        for idx in range(self.source.num_atoms):
            if idx in state.core_source:
                continue
            neighbors = self.source.get_neighbors(idx)
            mapped = sum(1 for n in neighbors if n in state.core_source)
            key = (mapped, len(neighbors), -idx)
            if best_key is None or key > best_key:
                best_key = key
                best_idx = idx
        return best_idx

    def _candidate_targets(self, state: _SearchState, source_idx: int) -> List[int]:
        """Unmapped target atoms that could be the image of ``source_idx``."""
        for neighbor in self.source.get_neighbors(source_idx):
            if neighbor in state.core_source:
                anchor = state.core_source[neighbor]
                return sorted(
                    t
                    for t in self.target.get_neighbors(anchor)
                    if t not in state.core_target
                )
        return [t for t in range(self.target.num_atoms) if t not in state.core_target]

    def _match_complete(self, state: _SearchState, stop_at_first: bool) -> bool:
        """
        Extend ``state`` until every source atom is mapped.

        Returns:
            True when the search should stop
        """
        check(self.token)
        if state.size == self.source.num_atoms:
            self._record(state)
            return stop_at_first or self._full

        source_idx = self._next_source_node(state)
        check_degree = not self.source.is_query
        for target_idx in self._candidate_targets(state, source_idx):
            if not pair_is_feasible(
                self.policy,
                self.source,
                self.target,
                state.core_source,
                state.core_target,
                source_idx,
                target_idx,
                check_degree=check_degree,
            ):
                continue
            state.add(source_idx, target_idx)
            stop = self._match_complete(state, stop_at_first)
            state.remove(source_idx, target_idx)
            if stop:
                return True
        return False

    def _match_partial(self) -> None:
        """Enumerate the largest connected common induced subgraphs."""
        n_source = self.source.num_atoms
        roots = sorted(
            range(n_source), key=lambda i: (-self.source.degree(i), i)
        )
        excluded: Set[int] = set()
        state = _SearchState()
        for root in roots:
            check(self.token)
            available = min(n_source - len(excluded), self.target.num_atoms)
            if available < self._best_size or (
                self._full and available <= self._best_size
            ):
                break
            for target_idx in range(self.target.num_atoms):
                if not self.policy.atoms_match(
                    self.source.get_atom(root), self.target.get_atom(target_idx)
                ):
                    continue
                state.add(root, target_idx)
                self._grow(state, excluded)
                state.remove(root, target_idx)
            # every later subgraph containing ``root`` was already enumerated
            excluded.add(root)

    def _frontier_node(self, state: _SearchState, excluded: Set[int]) -> int:
        best_key = None
        best_idx = -1
        for mapped in state.core_source:
            for idx in self.source.get_neighbors(mapped):
                if idx in state.core_source or idx in excluded:
                    continue
                neighbors = self.source.get_neighbors(idx)
                key = (
                    sum(1 for n in neighbors if n in state.core_source),
                    len(neighbors),
                    -idx,
                )
                if best_key is None or key > best_key:
                    best_key = key
                    best_idx = idx
        return best_idx

    def _grow(self, state: _SearchState, excluded: Set[int]) -> None:
        check(self.token)
        remaining = self.source.num_atoms - state.size - len(excluded)
        bound = state.size + min(remaining, self.target.num_atoms - state.size)
        if bound < self._best_size or (self._full and bound <= self._best_size):
            return

        source_idx = self._frontier_node(state, excluded)
        if source_idx < 0:
            self._record(state)
            return

        for target_idx in self._candidate_targets(state, source_idx):
            if not pair_is_feasible(
                self.policy,
                self.source,
                self.target,
                state.core_source,
                state.core_target,
                source_idx,
                target_idx,
                induced=True,
            ):
                continue
            state.add(source_idx, target_idx)
            self._grow(state, excluded)
            state.remove(source_idx, target_idx)

        excluded.add(source_idx)
        self._grow(state, excluded)
        excluded.remove(source_idx)


def find_subgraph_mappings(
    source: MolecularGraph,
    target: MolecularGraph,
    policy: MatchingPolicy,
    mode: SearchMode = SearchMode.ALL,
    token: Optional[CancellationToken] = None,
    max_mappings: int = DEFAULT_MAX_MAPPINGS,
) -> SubgraphResult:
    """Run a SubgraphSearch with the given arguments."""
    return SubgraphSearch(
        source, target, policy, token=token, max_mappings=max_mappings
    ).search(mode)
