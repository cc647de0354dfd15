"""
Maximum common subgraph pipeline.

``find_mcs`` runs the subgraph search, decides whether the extension search
can improve on its candidates, and aggregates the results. Solutions are
memoized in a ResultCache when one is given.
"""

from typing import Hashable, Optional

from mcs_atom_mapper.mappers.data_classes import MCSSolution, SearchMode
from mcs_atom_mapper.mappers.mcs.aggregator import MappingAggregator
from mcs_atom_mapper.mappers.mcs.extension_search import extend_mappings
from mcs_atom_mapper.mappers.mcs.matching import MatchingPolicy
from mcs_atom_mapper.mappers.mcs.subgraph_search import (
    DEFAULT_MAX_MAPPINGS,
    SubgraphResult,
    find_subgraph_mappings,
)
from mcs_atom_mapper.utils.cache import ResultCache
from mcs_atom_mapper.utils.cancellation import CancellationToken
from mcs_atom_mapper.utils.graph_utils import MolecularGraph, common_atom_upper_bound
from mcs_atom_mapper.utils.logging_config import logger


def mcs_cache_key(
    source: MolecularGraph,
    target: MolecularGraph,
    policy: MatchingPolicy,
    mode: SearchMode,
    max_mappings: int = DEFAULT_MAX_MAPPINGS,
) -> Hashable:
    return ("mcs", source.signature, target.signature, policy, mode, max_mappings)


def extension_is_feasible(
    source: MolecularGraph,
    target: MolecularGraph,
    mode: SearchMode,
    raw: SubgraphResult,
    best_size: int,
) -> bool:
    """
    Decide whether the extension search could improve on the raw candidates.

    Args:
        source: Source graph
        target: Target graph
        mode: Search mode of the run
        raw: Output of the subgraph search
        best_size: Best size among the raw candidates

    Returns:
        True if extension should run
    """
    if mode is not SearchMode.ALL or source.is_query:
        return False
    if raw.is_subgraph or not raw.mappings:
        return False
    return common_atom_upper_bound(source, target) > best_size


def find_mcs(
    source: MolecularGraph,
    target: MolecularGraph,
    policy: MatchingPolicy,
    mode: SearchMode = SearchMode.ALL,
    token: Optional[CancellationToken] = None,
    cache: Optional[ResultCache] = None,
    max_mappings: int = DEFAULT_MAX_MAPPINGS,
) -> MCSSolution:
    """
    Find the maximum common subgraph mappings between two graphs.

    Args:
        source: Graph whose atoms are mapped, possibly a query graph
        target: Graph the source atoms are mapped onto
        policy: Atom and bond compatibility rules
        mode: FIRST for a substructure check, ALL for the full MCS
        token: Optional cancellation token
        cache: Optional cache shared by the tasks of one run
        max_mappings: Maximum number of equal-size mappings kept

    Returns:
        MCSSolution with the subgraph flag and the best mappings
    """
    if cache is None:
        return _run_pipeline(source, target, policy, mode, token, max_mappings)
    key = mcs_cache_key(source, target, policy, mode, max_mappings)
    return cache.get_or_compute(
        key,
        lambda: _run_pipeline(source, target, policy, mode, token, max_mappings),
    )


def _run_pipeline(
    source: MolecularGraph,
    target: MolecularGraph,
    policy: MatchingPolicy,
    mode: SearchMode,
    token: Optional[CancellationToken],
    max_mappings: int,
) -> MCSSolution:
    logger.debug(
        f"MCS search {source!r} -> {target!r} ({policy.describe()}, {mode.value})"
    )
    raw = find_subgraph_mappings(
        source, target, policy, mode=mode, token=token, max_mappings=max_mappings
    )
    raw_aggregator = MappingAggregator("raw")
    raw_aggregator.add_all(raw.mappings)
    raw_result = raw_aggregator.result()

    if not extension_is_feasible(source, target, mode, raw, raw_result.best_size):
        return MCSSolution(is_subgraph=raw.is_subgraph, aggregation=raw_result)

    extended = extend_mappings(
        raw_result.mappings,
        source,
        target,
        policy,
        token=token,
        max_mappings=max_mappings,
    )
    extension_aggregator = MappingAggregator("extension")
    extension_aggregator.add_all(extended)
    if extension_aggregator.best_size > raw_result.best_size:
        logger.debug(
            f"Extension improved best size {raw_result.best_size} -> "
            f"{extension_aggregator.best_size}"
        )
        return MCSSolution(
            is_subgraph=False,
            aggregation=extension_aggregator.result(),
            extended=True,
        )
    return MCSSolution(is_subgraph=False, aggregation=raw_result)
