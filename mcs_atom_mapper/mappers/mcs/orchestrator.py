"""
Concurrent multi-policy mapping.

ConcurrentMappingTool runs one mapping task per policy on a thread pool,
waits for each with a fixed timeout and publishes the results that completed
as a read-only table. A policy whose task times out or fails is left out of
the table; nothing is retried.
"""

import os
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple

from mcs_atom_mapper.mappers.data_classes import (
    MappingAlgorithm,
    MappingResult,
    ReactionComponents,
    StandardizationFailurePolicy,
)
from mcs_atom_mapper.mappers.mcs.algorithms import PolicyTask, map_with_policy
from mcs_atom_mapper.mappers.mcs.matching import MatchingPolicy, get_policy
from mcs_atom_mapper.mappers.mcs.subgraph_search import DEFAULT_MAX_MAPPINGS
from mcs_atom_mapper.scoring import MappingScorer
from mcs_atom_mapper.utils.cache import ResultCache
from mcs_atom_mapper.utils.chem_utils import Standardizer
from mcs_atom_mapper.utils.logging_config import logger

DEFAULT_TASK_TIMEOUT = 600.0

POLICY_ORDER: Tuple[MappingAlgorithm, ...] = (
    MappingAlgorithm.MIN,
    MappingAlgorithm.MAX,
    MappingAlgorithm.MIXTURE,
    MappingAlgorithm.RINGS,
)


def run_policy_task(task: PolicyTask, **kwargs) -> MappingResult:
    """Entry point executed by the worker threads."""
    return map_with_policy(task, **kwargs)


def select_policies(check_complex: bool) -> List[MappingAlgorithm]:
    """MIN, MAX and MIXTURE always; RINGS only when complex checks are on."""
    policies = [MappingAlgorithm.MIN, MappingAlgorithm.MAX, MappingAlgorithm.MIXTURE]
    if check_complex:
        policies.append(MappingAlgorithm.RINGS)
    return policies


class ConcurrentMappingTool:
    """
    Runs every applicable mapping policy on a reaction concurrently.

    The run happens on construction; ``solutions`` holds the results.

    Example usage:
        >>> tool = ConcurrentMappingTool(reaction, RDKitStandardizer())
        >>> for algorithm, result in tool.solutions.items():
        ...     print(algorithm.name, result.mapped_smiles)
    """

    def __init__(
        self,
        reaction: ReactionComponents,
        standardizer: Optional[Standardizer] = None,
        remove_hydrogen: bool = True,
        check_complex: bool = True,
        timeout: Optional[float] = DEFAULT_TASK_TIMEOUT,
        max_workers: Optional[int] = None,
        cache: Optional[ResultCache] = None,
        on_standardization_failure: StandardizationFailurePolicy = StandardizationFailurePolicy.CONTINUE,
        policies: Optional[Mapping[MappingAlgorithm, MatchingPolicy]] = None,
        max_mappings: int = DEFAULT_MAX_MAPPINGS,
        scorer: Optional[MappingScorer] = None,
    ):
        """
        Initialize the tool and run the mapping tasks.

        Args:
            reaction: Parsed reaction, shared read-only by the tasks
            standardizer: Optional standardizer each task applies to its own copy
            remove_hydrogen: Remove explicit hydrogens if True, add them otherwise
            check_complex: Also run the ring-sensitive RINGS policy
            timeout: Seconds to wait for each task, None waits indefinitely
            max_workers: Thread pool size, the number of processors by default
            cache: Cache shared by the tasks, a fresh one by default
            on_standardization_failure: What a task does when standardization fails
            policies: Override of the matching policy presets
            max_mappings: Maximum number of equal-size mappings kept by a search
            scorer: Optional scorer for evaluating mappings
        """
        if not isinstance(reaction, ReactionComponents):
            raise TypeError("Invalid input: reaction must be a ReactionComponents instance.")
        if timeout is not None and (
            not isinstance(timeout, (int, float)) or timeout <= 0
        ):
            raise ValueError("Invalid input: timeout must be a positive number or None.")
        if max_workers is not None and (
            not isinstance(max_workers, int) or max_workers <= 0
        ):
            raise ValueError("Invalid input: max_workers must be a positive integer.")
        if not isinstance(on_standardization_failure, StandardizationFailurePolicy):
            raise TypeError(
                "Invalid input: on_standardization_failure must be a StandardizationFailurePolicy."
            )

        self.reaction = reaction
        self.standardizer = standardizer
        self.remove_hydrogen = remove_hydrogen
        self.check_complex = check_complex
        self.timeout = timeout
        self.max_workers = max_workers or os.cpu_count() or 1
        self.cache = cache if cache is not None else ResultCache()
        self.on_standardization_failure = on_standardization_failure
        self.policies = policies
        self.max_mappings = max_mappings
        self.scorer = scorer

        self._solutions: Mapping[MappingAlgorithm, MappingResult] = self._run()

    @property
    def solutions(self) -> Mapping[MappingAlgorithm, MappingResult]:
        """Read-only table of the policies that completed, in policy order."""
        return self._solutions

    def _make_tasks(self) -> List[PolicyTask]:
        return [
            PolicyTask(
                algorithm=algorithm,
                policy=get_policy(algorithm, self.policies),
                reaction=self.reaction,
                timeout=self.timeout,
            )
            for algorithm in select_policies(self.check_complex)
        ]

    def _run(self) -> Mapping[MappingAlgorithm, MappingResult]:
        tasks = self._make_tasks()
        results: Dict[MappingAlgorithm, MappingResult] = {}
        executor = ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix="mcs-mapping"
        )
        try:
            futures: List[Tuple[PolicyTask, Future]] = [
                (
                    task,
                    executor.submit(
                        run_policy_task,
                        task,
                        standardizer=self.standardizer,
                        remove_hydrogen=self.remove_hydrogen,
                        cache=self.cache,
                        on_standardization_failure=self.on_standardization_failure,
                        max_mappings=self.max_mappings,
                        scorer=self.scorer,
                    ),
                )
                for task in tasks
            ]
            for task, future in futures:
                result = self._collect(task, future)
                if result is not None:
                    results[task.algorithm] = result
        finally:
            executor.shutdown(wait=False, cancel_futures=True)
            self.cache.cleanup()

        logger.info(
            f"Mapping run finished: {len(results)}/{len(tasks)} policies completed"
        )
        ordered = {
            algorithm: results[algorithm]
            for algorithm in POLICY_ORDER
            if algorithm in results
        }
        return MappingProxyType(ordered)

    def _collect(self, task: PolicyTask, future: Future) -> Optional[MappingResult]:
        name = task.algorithm.name
        try:
            return future.result(timeout=self.timeout)
        except FutureTimeoutError:
            logger.error(f"{name} mapping timed out after {self.timeout} s")
        except Exception as e:
            logger.error(f"{name} mapping failed: {e}")
        task.token.cancel()
        future.cancel()
        return None


def map_reaction_concurrently(
    reaction: ReactionComponents,
    standardizer: Optional[Standardizer] = None,
    remove_hydrogen: bool = True,
    check_complex: bool = True,
    **kwargs,
) -> Mapping[MappingAlgorithm, MappingResult]:
    """
    Run every applicable policy on a reaction and return the result table.

    Args:
        reaction: Parsed reaction
        standardizer: Optional standardizer
        remove_hydrogen: Remove explicit hydrogens if True, add them otherwise
        check_complex: Also run the ring-sensitive RINGS policy
        **kwargs: Further ConcurrentMappingTool options

    Returns:
        Read-only table of MappingResult by algorithm
    """
    return ConcurrentMappingTool(
        reaction,
        standardizer,
        remove_hydrogen=remove_hydrogen,
        check_complex=check_complex,
        **kwargs,
    ).solutions
