"""Tests for the concurrent multi-policy orchestrator."""

import threading
import time

import pytest

from conftest import reaction_from_smiles
from mcs_atom_mapper.mappers.data_classes import (
    MappingAlgorithm,
    StandardizationFailurePolicy,
)
from mcs_atom_mapper.mappers.mcs import orchestrator
from mcs_atom_mapper.mappers.mcs.algorithms import map_with_policy
from mcs_atom_mapper.mappers.mcs.matching import MAX_POLICY
from mcs_atom_mapper.mappers.mcs.orchestrator import (
    POLICY_ORDER,
    ConcurrentMappingTool,
    map_reaction_concurrently,
    select_policies,
)
from mcs_atom_mapper.utils.cache import ResultCache
from mcs_atom_mapper.utils.chem_utils import RDKitStandardizer, Standardizer

ALL_POLICIES = [
    MappingAlgorithm.MIN,
    MappingAlgorithm.MAX,
    MappingAlgorithm.MIXTURE,
    MappingAlgorithm.RINGS,
]


class FailingStandardizer(Standardizer):
    def standardize(self, reaction):
        raise RuntimeError("cannot standardize")


class CountingCache(ResultCache):
    def __init__(self):
        super().__init__()
        self.cleanups = 0

    def cleanup(self):
        self.cleanups += 1
        super().cleanup()


def mapping_threads_alive():
    return [
        t for t in threading.enumerate() if t.name.startswith("mcs-mapping")
    ]


@pytest.mark.parametrize(
    "check_complex, expected",
    [
        (True, ALL_POLICIES),
        (False, ALL_POLICIES[:3]),
    ],
)
def test_select_policies(check_complex, expected):
    assert select_policies(check_complex) == expected


class TestConcurrentMappingTool:
    def test_all_policies_in_order(self, oxidation):
        tool = ConcurrentMappingTool(oxidation, RDKitStandardizer())
        assert list(tool.solutions) == ALL_POLICIES
        assert tuple(tool.solutions) == POLICY_ORDER
        for algorithm, result in tool.solutions.items():
            assert result.algorithm_used is algorithm
            assert result.standardized

    def test_rings_skipped_without_complex_checks(self, oxidation):
        tool = ConcurrentMappingTool(oxidation, check_complex=False)
        assert list(tool.solutions) == ALL_POLICIES[:3]

    def test_solutions_are_read_only(self, oxidation):
        tool = ConcurrentMappingTool(oxidation, check_complex=False)
        with pytest.raises(TypeError):
            tool.solutions[MappingAlgorithm.MIN] = None

    def test_disjoint_reaction(self, disjoint_reaction):
        tool = ConcurrentMappingTool(disjoint_reaction)
        assert list(tool.solutions) == ALL_POLICIES
        for result in tool.solutions.values():
            assert not result.is_subgraph
            assert result.atom_mappings == frozenset()

    def test_identity_reaction_is_subgraph_everywhere(self, identity_reaction):
        tool = ConcurrentMappingTool(identity_reaction)
        for result in tool.solutions.values():
            assert result.is_subgraph
            assert len(result.atom_mappings) == 3

    def test_policy_override(self, oxidation):
        tool = ConcurrentMappingTool(
            oxidation,
            check_complex=False,
            policies={MappingAlgorithm.MIN: MAX_POLICY},
        )
        assert len(tool.solutions[MappingAlgorithm.MIN].atom_mappings) == 3

    def test_input_reaction_untouched(self, oxidation):
        ConcurrentMappingTool(oxidation, RDKitStandardizer(), remove_hydrogen=False)
        assert [mol.GetNumAtoms() for mol in oxidation.reactants] == [3]
        assert [mol.GetNumAtoms() for mol in oxidation.products] == [3]


class TestContainment:
    def test_timed_out_policy_is_omitted(self, oxidation, monkeypatch):
        def slow_min(task, **kwargs):
            if task.algorithm is MappingAlgorithm.MIN:
                task.token.start_clock(task.timeout)
                task.token.wait(5)
                task.token.raise_if_cancelled()
            return map_with_policy(task, **kwargs)

        monkeypatch.setattr(orchestrator, "run_policy_task", slow_min)
        cache = CountingCache()
        tool = ConcurrentMappingTool(oxidation, timeout=1.0, max_workers=4, cache=cache)
        assert list(tool.solutions) == ALL_POLICIES[1:]
        assert cache.cleanups == 1
        assert len(cache) == 0

    def test_real_search_preempted_at_deadline(self):
        reaction = reaction_from_smiles(
            "CCCCCCCCCCCCCCCCCCCC>>C=CCCCCCCCCCCCCCCCCCC"
        )
        start = time.monotonic()
        tool = ConcurrentMappingTool(
            reaction,
            remove_hydrogen=False,
            check_complex=False,
            timeout=0.5,
            max_workers=3,
        )
        assert dict(tool.solutions) == {}
        assert time.monotonic() - start < 5.0

        deadline = time.monotonic() + 5.0
        while mapping_threads_alive() and time.monotonic() < deadline:
            time.sleep(0.05)
        assert not mapping_threads_alive()

    def test_failed_policy_is_omitted(self, oxidation, monkeypatch):
        def failing_max(task, **kwargs):
            if task.algorithm is MappingAlgorithm.MAX:
                raise RuntimeError("boom")
            return map_with_policy(task, **kwargs)

        monkeypatch.setattr(orchestrator, "run_policy_task", failing_max)
        tool = ConcurrentMappingTool(oxidation)
        assert MappingAlgorithm.MAX not in tool.solutions
        assert list(tool.solutions) == [
            MappingAlgorithm.MIN,
            MappingAlgorithm.MIXTURE,
            MappingAlgorithm.RINGS,
        ]

    def test_standardization_failure_fails_every_task(self, oxidation):
        tool = ConcurrentMappingTool(
            oxidation,
            FailingStandardizer(),
            on_standardization_failure=StandardizationFailurePolicy.FAIL_TASK,
        )
        assert dict(tool.solutions) == {}

    def test_standardization_failure_continues(self, oxidation):
        tool = ConcurrentMappingTool(oxidation, FailingStandardizer())
        assert list(tool.solutions) == ALL_POLICIES
        assert all(not result.standardized for result in tool.solutions.values())

    def test_cache_cleaned_once_per_run(self, oxidation):
        cache = CountingCache()
        ConcurrentMappingTool(oxidation, cache=cache)
        assert cache.cleanups == 1
        assert len(cache) == 0


class TestArguments:
    def test_reaction_must_be_parsed(self):
        with pytest.raises(TypeError):
            ConcurrentMappingTool("CCO>>CC=O")

    @pytest.mark.parametrize("timeout", [0, -1.0, "10"])
    def test_invalid_timeout(self, oxidation, timeout):
        with pytest.raises(ValueError):
            ConcurrentMappingTool(oxidation, timeout=timeout)

    @pytest.mark.parametrize("max_workers", [0, -2, 1.5])
    def test_invalid_max_workers(self, oxidation, max_workers):
        with pytest.raises(ValueError):
            ConcurrentMappingTool(oxidation, max_workers=max_workers)

    def test_invalid_failure_policy(self, oxidation):
        with pytest.raises(TypeError):
            ConcurrentMappingTool(oxidation, on_standardization_failure="continue")

    def test_no_timeout(self, oxidation):
        tool = ConcurrentMappingTool(oxidation, timeout=None, max_workers=1)
        assert list(tool.solutions) == ALL_POLICIES


def test_map_reaction_concurrently(oxidation):
    solutions = map_reaction_concurrently(oxidation, check_complex=False, max_workers=2)
    assert list(solutions) == ALL_POLICIES[:3]
    assert len(solutions[MappingAlgorithm.MAX].atom_mappings) == 3
