"""Tests for the batch entry point."""

import logging

import pytest

from mcs_atom_mapper import map_reactions
from mcs_atom_mapper.mappers.reaction_mapper import ReactionMapper
from mcs_atom_mapper.utils.logging_config import LOGGER_NAME, logger, set_log_level


class EchoMapper(ReactionMapper):
    """Returns each reaction unchanged and records the batches it receives."""

    def __init__(self, name="echo"):
        super().__init__("echo", name, 1)
        self.batches = []

    def map_reaction(self, reaction_smiles):
        return {"mapping": reaction_smiles, "additional_info": [{}]}

    def map_reactions(self, reaction_smiles_list):
        self.batches.append(list(reaction_smiles_list))
        return super().map_reactions(reaction_smiles_list)


class TestMapReactions:
    def test_single_string(self):
        out = map_reactions("CCO>>CC=O", [EchoMapper()])
        assert out == {
            "echo": {"out": [{"mapping": "CCO>>CC=O", "additional_info": [{}]}]}
        }

    def test_batches(self):
        mapper = EchoMapper()
        reactions = ["C>>C", "CC>>CC", "CCC>>CCC"]
        out = map_reactions(reactions, [mapper], batch_size=2)
        assert mapper.batches == [["C>>C", "CC>>CC"], ["CCC>>CCC"]]
        assert [r["mapping"] for r in out["echo"]["out"]] == reactions

    def test_duplicates_removed_in_order(self):
        out = map_reactions(["CC>>CC", "C>>C", "CC>>CC"], [EchoMapper()])
        assert [r["mapping"] for r in out["echo"]["out"]] == ["CC>>CC", "C>>C"]

    def test_several_mappers(self):
        out = map_reactions(["C>>C"], [EchoMapper("a"), EchoMapper("b")])
        assert list(out) == ["a", "b"]

    def test_default_mapper(self):
        out = map_reactions(["CCO>>CC=O"])
        mapped = out["mcs_default"]["out"]
        assert len(mapped) == 1
        assert ":3]" in mapped[0]["mapping"]

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"reaction_list": []},
            {"reaction_list": ["C>>C", 1]},
            {"reaction_list": ("C>>C",)},
            {"reaction_list": ["C>>C"], "mappers_list": []},
            {"reaction_list": ["C>>C"], "mappers_list": ["mapper"]},
            {"reaction_list": ["C>>C"], "mappers_list": [EchoMapper(), EchoMapper()]},
            {"reaction_list": ["C>>C"], "mappers_list": [EchoMapper()], "batch_size": 0},
            {"reaction_list": ["C>>C"], "mappers_list": [EchoMapper()], "batch_size": 1001},
        ],
    )
    def test_invalid_input(self, kwargs):
        with pytest.raises(ValueError):
            map_reactions(**kwargs)

    def test_batch_size_type(self):
        with pytest.raises(TypeError):
            map_reactions(["C>>C"], [EchoMapper()], batch_size="10")


def test_set_log_level():
    previous = logger.level
    try:
        set_log_level("debug")
        assert logging.getLogger(LOGGER_NAME).level == logging.DEBUG
        set_log_level(logging.ERROR)
        assert logger.level == logging.ERROR
    finally:
        logger.setLevel(previous)
