from typing import Any, Dict, List, Optional

from mcs_atom_mapper.mappers.mcs.mcs_mapper import MCSReactionMapper
from mcs_atom_mapper.mappers.reaction_mapper import ReactionMapper
from mcs_atom_mapper.utils.logging_config import logger


def map_reactions_using_mappers(
    reaction_list: List[str],
    mappers_list: List[ReactionMapper],
    batch_size: int,
) -> Dict[str, Dict[str, List[Dict[str, Any]]]]:
    """
    Runs every mapper over the reactions in batches.

    Args:
        reaction_list (List[str]): Reaction SMILES strings
        mappers_list (List[ReactionMapper]): Mappers to run
        batch_size (int): Number of reactions handed to a mapper at once

    Returns:
        dict: {mapper_name: {"out": [mapping dict per reaction]}}
    """
    mappers_out_dict = {}
    for mapper in mappers_list:
        out = []
        for i in range(0, len(reaction_list), batch_size):
            chunk = reaction_list[i : i + batch_size]
            out.extend(mapper.map_reactions(chunk))
        logger.info(f"Mapper {mapper.mapper_name} mapped {len(out)} reactions")
        mappers_out_dict[mapper.mapper_name] = {
            "out": out,
        }
    return mappers_out_dict


def map_reactions(
    reaction_list: List[str],
    mappers_list: Optional[List[ReactionMapper]] = None,
    batch_size: int = 500,
) -> Dict[str, Dict[str, List[Dict[str, Any]]]]:
    """
    Maps a list of reaction SMILES with one or more reaction mappers.

    Args:
        reaction_list (List[str]): A reaction SMILES string or a list of them
        mappers_list (List[ReactionMapper]): Mappers to run, a default
            MCSReactionMapper if omitted
        batch_size (int): Number of reactions handed to a mapper at once

    Returns:
        dict: {mapper_name: {"out": [mapping dict per reaction]}}

    Raises:
        TypeError: If batch_size is not an integer
        ValueError: If any other input is invalid
    """
    if mappers_list is None:
        mappers_list = [MCSReactionMapper("mcs_default")]

    if isinstance(reaction_list, str):
        reaction_list = [reaction_list]

    if not isinstance(reaction_list, list) or len(reaction_list) == 0:
        raise ValueError(
            "Invalid input: reaction_list must be a string or a non-empty list of strings."
        )
    for reaction in reaction_list:
        if not isinstance(reaction, str):
            raise ValueError(
                "Invalid input: reaction_list must be a string or a non-empty list of strings."
            )
    if len(reaction_list) != len(set(reaction_list)):
        logger.warning("Removing duplicate reactions from reaction_list.")
        reaction_list = list(dict.fromkeys(reaction_list))

    if not isinstance(mappers_list, list) or len(mappers_list) == 0:
        raise ValueError(
            "Invalid input: mappers_list must be a non-empty list of ReactionMapper instances."
        )

    seen_mappers = []
    for mapper in mappers_list:
        if not isinstance(mapper, ReactionMapper):
            raise ValueError(
                f"Invalid mapper: {mapper} is not an instance of ReactionMapper."
            )
        if mapper.mapper_name in seen_mappers:
            raise ValueError(f"Duplicate mapper name: {mapper.mapper_name}.")
        seen_mappers.append(mapper.mapper_name)

    if not isinstance(batch_size, int):
        raise TypeError("Invalid input: batch_size must be an integer.")
    if batch_size <= 0 or batch_size > 1000:
        raise ValueError("Invalid input: batch_size must be an integer between 1-1000.")

    return map_reactions_using_mappers(reaction_list, mappers_list, batch_size)
