from abc import ABC, abstractmethod
from typing import Any, Dict, List


class ReactionMapper(ABC):
    """
    Abstract base class for mapping chemical reactions.

    Subclasses must implement the `map_reaction` method.
    """

    def __init__(self, mapper_type: str, mapper_name: str, mapper_weight: float):
        if not isinstance(mapper_type, str):
            raise TypeError("Invalid input: mapper_type must be a string.")
        self._mapper_type: str = mapper_type
        if not isinstance(mapper_name, str):
            raise TypeError("Invalid input: mapper_name must be a string.")
        self._mapper_name: str = mapper_name
        if not isinstance(mapper_weight, (int, float)):
            raise TypeError(
                "Invalid input: mapper_weight must be a number between 0-1000."
            )
        if mapper_weight < 0 or mapper_weight > 1000:
            raise ValueError(
                "Invalid input: mapper_weight must be a number between 0-1000."
            )
        self._mapper_weight: float = float(mapper_weight)

    @property
    def mapper_type(self) -> str:
        """Return mapper_type."""
        return self._mapper_type

    @property
    def mapper_name(self) -> str:
        """Return mapper_name."""
        return self._mapper_name

    @property
    def mapper_weight(self) -> float:
        """Return mapper_weight."""
        return self._mapper_weight

    def _reaction_smiles_valid(self, reaction_smiles: str) -> bool:
        """
        Checks if the reaction SMILES string has reactants and products.

        Args:
            reaction_smiles (str): The reaction SMILES string to check, either
                "reactants>>products" or "reactants>agents>products"

        Returns:
            bool: True if the reaction SMILES string is valid, False otherwise
        """
        if not isinstance(reaction_smiles, str):
            return False
        parts = reaction_smiles.strip().split(">")
        if len(parts) != 3:
            return False
        return len(parts[0]) > 0 and len(parts[2]) > 0

    @abstractmethod
    def map_reaction(self, reaction_smiles: str) -> Dict[str, Any]:
        pass

    def map_reactions(self, reaction_smiles_list: List[str]) -> List[Dict[str, Any]]:
        """Map each reaction in turn."""
        return [self.map_reaction(reaction) for reaction in reaction_smiles_list]
