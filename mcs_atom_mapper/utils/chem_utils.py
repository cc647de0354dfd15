from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Tuple

from rdkit import Chem
from rdkit.Chem import AllChem
from rdkit.Chem.MolStandardize import rdMolStandardize

from mcs_atom_mapper.exceptions import ReactionParseError, StandardizationError
from mcs_atom_mapper.mappers.data_classes import (
    AtomMapping,
    MappingResult,
    ReactionComponents,
)
from mcs_atom_mapper.utils.logging_config import logger


def _parse_molecules(smiles: str, role: str) -> List[Chem.Mol]:
    mols = []
    for fragment in smiles.split("."):
        if not fragment:
            continue
        mol = Chem.MolFromSmiles(fragment)
        if mol is None:
            raise ReactionParseError(f"Could not parse {role} SMILES {fragment!r}")
        mols.append(mol)
    return mols


def parse_reaction_smiles(reaction_smiles: str) -> Tuple[List[Chem.Mol], List[Chem.Mol]]:
    """
    Parses a reaction SMILES string into reactant and product molecules.

    Accepts both "reactants>>products" and "reactants>agents>products"; agents
    are ignored. Each '.'-separated fragment becomes its own molecule.

    Args:
        reaction_smiles (str): The reaction SMILES string

    Returns:
        tuple: Lists of reactant and product RDKit molecules

    Raises:
        ReactionParseError: If the string is not a reaction or a molecule
            cannot be parsed
    """
    if not isinstance(reaction_smiles, str) or not reaction_smiles.strip():
        raise ReactionParseError("Empty reaction SMILES provided")

    parts = reaction_smiles.strip().split(">")
    if len(parts) != 3:
        raise ReactionParseError(
            f"Reaction SMILES must have the form reactants>agents>products: {reaction_smiles!r}"
        )
    reactants = _parse_molecules(parts[0], "reactant")
    products = _parse_molecules(parts[2], "product")
    if not reactants or not products:
        raise ReactionParseError(
            f"Reaction SMILES needs at least one reactant and one product: {reaction_smiles!r}"
        )
    return reactants, products


def copy_reaction(reaction: ReactionComponents) -> ReactionComponents:
    """Deep-copy the molecules of a reaction so a task can modify its own copy."""
    return ReactionComponents(
        reactants=[Chem.Mol(mol) for mol in reaction.reactants],
        products=[Chem.Mol(mol) for mol in reaction.products],
        original_smiles=reaction.original_smiles,
    )


def prepare_hydrogens(
    reaction: ReactionComponents, remove_hydrogen: bool = True
) -> ReactionComponents:
    """
    Removes or adds explicit hydrogens on every molecule of a reaction.

    Args:
        reaction (ReactionComponents): The reaction to prepare
        remove_hydrogen (bool): Remove hydrogens if True, make them explicit otherwise

    Returns:
        ReactionComponents: A new reaction with the prepared molecules
    """
    prepare = Chem.RemoveHs if remove_hydrogen else Chem.AddHs
    return ReactionComponents(
        reactants=[prepare(mol) for mol in reaction.reactants],
        products=[prepare(mol) for mol in reaction.products],
        original_smiles=reaction.original_smiles,
    )


class Standardizer(ABC):
    """
    Abstract base class for reaction standardizers.

    Implementations return a standardized reaction and raise
    StandardizationError when they cannot.
    """

    @abstractmethod
    def standardize(self, reaction: ReactionComponents) -> ReactionComponents:
        pass


class RDKitStandardizer(Standardizer):
    """
    Standardizes molecules with RDKit MolStandardize.

    Each molecule is cleaned up (sanitization, normalization, metal
    disconnection, reionization) and optionally replaced by its canonical
    tautomer.
    """

    def __init__(self, canonicalize_tautomer: bool = False):
        self.canonicalize_tautomer = canonicalize_tautomer
        self._tautomer_enumerator = (
            rdMolStandardize.TautomerEnumerator() if canonicalize_tautomer else None
        )

    def _standardize_mol(self, mol: Chem.Mol) -> Chem.Mol:
        mol = rdMolStandardize.Cleanup(mol)
        if self._tautomer_enumerator is not None:
            mol = self._tautomer_enumerator.Canonicalize(mol)
        return mol

    def standardize(self, reaction: ReactionComponents) -> ReactionComponents:
        try:
            return ReactionComponents(
                reactants=[self._standardize_mol(mol) for mol in reaction.reactants],
                products=[self._standardize_mol(mol) for mol in reaction.products],
                original_smiles=reaction.original_smiles,
            )
        except Exception as e:
            raise StandardizationError(
                f"Could not standardize {reaction.original_smiles or 'reaction'}: {e}"
            ) from e


def atom_map_numbers(
    atom_mappings: Iterable[AtomMapping],
) -> Tuple[Dict[Tuple[int, int], int], Dict[Tuple[int, int], int]]:
    """
    Assigns atom map numbers to mapped atom pairs.

    Numbers start at 1 and follow the product atom order, so the same mapping
    always receives the same numbers.

    Args:
        atom_mappings (Iterable[AtomMapping]): The atom mappings

    Returns:
        tuple: (mol_idx, atom_idx) -> map number for reactants and for products
    """
    reactant_maps: Dict[Tuple[int, int], int] = {}
    product_maps: Dict[Tuple[int, int], int] = {}
    ordered = sorted(
        atom_mappings, key=lambda m: (m.product_mol_idx, m.product_atom_idx)
    )
    for map_num, am in enumerate(ordered, start=1):
        reactant_maps[(am.reactant_mol_idx, am.reactant_atom_idx)] = map_num
        product_maps[(am.product_mol_idx, am.product_atom_idx)] = map_num
    return reactant_maps, product_maps


def _mapped_side_smiles(
    mols: List[Chem.Mol], maps: Dict[Tuple[int, int], int]
) -> str:
    smiles = []
    for mol_idx, mol in enumerate(mols):
        mol_copy = Chem.RWMol(mol)
        for atom in mol_copy.GetAtoms():
            atom.SetAtomMapNum(maps.get((mol_idx, atom.GetIdx()), 0))
        smiles.append(Chem.MolToSmiles(mol_copy))
    return ".".join(smiles)


def mapped_reaction_smiles(
    reaction: ReactionComponents, atom_mappings: Iterable[AtomMapping]
) -> str:
    """
    Creates a reaction SMILES string carrying atom map numbers.

    Args:
        reaction (ReactionComponents): The reaction the mapping refers to
        atom_mappings (Iterable[AtomMapping]): The atom mappings

    Returns:
        str: Mapped reaction SMILES, unmapped atoms carry no map number
    """
    reactant_maps, product_maps = atom_map_numbers(atom_mappings)
    reactant_smiles = _mapped_side_smiles(reaction.reactants, reactant_maps)
    product_smiles = _mapped_side_smiles(reaction.products, product_maps)
    return f"{reactant_smiles}>>{product_smiles}"


def write_mapped_reaction(result: MappingResult, path: str) -> None:
    """
    Writes a mapped reaction to an MDL RXN file.

    Args:
        result (MappingResult): Result holding the mapped reaction SMILES
        path (str): Output file path

    Raises:
        ValueError: If the result has no mapped reaction SMILES
    """
    if not result.mapped_smiles:
        raise ValueError("Invalid input: result has no mapped reaction SMILES.")
    rxn = AllChem.ReactionFromSmarts(result.mapped_smiles, useSmiles=True)
    with open(path, "w") as f:
        f.write(AllChem.ReactionToRxnBlock(rxn))
    logger.info(f"Wrote {result.algorithm_used.name} mapping to {path}")
