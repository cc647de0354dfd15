"""
Custom exceptions for atom-atom mapping
"""


class AtomMappingError(Exception):
    """Base exception for atom-mapping errors"""

    pass


class IndexResolutionError(AtomMappingError, IndexError):
    """An atom index cannot be resolved in the graph that should own it"""

    pass


class SearchCancelled(AtomMappingError):
    """A search was cancelled or ran past its deadline"""

    pass


class StandardizationError(AtomMappingError):
    """The standardizer failed on a reaction"""

    pass


class ReactionParseError(AtomMappingError, ValueError):
    """A reaction SMILES string cannot be parsed"""

    pass
