"""
Best-size aggregation of candidate mappings.
"""

from typing import Iterable, List, Set

from mcs_atom_mapper.mappers.data_classes import AggregationResult, IndexMapping
from mcs_atom_mapper.utils.logging_config import logger


class MappingAggregator:
    """
    Keeps the distinct mappings of the largest size seen so far.

    A larger mapping clears everything collected before it; a mapping of the
    current best size is appended unless the same pair-set is already held;
    smaller and empty mappings are ignored. ``best_size`` never decreases.
    """

    def __init__(self, name: str = ""):
        self.name = name
        self._best_size = 0
        self._mappings: List[IndexMapping] = []
        self._seen: Set[IndexMapping] = set()
        self.size_history: List[int] = []

    @property
    def best_size(self) -> int:
        return self._best_size

    def __len__(self) -> int:
        return len(self._mappings)

    def add(self, mapping: IndexMapping) -> bool:
        """
        Offer one candidate mapping.

        Args:
            mapping: Candidate mapping

        Returns:
            True if the mapping was kept
        """
        size = mapping.size
        if size == 0 or size < self._best_size:
            return False
        if size > self._best_size:
            if self._mappings:
                logger.debug(
                    f"Aggregator {self.name}: best size {self._best_size} -> {size}"
                )
            self._best_size = size
            self._mappings = []
            self._seen = set()
            self.size_history.append(size)
        if mapping in self._seen:
            return False
        self._seen.add(mapping)
        self._mappings.append(mapping)
        return True

    def add_all(self, mappings: Iterable[IndexMapping]) -> int:
        """Offer several mappings, returning how many were kept."""
        return sum(1 for mapping in mappings if self.add(mapping))

    def result(self) -> AggregationResult:
        return AggregationResult(
            best_size=self._best_size, mappings=tuple(self._mappings)
        )
