"""Abstract base class for extraction strategies."""

from abc import ABC, abstractmethod

from src.core.schemas import CandidateRecord, ParsingMethod


class ExtractionStrategy(ABC):
    """Base class that every extraction strategy must implement."""

    @property
    @abstractmethod
    def method(self) -> ParsingMethod:
        """Parsing method recorded in metrics for batches from this strategy."""

    @abstractmethod
    def extract(self, text: str, site_id: str) -> list[CandidateRecord]:
        """Split raw input into candidate records.

        Must not raise on malformed input: a unit that cannot be parsed is
        skipped and extraction continues with the rest.
        """
