"""
Base classes for Ingestion
"""
from abc import ABC, abstractmethod
from typing import List

from core.entities import Item


class SourceAdapter(ABC):
    """
    Base interface for all ingestion sources.
    """

    name: str = "source"

    @abstractmethod
    async def fetch_items(self, hours: int) -> List[Item]:
        """
        Fetch items published within the last N hours.
        Must NEVER raise uncaught exceptions.
        """
        raise NotImplementedError
