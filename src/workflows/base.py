"""
Contains base class for pipelines
"""
from abc import ABC, abstractmethod

from core.entities import PipelineResult


class Pipeline(ABC):
    """
    Orchestrates ingestion → clustering → enrichment → composition → publishing
    for one run.
    """

    name: str

    @abstractmethod
    async def run(self) -> PipelineResult:
        """
        Execute the pipeline and return the run summary.
        Must never raise uncaught exceptions.
        """
        raise NotImplementedError
