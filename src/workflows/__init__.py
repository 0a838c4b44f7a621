"""
Workflows module - Pipeline orchestration for release detection and posting.
"""
from workflows.base import Pipeline
from workflows.release_pipeline import ReleasePipeline, format_result

__all__ = [
    "Pipeline",
    "ReleasePipeline",
    "format_result",
]
