"""Pipeline orchestration: extraction, embedding and sink writes."""

from __future__ import annotations

from .chunker import estimate_entry_size, partition_oversized, split_entries
from .orchestrator import IngestionPipeline, RunReport, run_import

__all__ = [
    "IngestionPipeline",
    "RunReport",
    "estimate_entry_size",
    "partition_oversized",
    "run_import",
    "split_entries",
]
