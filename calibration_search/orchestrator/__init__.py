"""
Orchestrator module for Calibration Search.

Provides the coordinator and worker loop for parallel r7 search.
"""

from .master import SearchMaster, SearchResult, WorkerFailedError, run_search, search_serial
from .worker import WorkerReport, scan_range

__all__ = [
    "SearchMaster",
    "SearchResult",
    "WorkerFailedError",
    "WorkerReport",
    "run_search",
    "scan_range",
    "search_serial",
]
