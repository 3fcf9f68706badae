"""
Engine module for Calibration Search.

Provides the memoized evaluator and search range partitioning.
"""

from .evaluator import Evaluator, evaluate, run_trial
from .partition import PartitionError, SearchRange, partition_domain, validate_partition

__all__ = [
    "Evaluator",
    "evaluate",
    "run_trial",
    "PartitionError",
    "SearchRange",
    "partition_domain",
    "validate_partition",
]
