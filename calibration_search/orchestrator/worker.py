"""
Worker for Calibration Search.

Scans one contiguous range of candidate r7 values in increasing order, running
one trial (fresh memo table) per candidate. Checks the shared stop event before
every candidate and sends exactly one WorkerReport to the result channel when it
finishes, whether it found a match, exhausted its range, was cancelled or failed.

Designed for multiprocessing.Process workers; the same loop runs in threads.
"""

import logging
import time
import traceback
from dataclasses import dataclass
from typing import Any, Optional

from calibration_search.config import SearchConfig
from calibration_search.engine.evaluator import run_trial
from calibration_search.engine.partition import SearchRange

logger = logging.getLogger(__name__)


@dataclass
class WorkerReport:
    """Final message a worker sends to the coordinator."""
    worker_id: int
    start: int
    end: int
    candidates_tested: int = 0
    r7: Optional[int] = None
    cancelled: bool = False
    error: Optional[str] = None
    traceback: Optional[str] = None
    elapsed_seconds: float = 0.0

    @property
    def found(self) -> bool:
        return self.r7 is not None

    @property
    def status(self) -> str:
        if self.error is not None:
            return "error"
        if self.found:
            return "found"
        if self.cancelled:
            return "cancelled"
        return "exhausted"


def scan_range(
    worker_id: int,
    search_range: SearchRange,
    config: SearchConfig,
    stop_event: Any,
    results: Any = None,
) -> WorkerReport:
    """
    Test every r7 in search_range until a match, cancellation or the end.

    Args:
        worker_id: Index of this worker, used in logs and reports
        search_range: Candidates assigned exclusively to this worker
        config: Search configuration (initial arguments, target, modulus)
        stop_event: Cancellation signal, anything with is_set()
        results: Result channel, anything with put(); None to skip sending

    Returns:
        The report that was sent
    """
    report = WorkerReport(worker_id, search_range.start, search_range.end)
    start_time = time.time()

    try:
        for r7 in search_range:
            if stop_event.is_set():
                report.cancelled = True
                break

            if r7 % config.progress_interval == 0:
                logger.info(f"[Worker {worker_id}] Testing {r7}...")

            report.candidates_tested += 1
            if run_trial(r7, config.r0, config.r1, config.target, config.modulus):
                logger.info(f"[Worker {worker_id}] Result found: r7={r7}")
                report.r7 = r7
                break

    except Exception as e:
        report.error = f"{type(e).__name__}: {e}"
        report.traceback = traceback.format_exc()
        logger.error(f"[Worker {worker_id}] Failed on range {search_range}: {report.error}")

    report.elapsed_seconds = time.time() - start_time

    if results is not None:
        results.put(report)
    return report


def worker_init(verbose: bool = False) -> None:
    """Initialize worker process logging (suppressed unless verbose)."""
    if verbose:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s - %(levelname)s - %(message)s",
        )
    else:
        logging.getLogger().setLevel(logging.WARNING)


def run_worker_process(
    worker_id: int,
    search_range: SearchRange,
    config: SearchConfig,
    stop_event: Any,
    results: Any,
) -> None:
    """Process entry point: set up logging, then scan the assigned range."""
    worker_init(config.verbose)
    scan_range(worker_id, search_range, config, stop_event, results)
