"""
Master Orchestrator for Calibration Search.

Partitions the candidate window, launches one worker per range and resolves
the first reported match:
- Workers receive the stop event and the result queue as arguments
- The first report carrying an r7 raises the stop event
- Every worker sends exactly one final report, so the coordinator knows when
  the window is exhausted instead of waiting forever

When the window holds several solutions the accepted one is whichever worker
reports first. That choice depends on scheduling and is not deterministic.
"""

import logging
import multiprocessing
import queue
import threading
import time
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

import pandas as pd
import psutil

from calibration_search.config import SearchConfig
from calibration_search.engine.partition import SearchRange, partition_domain
from calibration_search.orchestrator.worker import WorkerReport, run_worker_process, scan_range

logger = logging.getLogger(__name__)

# Seconds to wait for a worker to exit after its final report
JOIN_TIMEOUT = 5.0


class WorkerFailedError(RuntimeError):
    """A worker raised or died before finishing its range."""

    def __init__(self, reports: List[WorkerReport]):
        self.reports = reports
        details = "; ".join(f"worker {r.worker_id} {SearchRange(r.start, r.end)}: {r.error}" for r in reports)
        super().__init__(f"{len(reports)} worker(s) failed without a result: {details}")


@dataclass
class SearchResult:
    """Outcome of a calibration search. r7 is None when nothing matched."""
    r7: Optional[int]
    worker_reports: List[WorkerReport] = field(default_factory=list)
    elapsed_seconds: float = 0.0

    @property
    def found(self) -> bool:
        return self.r7 is not None

    @property
    def candidates_tested(self) -> int:
        return sum(r.candidates_tested for r in self.worker_reports)

    def summary_frame(self) -> pd.DataFrame:
        """Per-worker summary, one row per range."""
        columns = ["worker_id", "start", "end", "candidates_tested", "status", "r7", "elapsed_seconds"]
        if not self.worker_reports:
            return pd.DataFrame(columns=columns)

        rows = []
        for report in self.worker_reports:
            row = asdict(report)
            row["status"] = report.status
            rows.append(row)

        df = pd.DataFrame(rows)[columns]
        df["r7"] = df["r7"].astype("Int64")
        return df.sort_values("worker_id").reset_index(drop=True)


class SearchMaster:
    """
    Coordinator for the parallel calibration search.

    Coordinates:
    - Configuration and partition checks (before any worker starts)
    - Worker launch (processes or threads)
    - First-result resolution and cancellation broadcast
    - Exhaustion and failure detection
    """

    def __init__(self, config: SearchConfig):
        """
        Initialize SearchMaster.

        Args:
            config: Search configuration

        Raises:
            CalibrationConfigError: If the configuration or partition is invalid
        """
        config.validate()
        self.config = config
        self._ctx = multiprocessing.get_context()
        self.ranges = partition_domain(config.domain_start, config.domain_end, config.num_workers)

    def _get_memory_usage(self) -> str:
        """Get current memory usage."""
        try:
            process = psutil.Process()
            mem = process.memory_info().rss / (1024 * 1024)  # MB
            return f"{mem:.1f} MB"
        except psutil.Error:
            return "N/A"

    def _create_channels(self):
        """Stop event and result queue for the configured backend."""
        if self.config.backend == "process":
            return self._ctx.Event(), self._ctx.Queue()
        return threading.Event(), queue.Queue()

    def _create_workers(self, stop_event: Any, results: Any) -> List[Any]:
        workers = []
        for worker_id, search_range in enumerate(self.ranges):
            args = (worker_id, search_range, self.config, stop_event, results)
            name = f"calibration-worker-{worker_id}"
            if self.config.backend == "process":
                worker = self._ctx.Process(target=run_worker_process, args=args, name=name, daemon=True)
            else:
                worker = threading.Thread(target=scan_range, args=args, name=name, daemon=True)
            workers.append(worker)
        return workers

    def run(self) -> SearchResult:
        """
        Run the search.

        Returns:
            SearchResult with the first reported r7, or r7=None when every
            range was exhausted without a match

        Raises:
            WorkerFailedError: If no match was found and at least one worker
                failed, so part of the window was never searched
        """
        cfg = self.config
        logger.info(
            f"Searching r7 in [{cfg.domain_start}, {cfg.domain_end}) for "
            f"f({cfg.r0}, {cfg.r1}) == {cfg.target} mod {cfg.modulus}"
        )
        logger.info(f"Workers: {len(self.ranges)} ({cfg.backend})")
        for worker_id, search_range in enumerate(self.ranges):
            logger.debug(f"  Worker {worker_id}: {search_range}")

        start_time = time.time()
        stop_event, results = self._create_channels()
        workers = self._create_workers(stop_event, results)

        for worker in workers:
            worker.start()

        try:
            answer, reports = self._collect(workers, stop_event, results)
        finally:
            stop_event.set()
            self._shutdown(workers, results)

        elapsed = time.time() - start_time
        result = SearchResult(
            r7=answer,
            worker_reports=sorted(reports.values(), key=lambda r: r.worker_id),
            elapsed_seconds=elapsed,
        )

        failures = [r for r in result.worker_reports if r.error is not None]
        for report in failures:
            logger.error(f"Worker {report.worker_id} failed: {report.error}")
            if report.traceback:
                logger.debug(report.traceback)

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Worker summary:\n" + result.summary_frame().to_string(index=False))

        if result.found:
            logger.info(f"Result: r7={result.r7} ({result.candidates_tested:,} candidates tested)")
        elif failures:
            raise WorkerFailedError(failures)
        else:
            logger.info(f"No solution in [{cfg.domain_start}, {cfg.domain_end})")

        logger.info(f"Elapsed: {elapsed:.1f}s | Mem: {self._get_memory_usage()}")
        return result

    def _collect(self, workers: List[Any], stop_event: Any, results: Any):
        """
        Receive one report per worker.

        Raises the stop event on the first match or failure. Returns the
        accepted r7 (or None) and the reports keyed by worker id.
        """
        reports: Dict[int, WorkerReport] = {}
        answer: Optional[int] = None

        while len(reports) < len(workers):
            try:
                report = results.get(timeout=self.config.poll_interval)
            except queue.Empty:
                dead = self._dead_worker_reports(workers, reports)
                # A worker can report and exit between the timeout and the
                # liveness check, so drain the queue before trusting the list
                while True:
                    try:
                        report = results.get_nowait()
                    except queue.Empty:
                        break
                    reports[report.worker_id] = report
                    answer = self._accept(report, answer, stop_event)
                for report in dead:
                    if report.worker_id not in reports:
                        reports[report.worker_id] = report
                        answer = self._accept(report, answer, stop_event)
                continue

            reports[report.worker_id] = report
            answer = self._accept(report, answer, stop_event)

        return answer, reports

    def _accept(self, report: WorkerReport, answer: Optional[int], stop_event: Any) -> Optional[int]:
        """Raise the stop event on the first match or failure; return the accepted r7."""
        if report.found and answer is None:
            logger.info(f"Worker {report.worker_id} reported r7={report.r7}, cancelling other workers")
            stop_event.set()
            return report.r7
        if report.error is not None and answer is None:
            logger.warning(f"Worker {report.worker_id} failed, cancelling other workers")
            stop_event.set()
        return answer

    def _dead_worker_reports(self, workers: List[Any], reports: Dict[int, WorkerReport]) -> List[WorkerReport]:
        """Synthesize error reports for workers that died without reporting."""
        dead = []
        for worker_id, worker in enumerate(workers):
            if worker_id in reports:
                continue
            if self.config.backend == "process":
                if worker.exitcode in (None, 0):
                    continue
                error = f"Process exited with code {worker.exitcode}"
            else:
                if worker.is_alive():
                    continue
                error = "Thread exited without reporting"
            search_range = self.ranges[worker_id]
            dead.append(WorkerReport(
                worker_id=worker_id,
                start=search_range.start,
                end=search_range.end,
                error=error,
            ))
        return dead

    def _shutdown(self, workers: List[Any], results: Any) -> None:
        """Join workers, terminating processes that do not exit in time."""
        for worker in workers:
            worker.join(timeout=JOIN_TIMEOUT)
            if worker.is_alive() and self.config.backend == "process":
                logger.warning(f"{worker.name} did not exit, terminating")
                worker.terminate()
                worker.join()

        if self.config.backend == "process":
            results.close()
            results.join_thread()


def search_serial(config: SearchConfig, start: Optional[int] = None, end: Optional[int] = None) -> SearchResult:
    """
    Single-threaded reference scan of [start, end) in increasing order.

    Returns the smallest matching r7 in the window, unlike the parallel
    search which returns whichever match is reported first.
    """
    start = config.domain_start if start is None else start
    end = config.domain_end if end is None else end

    begin = time.time()
    report = scan_range(0, SearchRange(start, end), config, threading.Event())
    if report.error is not None:
        raise WorkerFailedError([report])

    return SearchResult(r7=report.r7, worker_reports=[report], elapsed_seconds=time.time() - begin)


def run_search(
    num_workers: Optional[int] = None,
    r0: Optional[int] = None,
    r1: Optional[int] = None,
    target: Optional[int] = None,
    modulus: Optional[int] = None,
    backend: Optional[str] = None,
) -> SearchResult:
    """
    Convenience function to run a calibration search.

    Arguments left as None fall back to SearchConfig defaults.
    """
    overrides = {
        "num_workers": num_workers,
        "r0": r0,
        "r1": r1,
        "target": target,
        "modulus": modulus,
        "backend": backend,
    }
    config = SearchConfig(**{k: v for k, v in overrides.items() if v is not None})
    return SearchMaster(config).run()


if __name__ == "__main__":
    import argparse

    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")

    parser = argparse.ArgumentParser(description="Run calibration search")
    parser.add_argument("--workers", type=int, default=None,
                       help="Number of workers (default: CPU count - 1)")
    parser.add_argument("--backend", choices=["process", "thread"], default=None)

    args = parser.parse_args()

    result = run_search(num_workers=args.workers, backend=args.backend)
    print(f"\nr7 = {result.r7}" if result.found else "\nNo solution found.")
