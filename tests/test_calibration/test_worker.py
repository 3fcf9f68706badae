"""Tests for the per-range worker loop."""
import queue
import threading

from calibration_search.engine.partition import SearchRange
from calibration_search.orchestrator.worker import WorkerReport, scan_range


class _StopAfter:
    """Stop event that reports set after a given number of polls."""

    def __init__(self, polls):
        self.polls = polls
        self.seen = 0

    def is_set(self):
        self.seen += 1
        return self.seen > self.polls


class TestScanRange:
    """Worker scan, report and cancellation."""

    def test_finds_match_and_stops(self, unique_solution_config):
        results = queue.Queue()
        report = scan_range(0, SearchRange(0, 64), unique_solution_config, threading.Event(), results)

        assert report.r7 == 3
        assert report.found
        assert report.status == "found"
        # 0, 1, 2, 3 tested, then the worker terminates
        assert report.candidates_tested == 4
        assert results.get_nowait() is report
        assert results.empty()

    def test_exhausts_range_without_match(self, no_solution_config):
        results = queue.Queue()
        report = scan_range(2, SearchRange(10, 20), no_solution_config, threading.Event(), results)

        assert report.r7 is None
        assert report.status == "exhausted"
        assert report.candidates_tested == 10
        assert (report.worker_id, report.start, report.end) == (2, 10, 20)
        assert results.qsize() == 1

    def test_preset_stop_event_tests_nothing(self, no_solution_config):
        stop = threading.Event()
        stop.set()
        report = scan_range(0, SearchRange(0, 64), no_solution_config, stop)

        assert report.candidates_tested == 0
        assert report.cancelled
        assert report.status == "cancelled"

    def test_cancellation_observed_before_next_candidate(self, no_solution_config):
        stop = _StopAfter(5)
        report = scan_range(0, SearchRange(0, 64), no_solution_config, stop)

        assert report.candidates_tested == 5
        assert report.cancelled
        assert report.candidates_tested < 64

    def test_candidates_scanned_in_increasing_order(self, unique_solution_config, monkeypatch):
        seen = []

        def fake_trial(r7, r0, r1, target, modulus):
            seen.append(r7)
            return False

        monkeypatch.setattr("calibration_search.orchestrator.worker.run_trial", fake_trial)
        scan_range(0, SearchRange(7, 12), unique_solution_config, threading.Event())

        assert seen == [7, 8, 9, 10, 11]

    def test_error_is_reported_not_raised(self, unique_solution_config, monkeypatch):
        def broken_trial(*args):
            raise RuntimeError("boom")

        monkeypatch.setattr("calibration_search.orchestrator.worker.run_trial", broken_trial)
        results = queue.Queue()
        report = scan_range(1, SearchRange(0, 8), unique_solution_config, threading.Event(), results)

        assert report.status == "error"
        assert "RuntimeError: boom" in report.error
        assert "Traceback" in report.traceback
        assert results.get_nowait() is report

    def test_progress_logged_at_interval(self, no_solution_config, caplog):
        no_solution_config.progress_interval = 16
        with caplog.at_level("INFO", logger="calibration_search.orchestrator.worker"):
            scan_range(4, SearchRange(0, 40), no_solution_config, threading.Event())

        messages = [r.getMessage() for r in caplog.records]
        assert "[Worker 4] Testing 0..." in messages
        assert "[Worker 4] Testing 16..." in messages
        assert "[Worker 4] Testing 32..." in messages
        assert not any("Testing 1..." in m for m in messages)


class TestWorkerReport:
    """Report status derivation."""

    def test_status_precedence(self):
        assert WorkerReport(0, 0, 1).status == "exhausted"
        assert WorkerReport(0, 0, 1, cancelled=True).status == "cancelled"
        assert WorkerReport(0, 0, 1, r7=0).status == "found"
        assert WorkerReport(0, 0, 1, r7=0, error="x").status == "error"
