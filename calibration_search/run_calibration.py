#!/usr/bin/env python3
"""
Calibration Search CLI.

Usage:
    # Search the whole domain with the default puzzle instance
    python -m calibration_search.run_calibration --workers 8

    # Search a window and re-check the answer single-threaded
    python -m calibration_search.run_calibration --start 25000 --end 26000 --verify

    # Show configuration and partition
    python -m calibration_search.run_calibration --info --workers 8
"""

import argparse
import logging
import sys
from typing import List, Optional

from calibration_search.config import (
    BACKENDS,
    CalibrationConfigError,
    SearchConfig,
    calculate_safe_workers,
    print_status,
)

EXIT_FOUND = 0
EXIT_NOT_FOUND = 1
EXIT_CONFIG_ERROR = 2
EXIT_WORKER_ERROR = 3


def build_config(args: argparse.Namespace) -> SearchConfig:
    """Create SearchConfig from CLI arguments; unset options keep JSON/default values."""
    overrides = {
        "num_workers": args.workers,
        "modulus": args.modulus,
        "r0": args.r0,
        "r1": args.r1,
        "target": args.target,
        "domain_start": args.start,
        "domain_end": args.end,
        "backend": args.backend,
        "progress_interval": args.progress_interval,
    }
    config = SearchConfig(**{k: v for k, v in overrides.items() if v is not None})
    if args.verbose:
        config.verbose = True
    return config


def show_info(config: SearchConfig) -> None:
    """Show search configuration and worker ranges."""
    from calibration_search.engine.partition import partition_domain

    config.validate()

    print_status("SEARCH CONFIGURATION", "HEADER")
    print_status("=" * 50, "HEADER")
    print(f"  Function: f({config.r0}, {config.r1}) == {config.target} (mod {config.modulus})")
    print(f"  Window: [{config.domain_start}, {config.domain_end}) ({config.domain_size:,} candidates)")
    print(f"  Workers: {config.num_workers} ({config.backend})")
    print(f"  Progress every: {config.progress_interval} candidates")

    print("\nRanges:")
    for worker_id, search_range in enumerate(partition_domain(config.domain_start, config.domain_end, config.num_workers)):
        print(f"  Worker {worker_id}: {search_range} ({len(search_range):,})")


def verify_answer(config: SearchConfig, r7: int) -> bool:
    """Re-evaluate the answer single-threaded with a fresh memo table."""
    from calibration_search.engine.evaluator import Evaluator

    evaluator = Evaluator(r7, config.modulus)
    value = evaluator.evaluate(config.r0, config.r1)
    ok = value == config.target
    status = "SUCCESS" if ok else "ERROR"
    print_status(
        f"Verify: f({config.r0}, {config.r1}) = {value} with r7={r7} "
        f"({evaluator.calls:,} pairs computed)", status
    )
    return ok


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Teleporter calibration search",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Full search
  python -m calibration_search.run_calibration --workers 8

  # Thread backend on a small window
  python -m calibration_search.run_calibration --backend thread --start 25700 --end 25800 --workers 2
        """
    )

    # Problem instance
    parser.add_argument("--r0", type=int, default=None, help="First initial argument (default: 4)")
    parser.add_argument("--r1", type=int, default=None, help="Second initial argument (default: 1)")
    parser.add_argument("--target", type=int, default=None, help="Value f(r0, r1) must produce (default: 6)")
    parser.add_argument("--modulus", type=int, default=None, help="Domain bound M (default: 32768)")

    # Search window
    parser.add_argument("--start", type=int, default=None, help="First r7 to test (default: 0)")
    parser.add_argument("--end", type=int, default=None, help="Stop before this r7 (default: modulus)")

    # Parallelization
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help=f"Number of parallel workers (default: CPU count - 1 = {calculate_safe_workers()})"
    )
    parser.add_argument("--backend", choices=BACKENDS, default=None, help="Worker backend (default: process)")
    parser.add_argument("--progress-interval", type=int, default=None,
                        help="Log progress every N candidates (default: 500)")

    # Actions
    parser.add_argument("--info", action="store_true", help="Show configuration and partition, then exit")
    parser.add_argument("--verify", action="store_true", help="Re-evaluate the answer single-threaded")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log worker progress")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    from calibration_search.orchestrator.master import SearchMaster, WorkerFailedError

    try:
        config = build_config(args)

        if args.info:
            show_info(config)
            return EXIT_FOUND

        master = SearchMaster(config)
    except CalibrationConfigError as e:
        print_status(f"Invalid configuration: {e}", "ERROR")
        return EXIT_CONFIG_ERROR

    print_status(f"Searching r7 in [{config.domain_start}, {config.domain_end}) with {config.num_workers} workers", "HEADER")

    try:
        result = master.run()
    except WorkerFailedError as e:
        print_status(str(e), "ERROR")
        return EXIT_WORKER_ERROR

    print("\n" + result.summary_frame().to_string(index=False))
    print_status(f"Candidates tested: {result.candidates_tested:,} in {result.elapsed_seconds:.1f}s", "INFO")

    if not result.found:
        print_status("No solution found", "WARNING")
        return EXIT_NOT_FOUND

    print_status(f">>> r7 = {result.r7}", "SUCCESS")

    if args.verify and not verify_answer(config, result.r7):
        return EXIT_NOT_FOUND

    return EXIT_FOUND


if __name__ == "__main__":
    sys.exit(main())
