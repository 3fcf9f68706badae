"""
Configuration for the teleporter calibration search.

This module contains the problem constants, the SearchConfig dataclass and the
console output helpers. Defaults can be overridden from an optional
calibration_config.json file next to this package.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import psutil

logger = logging.getLogger(__name__)


# ================================
# PROBLEM CONSTANTS
# ================================
# Every argument, intermediate and result value lives in [0, MODULUS).
MODULUS = 32768

# Fixed initial arguments of the top-level call and the value it must produce
DEFAULT_R0 = 4
DEFAULT_R1 = 1
DEFAULT_TARGET = 6

# Known answer for (r0=4, r1=1, target=6, MODULUS=32768). Test fixture only.
KNOWN_SOLUTION = 25734

# Log "[Worker W] Testing N..." every N candidates
PROGRESS_INTERVAL = 500

# Seconds the coordinator waits on the result channel before checking workers
POLL_INTERVAL = 0.5

BACKENDS = ("process", "thread")

# JSON config file path
CONFIG_FILE = Path(__file__).parent / "calibration_config.json"


class CalibrationConfigError(ValueError):
    """Invalid search configuration, detected before any worker starts."""


def load_json_config(path: Path = CONFIG_FILE) -> Dict[str, Any]:
    """Load configuration from JSON file if it exists."""
    if path.exists():
        with open(path, 'r') as f:
            return json.load(f)
    return {}


# Load JSON config once at module load
_JSON_CONFIG = load_json_config()


def _get_json_default(section: str, key: str, default: Any) -> Any:
    """Get value from JSON config with fallback to default."""
    return _JSON_CONFIG.get(section, {}).get(key, default)


def calculate_safe_workers() -> int:
    """
    Calculate number of workers from available CPUs.

    Leaves one logical CPU for the coordinator.
    """
    cpus = psutil.cpu_count(logical=True) or 1
    return max(1, cpus - 1)


# ================================
# SEARCH CONFIGURATION
# ================================
@dataclass
class SearchConfig:
    """
    Configuration for one calibration search.

    Values are loaded from calibration_config.json if present,
    with constructor/CLI arguments taking precedence.
    """
    # Problem instance (from JSON: search.*)
    modulus: int = field(default_factory=lambda: _get_json_default("search", "modulus", MODULUS))
    r0: int = field(default_factory=lambda: _get_json_default("search", "r0", DEFAULT_R0))
    r1: int = field(default_factory=lambda: _get_json_default("search", "r1", DEFAULT_R1))
    target: int = field(default_factory=lambda: _get_json_default("search", "target", DEFAULT_TARGET))

    # Parallelization (from JSON: parallelization.num_workers, parallelization.backend)
    num_workers: int = field(default_factory=lambda: _get_json_default("parallelization", "num_workers", None) or calculate_safe_workers())
    backend: str = field(default_factory=lambda: _get_json_default("parallelization", "backend", "process"))
    poll_interval: float = field(default_factory=lambda: _get_json_default("parallelization", "poll_interval", POLL_INTERVAL))

    # Candidate window, None means [0, modulus)
    domain_start: int = 0
    domain_end: Optional[int] = None

    # Progress (from JSON: progress.interval, progress.verbose)
    progress_interval: int = field(default_factory=lambda: _get_json_default("progress", "interval", PROGRESS_INTERVAL))
    verbose: bool = field(default_factory=lambda: _get_json_default("progress", "verbose", False))

    def __post_init__(self):
        """Default the search window to the whole modular domain."""
        if self.domain_end is None:
            self.domain_end = self.modulus

    @property
    def domain_size(self) -> int:
        """Number of candidate r7 values in the search window."""
        return self.domain_end - self.domain_start

    def validate(self) -> None:
        """
        Check the configuration before launching any worker.

        Raises:
            CalibrationConfigError: If any value makes the search incomplete
                or impossible to run.
        """
        if self.modulus < 1:
            raise CalibrationConfigError(f"modulus must be positive, got {self.modulus}")

        for name in ("r0", "r1"):
            value = getattr(self, name)
            if not 0 <= value < self.modulus:
                raise CalibrationConfigError(f"{name}={value} outside [0, {self.modulus})")

        if self.target < 0:
            raise CalibrationConfigError(f"target must be non-negative, got {self.target}")

        if self.num_workers is None or self.num_workers < 1:
            raise CalibrationConfigError(f"num_workers must be at least 1, got {self.num_workers}")

        if not 0 <= self.domain_start < self.domain_end <= self.modulus:
            raise CalibrationConfigError(
                f"Search window [{self.domain_start}, {self.domain_end}) "
                f"is empty or outside [0, {self.modulus})"
            )

        if self.num_workers > self.domain_size:
            raise CalibrationConfigError(
                f"{self.num_workers} workers for {self.domain_size} candidates "
                f"would leave workers without a range"
            )

        if self.backend not in BACKENDS:
            raise CalibrationConfigError(f"Unknown backend: {self.backend}. Supported: {list(BACKENDS)}")

        if self.progress_interval < 1:
            raise CalibrationConfigError(f"progress_interval must be positive, got {self.progress_interval}")

        if self.poll_interval <= 0:
            raise CalibrationConfigError(f"poll_interval must be positive, got {self.poll_interval}")

        if self.target >= self.modulus:
            logger.warning(
                f"Target {self.target} is unreachable: every result is reduced modulo {self.modulus}"
            )


# ================================
# CONSOLE OUTPUT HELPERS
# ================================
class Colors:
    HEADER = '\033[95m'
    OKBLUE = '\033[94m'
    OKCYAN = '\033[96m'
    OKGREEN = '\033[92m'
    WARNING = '\033[93m'
    FAIL = '\033[91m'
    ENDC = '\033[0m'
    BOLD = '\033[1m'


def print_status(message: str, status: str = "INFO") -> None:
    """Print status message with color."""
    from datetime import datetime
    colors = {
        "INFO": Colors.OKBLUE,
        "SUCCESS": Colors.OKGREEN,
        "WARNING": Colors.WARNING,
        "ERROR": Colors.FAIL,
        "HEADER": Colors.HEADER,
        "PROGRESS": Colors.OKCYAN,
    }
    color = colors.get(status, Colors.ENDC)
    timestamp = datetime.now().strftime("%H:%M:%S")
    print(f"{color}[{timestamp}] {status}: {message}{Colors.ENDC}")


if __name__ == "__main__":
    # Show configuration
    cfg = SearchConfig()
    print("Calibration Search Configuration")
    print("=" * 60)
    print(f"  Modulus: {cfg.modulus}")
    print(f"  Initial arguments: r0={cfg.r0}, r1={cfg.r1}")
    print(f"  Target: {cfg.target}")
    print(f"  Workers: {cfg.num_workers} ({cfg.backend})")
    print(f"  Window: [{cfg.domain_start}, {cfg.domain_end})")
