"""Shared fixtures for calibration search tests."""
import pytest

from calibration_search.config import SearchConfig


@pytest.fixture
def unique_solution_config():
    """f(2, 1) = 3 * r7 + 2 mod 64, so target 11 is hit only by r7 = 3."""
    return SearchConfig(
        modulus=64, r0=2, r1=1, target=11,
        num_workers=4, backend="thread", poll_interval=0.05,
    )


@pytest.fixture
def no_solution_config():
    """f(2, 0) = 2 * r7 + 1 mod 64 is always odd, so target 10 is never hit."""
    return SearchConfig(
        modulus=64, r0=2, r1=0, target=10,
        num_workers=3, backend="thread", poll_interval=0.05,
    )
