"""Tests for the memoized evaluator."""
import pytest

from calibration_search.config import DEFAULT_R0, DEFAULT_R1, DEFAULT_TARGET, KNOWN_SOLUTION, MODULUS
from calibration_search.engine.evaluator import Evaluator, evaluate, run_trial


def _naive(r0, r1, r7, modulus):
    """Plain recursion without memo; only usable for tiny arguments."""
    if r0 == 0:
        return (r1 + 1) % modulus
    if r1 == 0:
        return _naive(r0 - 1, r7, r7, modulus)
    return _naive(r0 - 1, _naive(r0, r1 - 1, r7, modulus), r7, modulus)


# ==========================================
# Recurrence
# ==========================================


class TestRecurrence:
    """Each case of the recurrence."""

    @pytest.mark.parametrize("r7", [0, 1, 7, 15])
    def test_base_case_for_every_r1(self, r7):
        """r0 == 0 -> (r1 + 1) mod M, for the whole domain."""
        ev = Evaluator(r7, modulus=16)
        for r1 in range(16):
            assert ev.evaluate(0, r1) == (r1 + 1) % 16

    def test_base_case_wraps_at_modulus(self):
        assert evaluate(0, MODULUS - 1, 0) == 0

    @pytest.mark.parametrize("r0", [1, 2, 3])
    @pytest.mark.parametrize("r7", [0, 2, 5])
    def test_zero_r1_uses_r7(self, r0, r7):
        """r1 == 0 -> f(r0 - 1, r7)."""
        assert evaluate(r0, 0, r7, modulus=8) == evaluate(r0 - 1, r7, r7, modulus=8)

    def test_level_one_closed_form(self):
        """f(1, n) = n + r7 + 1 mod M."""
        r7 = 100
        ev = Evaluator(r7)
        for n in (0, 1, 50, MODULUS - 1):
            assert ev.evaluate(1, n) == (n + r7 + 1) % MODULUS

    def test_level_two_closed_form(self):
        """f(2, n) = (r7 + 1) * n + 2 * r7 + 1 mod M."""
        r7 = 3
        ev = Evaluator(r7)
        for n in (0, 1, 2, 1000):
            assert ev.evaluate(2, n) == ((r7 + 1) * n + 2 * r7 + 1) % MODULUS

    def test_matches_naive_recursion_on_small_domain(self):
        modulus = 8
        for r7 in range(modulus):
            for r0 in range(4):
                for r1 in range(modulus):
                    assert evaluate(r0, r1, r7, modulus) == _naive(r0, r1, r7, modulus), (r0, r1, r7)

    def test_results_stay_in_domain(self):
        modulus = 10
        for r7 in range(modulus):
            value = evaluate(4, 1, r7, modulus)
            assert 0 <= value < modulus

    def test_deep_chain_does_not_hit_recursion_limit(self):
        """f(1, M - 1) nests M frames; the explicit stack handles it."""
        assert evaluate(1, MODULUS - 1, 0) == 0

    def test_known_solution(self):
        assert evaluate(DEFAULT_R0, DEFAULT_R1, KNOWN_SOLUTION) == DEFAULT_TARGET
        assert run_trial(KNOWN_SOLUTION, DEFAULT_R0, DEFAULT_R1, DEFAULT_TARGET)


# ==========================================
# Memo table
# ==========================================


class TestMemoization:
    """Memo table behavior within and across trials."""

    def test_second_evaluation_is_served_from_memo(self):
        ev = Evaluator(3)
        first = ev.evaluate(2, 5)
        calls = ev.calls
        assert calls > 0

        second = ev.evaluate(2, 5)
        assert second == first
        assert ev.calls == calls
        assert ev.hits == 1

    def test_intermediate_pairs_are_stored(self):
        r7 = 3
        ev = Evaluator(r7)
        ev.evaluate(2, 5)

        assert ev.memo[(2, 5)] == 4 * 5 + 7
        assert ev.memo[(2, 4)] == 4 * 4 + 7
        assert ev.memo[(2, 0)] == 7
        assert ev.memo[(1, r7)] == 2 * r7 + 1
        assert ev.calls == len(ev.memo)

    def test_subproblem_is_not_recomputed(self):
        ev = Evaluator(3)
        ev.evaluate(2, 5)
        calls = ev.calls

        # (2, 4) was computed on the way to (2, 5)
        assert ev.evaluate(2, 4) == 23
        assert ev.calls == calls

    def test_memo_reused_across_r7_gives_wrong_result(self):
        """A table filled under one r7 must not serve another r7."""
        shared = {}
        Evaluator(1, memo=shared).evaluate(1, 3)

        stale = Evaluator(5, memo=shared).evaluate(1, 3)
        fresh = Evaluator(5).evaluate(1, 3)

        assert fresh == 3 + 5 + 1
        assert stale == 3 + 1 + 1
        assert stale != fresh

    def test_fresh_table_per_trial(self):
        assert evaluate(1, 3, 1) != evaluate(1, 3, 5)


# ==========================================
# Argument checks
# ==========================================


class TestArguments:
    """Out-of-domain arguments."""

    @pytest.mark.parametrize("r0, r1", [(-1, 0), (0, -1), (MODULUS, 0), (0, MODULUS)])
    def test_out_of_domain_arguments(self, r0, r1):
        with pytest.raises(ValueError):
            Evaluator(0).evaluate(r0, r1)

    @pytest.mark.parametrize("r7", [-1, MODULUS])
    def test_out_of_domain_r7(self, r7):
        with pytest.raises(ValueError):
            Evaluator(r7)

    def test_wrap_around_decrement(self):
        ev = Evaluator(0, modulus=16)
        assert ev._dec(0) == 15
        assert ev._dec(5) == 4
