"""
Memoized evaluator for the teleporter confirmation function.

The function is a three-argument Ackermann variant over the modular domain
[0, M):

    f(0, r1)  = (r1 + 1) mod M
    f(r0, 0)  = f(r0 - 1, r7)
    f(r0, r1) = f(r0 - 1, f(r0, r1 - 1))

Naive evaluation explodes for r0 >= 4, so every computed (r0, r1) pair is
cached in a memo table that belongs to exactly one r7 (one trial). The
recursion is simulated with an explicit work stack because chains such as
f(1, n) -> f(1, n - 1) -> ... nest up to M frames deep, far past the default
interpreter recursion limit.
"""

from typing import Dict, List, Optional, Tuple

from calibration_search.config import MODULUS

Pair = Tuple[int, int]


class Evaluator:
    """
    Evaluates f(r0, r1) for a fixed r7 with a per-trial memo table.

    Attributes:
        r7: Calibration constant used by the r1 == 0 case
        modulus: Domain bound M
        memo: (r0, r1) -> result, valid for this r7 only
        calls: Pairs computed (memo misses)
        hits: Evaluations answered straight from the memo table
    """

    def __init__(self, r7: int, modulus: int = MODULUS, memo: Optional[Dict[Pair, int]] = None):
        """
        Initialize Evaluator.

        Args:
            r7: Calibration constant under test
            modulus: Domain bound M
            memo: Existing memo table. Only pass one computed for the same r7;
                a table from another r7 silently yields wrong results.
        """
        if not 0 <= r7 < modulus:
            raise ValueError(f"r7={r7} outside [0, {modulus})")

        self.r7 = r7
        self.modulus = modulus
        self.memo: Dict[Pair, int] = {} if memo is None else memo
        self.calls = 0
        self.hits = 0

    def _dec(self, value: int) -> int:
        """Subtract one with wrap-around, so 0 becomes M - 1."""
        return (value - 1) % self.modulus

    def evaluate(self, r0: int, r1: int) -> int:
        """
        Evaluate f(r0, r1) under this evaluator's r7.

        Args:
            r0: First argument in [0, M)
            r1: Second argument in [0, M)

        Returns:
            Result in [0, M)
        """
        for name, value in (("r0", r0), ("r1", r1)):
            if not 0 <= value < self.modulus:
                raise ValueError(f"{name}={value} outside [0, {self.modulus})")

        memo = self.memo
        root = (r0, r1)
        if root in memo:
            self.hits += 1
            return memo[root]

        # Each frame stays on the stack until every pair it depends on is
        # memoized. Dependencies strictly decrease (r0, r1) lexicographically,
        # so the loop always terminates.
        stack: List[Pair] = [root]
        while stack:
            pair = stack[-1]
            if pair in memo:
                stack.pop()
                continue

            a, b = pair
            if a == 0:
                self._store(pair, (b + 1) % self.modulus)
                stack.pop()
                continue

            if b == 0:
                dep = (self._dec(a), self.r7)
            else:
                inner = (a, self._dec(b))
                if inner not in memo:
                    stack.append(inner)
                    continue
                dep = (self._dec(a), memo[inner])

            if dep in memo:
                self._store(pair, memo[dep])
                stack.pop()
            else:
                stack.append(dep)

        return memo[root]

    def _store(self, pair: Pair, value: int) -> None:
        self.memo[pair] = value
        self.calls += 1


def evaluate(r0: int, r1: int, r7: int, modulus: int = MODULUS) -> int:
    """Run one trial: evaluate f(r0, r1) for r7 with a fresh memo table."""
    return Evaluator(r7, modulus).evaluate(r0, r1)


def run_trial(r7: int, r0: int, r1: int, target: int, modulus: int = MODULUS) -> bool:
    """Check whether r7 makes f(r0, r1) produce the target value."""
    return evaluate(r0, r1, r7, modulus) == target
