"""
Teleporter Calibration Search.

This package finds the calibration constant r7 that makes the teleporter
confirmation function return the expected value, by scanning the modular
domain in parallel with a memoized evaluator.
"""

__version__ = "1.0.0"
