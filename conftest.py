"""
conftest.py
===========
Session-level pytest configuration for the test suite.

Custom marks
------------
slow
    Applied to tests that run many EP trials or split matrices large enough
    to exercise the iterative eigensolver.  Deselect with ``-m "not slow"``.

Warning filters
---------------
NumbaPerformanceWarning messages are filtered out during tests.  They are
expected for the small matrices used here and are not informative for
correctness testing.
"""

import warnings

import pytest


def pytest_configure(config):
    """
    Configure pytest before test collection begins.

    This runs before any test modules are imported, which is important for
    catching warnings from numba kernel compilation.
    """
    config.addinivalue_line(
        "markers",
        "slow: many EP trials or large matrices (deselect with -m 'not slow')",
    )

    try:
        from numba.core.errors import NumbaPerformanceWarning

        warnings.filterwarnings("ignore", category=NumbaPerformanceWarning)
    except ImportError:
        pass


def pytest_unconfigure(config):
    """Restore default warning behavior."""
    warnings.resetwarnings()
