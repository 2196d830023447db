"""
_context.py
===========
Scoped overrides for graphsplit: logger levels, warning filters and the
numeric backend.  Each manager puts the previous state back on exit, also
when the body raises.
"""

import logging
import warnings
from contextlib import contextmanager
from typing import Optional, Type

from graphsplit._errors import ArgumentError


# Backend forced by use_backend(); None means "use the keyword argument".
_backend_override: Optional[str] = None


# ============================================================================ #
# Logging
# ============================================================================ #


@contextmanager
def suppress_logger(logger_name: str, level: int = logging.CRITICAL):
    """
    Raise one logger's threshold for the duration of the block.

    Parameters
    ----------
    logger_name : str
        Logger to adjust, e.g. ``'graphsplit._perturb'`` to hide EP
        progress while keeping the rest.
    level : int, default logging.CRITICAL
        Threshold inside the block.

    Examples
    --------
    >>> with suppress_logger('graphsplit._perturb'):
    ...     tally = gs.edge_perturbation(500, seed=3)
    """
    target = logging.getLogger(logger_name)
    saved = target.level
    target.setLevel(level)
    try:
        yield target
    finally:
        target.setLevel(saved)


@contextmanager
def quiet(level: int = logging.CRITICAL):
    """
    Silence the whole package.

    All module loggers hang below ``graphsplit``, so raising that one
    logger's threshold is enough.

    Examples
    --------
    >>> with quiet():
    ...     text = GraphSplit(W).run(ep_num=100, seed=7)

    Keep warnings (non-converged power iteration, caterpillar trees):

    >>> with quiet(logging.WARNING):
    ...     tree = graph_split(W)
    """
    with suppress_logger("graphsplit", level):
        yield


# ============================================================================ #
# Warnings
# ============================================================================ #


@contextmanager
def suppress_warnings(category: Optional[Type[Warning]] = None):
    """
    Ignore warnings of *category* (all warnings when None) inside the block.

    Examples
    --------
    >>> from numba.core.errors import NumbaPerformanceWarning
    >>> with suppress_warnings(NumbaPerformanceWarning):
    ...     score = transitivity(W, backend='cpu-parallel')
    """
    with warnings.catch_warnings():
        if category is None:
            warnings.simplefilter("ignore")
        else:
            warnings.filterwarnings("ignore", category=category)
        yield


# ============================================================================ #
# Backend
# ============================================================================ #


@contextmanager
def use_backend(backend: str):
    """
    Force every graph_split() and transitivity() call in the block onto
    *backend*, whatever their ``backend=`` argument says.

    Parameters
    ----------
    backend : str
        'python', 'cpu-parallel' or 'best'.

    Raises
    ------
    ArgumentError
        If *backend* is unknown or not installed.

    Notes
    -----
    The override is module state and is not thread-safe; threads that need
    different backends should pass ``backend=`` explicitly.

    Examples
    --------
    >>> with use_backend('python'):
    ...     tree = graph_split(W, dense_limit=0)
    """
    global _backend_override

    from graphsplit._backend import get_available_backends

    if backend != "best" and backend not in get_available_backends():
        raise ArgumentError(
            f"Backend '{backend}' not available. "
            f"Available backends: {', '.join(get_available_backends())}"
        )

    previous = _backend_override
    _backend_override = backend
    try:
        yield
    finally:
        _backend_override = previous


def get_backend_override() -> Optional[str]:
    """Backend forced by an enclosing use_backend() block, or None."""
    return _backend_override
