"""
_logging.py
===========
Message formatting for graphsplit.

Every function here receives numbers that were already computed elsewhere
and only emits log records; none of them changes state.  The splitting,
perturbation and I/O modules call into this one instead of formatting
messages themselves, so tests can silence or capture output in one place.
"""

import logging
import os
import platform
from typing import List, Optional

import numpy as np


logger = logging.getLogger(__name__)


# ============================================================================ #
# Environment (logged once, when the driver module is imported)
# ============================================================================ #


def log_optimization_status(numba_available: bool) -> None:
    """
    Report the machine and the numba toolchain at INFO.

    Parameters
    ----------
    numba_available : bool
        Result of check_numba_available().
    """
    logger.info(
        "System: %s (%s), %d CPU cores, Python %s",
        platform.machine(),
        platform.system(),
        os.cpu_count() or 1,
        platform.python_version(),
    )

    try:
        import psutil
    except ImportError:
        psutil = None
    if psutil is not None:
        mem = psutil.virtual_memory()
        logger.info(
            "Memory: %.1f GB total, %.1f GB available",
            mem.total / 1024**3,
            mem.available / 1024**3,
        )

    if not numba_available:
        logger.info("numba not importable; power iteration and transitivity use numpy")
        return

    import numba
    import llvmlite

    logger.info("numba %s (llvmlite %s)", numba.__version__, llvmlite.__version__)
    logger.info("numba threads: %d", numba.get_num_threads())


def install_numba_warning_filter(numba_available: bool) -> None:
    """
    Send NumbaPerformanceWarning through the graphsplit logger at WARNING
    instead of printing it with the default warnings hook.

    Parameters
    ----------
    numba_available : bool
        Result of check_numba_available(); nothing is installed when False.
    """
    import warnings

    if not numba_available:
        return

    from numba.core.errors import NumbaPerformanceWarning

    default_hook = warnings.showwarning

    def showwarning(message, category, filename, lineno, file=None, line=None):
        if issubclass(category, NumbaPerformanceWarning):
            logger.warning("numba performance: %s (%s:%d)", message, filename, lineno)
            return
        default_hook(message, category, filename, lineno, file, line)

    warnings.showwarning = showwarning


def log_backend_availability(backends_available: List[str]) -> None:
    """List the installed backends and the one 'best' resolves to."""
    logger.info("Backends: %s (best: %s)", ", ".join(backends_available), backends_available[-1])


# ============================================================================ #
# Run Logging (called by the driver)
# ============================================================================ #


def log_run_settings(
    source: str,
    n_sequences: int,
    transitivity_score: float,
    seed: int,
    ep_num: int,
    noise: float,
) -> None:
    """
    Log the settings block for a run.

    Parameters
    ----------
    source : str
        Where the matrix came from (file name or '<array>').
    n_sequences : int
        Matrix size.
    transitivity_score : float
        Diagnostic transitivity of the input matrix.
    seed : int
        Random seed; 0 or less means an entropy-derived seed.
    ep_num : int
        Number of edge-perturbation trials.
    noise : float
        Perturbation amplitude.
    """
    logger.info("Settings:")
    logger.info("-Input")
    logger.info("  File = %s", source)
    logger.info("  # of sequences = %d", n_sequences)
    logger.info("  Transitivity = %.6g", transitivity_score)
    logger.info("-EP method")
    if seed > 0:
        logger.info("  Random seed = %d", seed)
    else:
        logger.info("  Random seed = a random number (default)")
    logger.info("  # of iterations = %d", ep_num)
    logger.info("  Noise amplitude = %.3g", noise)


def log_tree_statistics(
    n_leaves: int, n_internal: int, max_depth: int, elapsed: float
) -> None:
    """
    Log shape statistics of the base GS tree.

    Parameters
    ----------
    n_leaves : int
        Number of leaves.
    n_internal : int
        Number of internal nodes (n_leaves - 1, or 0 for a single leaf).
    max_depth : int
        Maximum edge depth from the root.
    elapsed : float
        Wall-clock seconds spent in graph splitting.
    """
    logger.info(
        "GS tree built: %d leaves, %d internal nodes, max depth %d (%.3f s)",
        n_leaves,
        n_internal,
        max_depth,
        elapsed,
    )
    if n_leaves >= 8 and max_depth == n_leaves - 1:
        logger.warning(
            "GS tree is a caterpillar (every split peels off one leaf); "
            "the similarity matrix may carry little cluster structure."
        )


def log_ep_progress(done: int, total: int) -> None:
    """Log edge-perturbation progress at roughly 10% steps."""
    step = max(1, total // 10)
    if done == total or done % step == 0:
        logger.info("  %d/%d iterations", done, total)


def log_support_summary(supports: List[int], trials: int) -> None:
    """
    Log the distribution of support values on the annotated tree.

    Parameters
    ----------
    supports : List[int]
        Support percentage of every non-root internal branch.
    trials : int
        Number of EP trials behind the values.
    """
    if not supports:
        logger.info("EP support: no non-root internal branches to annotate")
        return

    values = np.asarray(supports, dtype=np.float64)
    n_strong = int(np.sum(values >= 95.0))
    logger.info(
        "EP support over %d trials: min %d, median %.1f, max %d; "
        "%d/%d branches >= 95",
        trials,
        int(values.min()),
        float(np.median(values)),
        int(values.max()),
        n_strong,
        len(supports),
    )


def log_degenerate_split(
    n_members: int, min_leaf: int, reason: str, level: Optional[int] = None
) -> None:
    """
    Log that a cluster fell back to the balanced split.

    Parameters
    ----------
    n_members : int
        Size of the cluster.
    min_leaf : int
        Smallest 0-based leaf index in the cluster (for identification).
    reason : str
        Why the spectral rule failed.
    level : int, optional
        Logging level; defaults to DEBUG.
    """
    logger.log(
        logging.DEBUG if level is None else level,
        "Balanced fallback for cluster of %d (leaf %d and up): %s",
        n_members,
        min_leaf + 1,
        reason,
    )
