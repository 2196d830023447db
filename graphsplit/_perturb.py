"""
_perturb.py
===========
Edge perturbation (EP): branch support by repeated randomized re-splitting.

Each trial jitters every off-diagonal similarity, re-runs graph_split() on
the jittered matrix and counts, for every internal node of the resulting
tree, one occurrence of its clade.  After ``ep_num`` trials the support of a
clade in the base tree is the percentage of trials in which it recurred.

Noise model
-----------
One uniform draw ``u`` in [0, 1) per upper-triangle entry, taken in the
row-major order of ``numpy.triu_indices(n, 1)`` with a single
``rng.random(k)`` call::

    W'[i, j] = W'[j, i] = W[i, j] * (1 - noise + 2 * noise * u)

The factor is uniform on [1 - noise, 1 + noise), so the jitter is
multiplicative and mean-preserving.  The diagonal is copied unchanged.

Randomness
----------
The generator is created once by the caller (see make_rng) and passed by
reference into every trial; trials consume it strictly in order, so a fixed
seed reproduces the whole tally.
"""

import logging
from collections import Counter
from typing import Optional

import numpy as np

from graphsplit._errors import ArgumentError
from graphsplit._logging import log_ep_progress
from graphsplit._matrix import as_similarity_matrix
from graphsplit._split import graph_split


logger = logging.getLogger(__name__)

DEFAULT_NOISE = 0.5


class SupportTally(Counter):
    """
    Clade signature -> number of EP trials in which the clade occurred.

    A ``collections.Counter``: missing signatures read as 0.  ``n_trials``
    counts the trials recorded so far.  Only ep_trial() adds to it.

    Examples
    --------
    >>> tally = SupportTally()
    >>> rng = make_rng(42)
    >>> for _ in range(10):
    ...     ep_trial(W, W.shape[0], rng, tally)
    >>> tally.n_trials
    10
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.n_trials = 0

    def record(self, signatures) -> None:
        """Count one trial in which every clade in *signatures* occurred."""
        self.update(signatures)
        self.n_trials += 1

    def support(self, signature: int) -> float:
        """Fraction of recorded trials containing *signature* (0.0 if none)."""
        if self.n_trials == 0:
            return 0.0
        return self[signature] / self.n_trials

    def copy(self) -> "SupportTally":
        """Independent copy, trial count included."""
        tally = self.__class__(self)
        tally.n_trials = self.n_trials
        return tally

    def __reduce__(self):
        # Counter rebuilds from the counts alone; carry n_trials as state.
        return self.__class__, (dict(self),), {"n_trials": self.n_trials}

    def __repr__(self) -> str:
        return f"SupportTally(n_trials={self.n_trials}, n_clades={len(self)})"


def make_rng(seed: int = 0) -> np.random.Generator:
    """
    Create the random stream for an EP run.

    Parameters
    ----------
    seed : int, default 0
        Positive values give a reproducible stream; 0 (or negative) draws
        the seed from operating-system entropy.

    Returns
    -------
    numpy.random.Generator
    """
    if seed > 0:
        return np.random.default_rng(seed)
    return np.random.default_rng()


def perturb_matrix(W: np.ndarray, rng, noise: float = DEFAULT_NOISE) -> np.ndarray:
    """
    Return a jittered copy of *W* (noise model in the module docstring).

    Parameters
    ----------
    W : np.ndarray
        Validated symmetric similarity matrix.
    rng : numpy.random.Generator
        Random stream; anything with ``random(size)`` returning uniforms
        in [0, 1) works.
    noise : float, default DEFAULT_NOISE
        Amplitude in [0, 1].

    Returns
    -------
    np.ndarray
        Symmetric float64 matrix of the same shape.
    """
    if not 0.0 <= noise <= 1.0:
        raise ArgumentError(f"noise must be in [0, 1], got {noise}")

    n = W.shape[0]
    perturbed = np.array(W, dtype=np.float64)
    if n < 2:
        return perturbed

    rows, cols = np.triu_indices(n, 1)
    u = np.asarray(rng.random(len(rows)), dtype=np.float64)
    values = W[rows, cols] * (1.0 - noise + 2.0 * noise * u)
    perturbed[rows, cols] = values
    perturbed[cols, rows] = values
    return perturbed


def ep_trial(
    W,
    n: int,
    rng,
    tally: SupportTally,
    noise: float = DEFAULT_NOISE,
    backend: str = "best",
) -> None:
    """
    Run one edge-perturbation trial and add its clades to *tally*.

    Parameters
    ----------
    W : array_like
        Similarity matrix (n × n).
    n : int
        Number of sequences.
    rng : numpy.random.Generator
        Shared random stream, advanced by this call.
    tally : SupportTally
        Shared tally; every internal node of the perturbed tree (root
        included) adds one to its clade, and ``n_trials`` grows by one.
    noise : float, default DEFAULT_NOISE
        Jitter amplitude.
    backend : str, default 'best'
        Backend for graph_split().

    Raises
    ------
    InputFormatError, DegenerateInputError
        Propagated from graph_split().
    """
    W = as_similarity_matrix(W, n)
    perturbed = perturb_matrix(W, rng, noise)
    tree = graph_split(perturbed, n, backend=backend)
    tally.record(tree.clade_signatures())


def edge_perturbation(
    W,
    ep_num: int,
    rng=None,
    seed: int = 0,
    noise: float = DEFAULT_NOISE,
    backend: str = "best",
) -> SupportTally:
    """
    Run *ep_num* trials into a fresh tally.

    If any trial raises, the exception propagates and no tally is returned,
    so an incomplete tally can never understate support values.

    Parameters
    ----------
    W : array_like
        Similarity matrix.
    ep_num : int
        Number of trials; 0 returns an empty tally.
    rng : numpy.random.Generator, optional
        Random stream.  Created with make_rng(seed) when omitted.
    seed : int, default 0
        Seed for make_rng() when *rng* is None.
    noise : float, default DEFAULT_NOISE
        Jitter amplitude.
    backend : str, default 'best'
        Backend for graph_split().

    Returns
    -------
    SupportTally

    Raises
    ------
    ArgumentError
        If ep_num is negative or noise is outside [0, 1].
    """
    if ep_num < 0:
        raise ArgumentError(f"ep_num must be non-negative, got {ep_num}")
    if not 0.0 <= noise <= 1.0:
        raise ArgumentError(f"noise must be in [0, 1], got {noise}")

    W = as_similarity_matrix(W)
    n = W.shape[0]
    if rng is None:
        rng = make_rng(seed)

    tally = SupportTally()
    if ep_num == 0:
        return tally

    logger.info("-EP method")
    for trial in range(1, ep_num + 1):
        ep_trial(W, n, rng, tally, noise=noise, backend=backend)
        log_ep_progress(trial, ep_num)
    logger.info("  done.")
    return tally
