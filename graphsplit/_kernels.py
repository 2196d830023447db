"""
_kernels.py
===========
CPU-accelerated numeric kernels using Numba.

This module contains ONLY numba-accelerated code and should not import other
project modules to avoid import-time complications.

Exported Functions
------------------
_fiedler_power_njit : njit function
    Deflated power iteration for the Fiedler vector of a normalized
    affinity matrix.  The matrix-vector product runs in parallel over rows.

_transitivity_njit : njit function
    Weighted triangle / wedge sums used by the transitivity score.

Notes
-----
- Functions use prange for parallel execution
- cache=True persists compiled binary to disk for faster subsequent runs
- Kernels take only numpy arrays and plain scalars; all validation and
  argument preparation happens in the host wrappers (_split.py, _matrix.py)
"""

import numpy as np
from numba import njit, prange


# ======================================================================== #
# CPU Kernels                                                               #
# ======================================================================== #


@njit(parallel=True, cache=True)
def _fiedler_power_njit(norm_affinity, top_vector, x, max_iter, tol, out):
    """
    Power iteration on ``I + N`` with the known top eigenvector deflated.

    ``N = D^-1/2 A D^-1/2`` has eigenvalues in [-1, 1], so ``I + N`` is
    positive semi-definite and the iteration never flips sign between
    steps.  After projecting out *top_vector* (``sqrt(d) / |sqrt(d)|``),
    the dominant remaining eigenvector is the eigenvector of the
    second-smallest eigenvalue of the normalized Laplacian ``I - N``.

    Parameters
    ----------
    norm_affinity : float64[m, m]
        Normalized affinity matrix N.
    top_vector : float64[m]
        Unit-norm top eigenvector of N, deflated at every step.
    x : float64[m]
        Unit-norm start vector, orthogonal to *top_vector*.  Overwritten.
    max_iter : int
        Maximum number of iterations.
    tol : float
        Stop when the Euclidean change between iterates drops below tol.
    out : float64[m]
        Output: the converged vector, or zeros if the iterate collapsed.

    Returns
    -------
    int
        Number of iterations performed.
    """
    m = norm_affinity.shape[0]
    y = np.empty(m, dtype=np.float64)
    n_iter = 0

    for it in range(max_iter):
        n_iter = it + 1

        for i in prange(m):
            s = x[i]
            for j in range(m):
                s += norm_affinity[i, j] * x[j]
            y[i] = s

        dot = 0.0
        for i in range(m):
            dot += top_vector[i] * y[i]

        norm = 0.0
        for i in range(m):
            y[i] -= dot * top_vector[i]
            norm += y[i] * y[i]
        norm = np.sqrt(norm)

        if norm == 0.0:
            for i in range(m):
                out[i] = 0.0
            return n_iter

        diff = 0.0
        for i in range(m):
            y[i] /= norm
            d = y[i] - x[i]
            diff += d * d
            x[i] = y[i]

        if np.sqrt(diff) < tol:
            break

    for i in range(m):
        out[i] = x[i]
    return n_iter


@njit(parallel=True, cache=True)
def _transitivity_njit(affinity):
    """
    Weighted triangle and wedge sums over distinct index triples.

    Parameters
    ----------
    affinity : float64[n, n]
        Non-negative symmetric affinity matrix with a zero diagonal.

    Returns
    -------
    (float, float)
        (Σ a_ij a_jk a_ki, Σ a_ij a_jk) over distinct i, j, k.
    """
    n = affinity.shape[0]
    triangles = 0.0
    wedges = 0.0

    for i in prange(n):
        for j in range(n):
            if j == i:
                continue
            aij = affinity[i, j]
            if aij == 0.0:
                continue
            for k in range(n):
                if k == i or k == j:
                    continue
                w = aij * affinity[j, k]
                wedges += w
                triangles += w * affinity[k, i]

    return triangles, wedges
