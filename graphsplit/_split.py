"""
_split.py
=========
Divisive spectral bipartition of a similarity matrix (the GS method).

Public API
----------
  graph_split(W, n=None, backend='best', dense_limit=DENSE_EIGEN_LIMIT)
      Build a ClusterTree by repeatedly cutting clusters in two along the
      sign of the Fiedler vector of their normalized graph Laplacian.

  fiedler_vector(S, backend='best', dense_limit=DENSE_EIGEN_LIMIT)
      The spectral criterion on its own, for one (sub)matrix.

Algorithm
---------
A FIFO queue starts with the cluster of all leaves.  For each cluster C with
|C| ≥ 2, taken in queue order:

1. Induced submatrix S = W[C, C]; affinity A = max(S, 0) with a zero
   diagonal; degrees d = A·1; N = D^-1/2 A D^-1/2 (rows of zero degree
   stay zero).
2. Fiedler vector v = eigenvector of the second-smallest eigenvalue of
   L = I - N.  Dense ``numpy.linalg.eigh`` for |C| ≤ dense_limit, deflated
   power iteration on I + N above that (numpy or numba backend).
3. Components with |v| ≤ SIGN_TOL count as zero.  v is oriented so that the
   lowest-index member with a nonzero component is positive; side A holds
   the members with v ≥ 0, side B the rest.
4. If a side is empty, fall back to a balanced split: order members by
   (v, leaf index) and cut the ordering at ceil(|C| / 2).
5. Sides of size ≥ 2 are queued; singletons are leaves.

The result is fully determined by W: no randomness enters the engine, and
the power iteration starts from a fixed vector.
"""

import logging
from collections import deque
from typing import Optional, Tuple

import numpy as np

from graphsplit._backend import import_cpu_kernels, resolve_backend
from graphsplit._context import get_backend_override
from graphsplit._errors import DegenerateInputError
from graphsplit._logging import log_degenerate_split
from graphsplit._matrix import as_similarity_matrix
from graphsplit._tree import ClusterTree


logger = logging.getLogger(__name__)

# Clusters up to this size use a dense symmetric eigensolve.
DENSE_EIGEN_LIMIT = 256

# Power-iteration controls for larger clusters.
POWER_MAX_ITER = 5000
POWER_TOL = 1e-10

# Fiedler components this close to zero are treated as exactly zero.
SIGN_TOL = 1e-12

# Seed of the fixed start vector for power iteration.
_START_SEED = 20181015

_kernel_first_call = {"cpu-parallel-power": True}


# ======================================================================== #
# Spectral criterion                                                        #
# ======================================================================== #


def _normalized_affinity(S: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Return ``(N, sqrt_degree)`` for the induced submatrix *S*.
    """
    A = np.clip(S, 0.0, None)
    np.fill_diagonal(A, 0.0)
    degree = A.sum(axis=1)
    sqrt_degree = np.sqrt(degree)
    inv_sqrt = np.zeros_like(degree)
    positive = degree > 0.0
    inv_sqrt[positive] = 1.0 / sqrt_degree[positive]
    N = A * inv_sqrt[:, None] * inv_sqrt[None, :]
    return N, sqrt_degree


def _fiedler_dense(N: np.ndarray) -> np.ndarray:
    m = N.shape[0]
    L = np.eye(m) - N
    _, evecs = np.linalg.eigh(L)
    return evecs[:, 1]


def _fiedler_power_python(N, top_vector, x, max_iter, tol):
    """numpy reference for _fiedler_power_njit."""
    n_iter = 0
    for it in range(max_iter):
        n_iter = it + 1
        y = N @ x + x
        y -= np.dot(top_vector, y) * top_vector
        norm = np.linalg.norm(y)
        if norm == 0.0:
            return np.zeros_like(x), n_iter
        y /= norm
        converged = np.linalg.norm(y - x) < tol
        x = y
        if converged:
            break
    return x, n_iter


def _fiedler_power(N, sqrt_degree, backend, max_iter, tol):
    m = N.shape[0]
    total = float(np.linalg.norm(sqrt_degree))
    if total == 0.0:
        # No positive similarity at all: every direction is equally good.
        return np.zeros(m)
    top_vector = sqrt_degree / total

    x = np.random.default_rng(_START_SEED).standard_normal(m)
    x -= np.dot(top_vector, x) * top_vector
    x /= np.linalg.norm(x)

    if resolve_backend(backend) == "cpu-parallel":
        _, kernel, _ = import_cpu_kernels()
        if _kernel_first_call["cpu-parallel-power"]:
            logger.info("  Compiling cpu-parallel-power kernel (cached for future calls)")
            _kernel_first_call["cpu-parallel-power"] = False
        out = np.empty(m, dtype=np.float64)
        n_iter = kernel(
            np.ascontiguousarray(N), top_vector, x, max_iter, tol, out
        )
        v = out
    else:
        v, n_iter = _fiedler_power_python(N, top_vector, x, max_iter, tol)

    if n_iter >= max_iter:
        logger.warning(
            "Power iteration hit max_iter=%d on a cluster of %d; "
            "the split may be approximate",
            max_iter,
            m,
        )
    return v


def fiedler_vector(
    S,
    backend: str = "best",
    dense_limit: int = DENSE_EIGEN_LIMIT,
    max_iter: int = POWER_MAX_ITER,
    tol: float = POWER_TOL,
) -> np.ndarray:
    """
    Fiedler vector of the normalized Laplacian of similarity matrix *S*.

    Parameters
    ----------
    S : np.ndarray
        Symmetric (sub)matrix, size m ≥ 2.  Not validated here.
    backend : str
        Backend for power iteration ('best', 'python', 'cpu-parallel').
    dense_limit : int
        Use a dense eigensolve when m ≤ dense_limit.
    max_iter, tol : int, float
        Power-iteration controls.

    Returns
    -------
    np.ndarray
        float64[m], unit norm (or all zeros when S has no positive
        off-diagonal similarity and the iterative solver is used).
    """
    N, sqrt_degree = _normalized_affinity(np.asarray(S, dtype=np.float64))
    if N.shape[0] <= dense_limit:
        return _fiedler_dense(N)
    return _fiedler_power(N, sqrt_degree, backend, max_iter, tol)


# ======================================================================== #
# Bipartition                                                               #
# ======================================================================== #


def _bipartition(members: np.ndarray, v: np.ndarray) -> Tuple[np.ndarray, np.ndarray, Optional[str]]:
    """
    Split sorted *members* by the sign of *v*.

    Returns
    -------
    (side_a, side_b, fallback_reason)
        Both sides sorted ascending.  fallback_reason is None when the sign
        rule produced two nonempty sides.
    """
    reason = None
    if not np.all(np.isfinite(v)):
        v = np.zeros(len(members))
        reason = "non-finite eigenvector"

    v = np.where(np.abs(v) <= SIGN_TOL, 0.0, v)
    nonzero = np.flatnonzero(v)
    if len(nonzero) and v[nonzero[0]] < 0.0:
        v = -v

    on_a = v >= 0.0
    if reason is None and on_a.all():
        reason = "sign rule left one side empty"

    if reason is None:
        return members[on_a], members[~on_a], None

    order = np.lexsort((members, v))
    half = (len(members) + 1) // 2
    side_a = np.sort(members[order[:half]])
    side_b = np.sort(members[order[half:]])
    return side_a, side_b, reason


def graph_split(
    W,
    n: Optional[int] = None,
    backend: str = "best",
    dense_limit: int = DENSE_EIGEN_LIMIT,
) -> ClusterTree:
    """
    Cluster the rows of similarity matrix *W* into a rooted binary tree.

    Parameters
    ----------
    W : array_like
        Symmetric, finite similarity matrix of size n × n.
    n : int, optional
        Expected size; checked against *W* when given.
    backend : str, default 'best'
        Backend for power iteration on large clusters.  Overridden by an
        active ``use_backend()`` context.
    dense_limit : int, default DENSE_EIGEN_LIMIT
        Largest cluster solved with a dense eigendecomposition.

    Returns
    -------
    ClusterTree
        n leaves and max(n - 1, 0) internal nodes.

    Raises
    ------
    InputFormatError
        If W is not square, symmetric and finite, or does not match *n*.
    DegenerateInputError
        If a cluster of two or more leaves cannot be split in two.
    """
    W = as_similarity_matrix(W, n)
    n_leaves = W.shape[0]
    tree = ClusterTree(n_leaves)
    if n_leaves == 1:
        return tree.finalize()

    override = get_backend_override()
    if override is not None:
        backend = override
    resolved = resolve_backend(backend)

    n_fallback = 0
    n_iterative = 0

    all_members = np.arange(n_leaves, dtype=np.int64)
    queue = deque([(tree.new_internal(all_members), all_members)])

    while queue:
        node, members = queue.popleft()
        m = len(members)

        if m == 2:
            side_a, side_b = members[:1], members[1:]
        else:
            S = W[np.ix_(members, members)]
            if m > dense_limit:
                n_iterative += 1
            v = fiedler_vector(S, backend=resolved, dense_limit=dense_limit)
            side_a, side_b, reason = _bipartition(members, v)
            if reason is not None:
                n_fallback += 1
                log_degenerate_split(m, int(members[0]), reason)

        if len(side_a) == 0 or len(side_b) == 0:
            raise DegenerateInputError(
                f"Cluster of {m} leaves starting at leaf {int(members[0]) + 1} "
                f"could not be split into two nonempty groups"
            )

        logger.debug(
            "split %d -> %d | %d", m, len(side_a), len(side_b)
        )

        children = []
        for side in (side_a, side_b):
            if len(side) == 1:
                children.append(int(side[0]))
            else:
                child = tree.new_internal(side)
                queue.append((child, side))
                children.append(child)
        tree.add_split(node, children[0], children[1])

    logger.debug(
        "graph_split: %d leaves, %d splits, %d balanced fallbacks, "
        "%d iterative eigensolves (backend=%r)",
        n_leaves,
        n_leaves - 1,
        n_fallback,
        n_iterative,
        resolved,
    )
    return tree.finalize()
