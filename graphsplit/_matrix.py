"""
_matrix.py
==========
Similarity-matrix input: validation, plain-text file reader and the
transitivity diagnostic.

Matrix file format
------------------
::

    # optional comment lines
    4
    seqA  1.0  0.9  0.1  0.1
    seqB  0.9  1.0  0.1  0.1
    seqC  0.1  0.1  1.0  0.9
    seqD  0.1  0.1  0.9  1.0

* Blank lines and lines starting with ``#`` are ignored.
* The first remaining line may hold a single integer: the number of rows.
* Values are separated by whitespace or commas.
* A row may start with a name (any first token that is not a number).
  Unnamed rows are called ``"1"``, ``"2"``, ... after their position.

The reader only checks shape and numbers; symmetry and finiteness are checked
by ``as_similarity_matrix``, which every public entry point calls.
"""

import logging
import os
import re
from typing import List, Optional, Tuple, Union

import numpy as np

from graphsplit._backend import resolve_backend, import_cpu_kernels
from graphsplit._context import get_backend_override
from graphsplit._errors import InputFormatError


logger = logging.getLogger(__name__)

# Largest |W[i,j] - W[j,i]| accepted before a matrix counts as asymmetric.
SYMMETRY_ATOL = 1e-9

_SEPARATORS = re.compile(r"[,\s]+")

_kernel_first_call = {"cpu-parallel-transitivity": True}


def as_similarity_matrix(values, n: Optional[int] = None) -> np.ndarray:
    """
    Validate *values* as a similarity matrix and return a read-only copy.

    Parameters
    ----------
    values : array_like
        Square 2-D array of similarities.
    n : int, optional
        Expected size.  Checked against the array when given.

    Returns
    -------
    np.ndarray
        float64 array of shape (n, n), exactly symmetric, not writeable.

    Raises
    ------
    InputFormatError
        If the array is not 2-D and square, is empty, does not match *n*,
        contains NaN/inf, or is not symmetric within SYMMETRY_ATOL.
    """
    try:
        W = np.array(values, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise InputFormatError(f"Similarity matrix is not numeric: {e}") from e

    if W.ndim != 2 or W.shape[0] != W.shape[1]:
        raise InputFormatError(
            f"Similarity matrix must be square; got shape {W.shape}"
        )
    if W.shape[0] == 0:
        raise InputFormatError("Similarity matrix is empty")
    if n is not None and int(n) != W.shape[0]:
        raise InputFormatError(
            f"Matrix size {W.shape[0]} does not match declared size {n}"
        )
    if not np.all(np.isfinite(W)):
        bad = np.argwhere(~np.isfinite(W))[0]
        raise InputFormatError(
            f"Similarity matrix contains a non-finite entry at "
            f"({bad[0] + 1}, {bad[1] + 1})"
        )

    asym = np.abs(W - W.T)
    if np.any(asym > SYMMETRY_ATOL):
        i, j = np.unravel_index(int(np.argmax(asym)), asym.shape)
        raise InputFormatError(
            f"Similarity matrix is not symmetric: W[{i + 1},{j + 1}]="
            f"{W[i, j]!r} but W[{j + 1},{i + 1}]={W[j, i]!r}"
        )

    W = 0.5 * (W + W.T)
    W.setflags(write=False)
    return W


def _parse_float(token: str) -> Optional[float]:
    try:
        return float(token)
    except ValueError:
        return None


def read_matrix(
    source: Union[str, os.PathLike],
) -> Tuple[np.ndarray, List[str]]:
    """
    Read a similarity matrix file.

    Parameters
    ----------
    source : str or path-like
        Path to the matrix file (format described in the module docstring).

    Returns
    -------
    (np.ndarray, list[str])
        The validated matrix and one name per row.

    Raises
    ------
    InputFormatError
        If the file is empty, has ragged rows, a non-numeric value, a row
        count that disagrees with the header, fails matrix validation, or
        is not UTF-8 text.
    OSError
        If the file cannot be opened.
    """
    rows: List[List[float]] = []
    names: List[Optional[str]] = []
    declared: Optional[int] = None
    first = True

    try:
        with open(source, encoding="utf-8") as fh:
            lines = fh.readlines()
    except UnicodeDecodeError as e:
        raise InputFormatError(f"{source}: not a text matrix file ({e})") from e

    for lineno, raw in enumerate(lines, start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue

        tokens = [t for t in _SEPARATORS.split(line) if t]

        if first:
            first = False
            if len(tokens) == 1 and re.fullmatch(r"\d+", tokens[0]):
                declared = int(tokens[0])
                continue

        name = None
        if _parse_float(tokens[0]) is None:
            name = tokens[0]
            tokens = tokens[1:]

        row = []
        for tok in tokens:
            value = _parse_float(tok)
            if value is None:
                raise InputFormatError(
                    f"{source}:{lineno}: non-numeric value {tok!r}"
                )
            row.append(value)

        if rows and len(row) != len(rows[0]):
            raise InputFormatError(
                f"{source}:{lineno}: expected {len(rows[0])} values, "
                f"found {len(row)}"
            )
        rows.append(row)
        names.append(name)

    if not rows:
        raise InputFormatError(f"{source}: no matrix rows found")
    if declared is not None and declared != len(rows):
        raise InputFormatError(
            f"{source}: header declares {declared} rows, found {len(rows)}"
        )
    if len(rows[0]) != len(rows):
        raise InputFormatError(
            f"{source}: matrix has {len(rows)} rows of {len(rows[0])} values"
        )

    W = as_similarity_matrix(rows)
    labels = [
        name if name is not None else str(i + 1) for i, name in enumerate(names)
    ]
    logger.debug("Read %dx%d matrix from %s", W.shape[0], W.shape[1], source)
    return W, labels


def _transitivity_python(affinity: np.ndarray) -> Tuple[float, float]:
    """
    numpy reference for the triangle / wedge sums.

    With a zero diagonal, ``(A @ A)[i, k]`` only sums over j distinct from
    i and k, so both sums reduce to matrix products.
    """
    a2 = affinity @ affinity
    triangles = float(np.sum(a2 * affinity))
    wedges = float(np.sum(a2) - np.trace(a2))
    return triangles, wedges


def transitivity(W, backend: str = "best") -> float:
    """
    Weighted transitivity (global clustering coefficient) of a matrix.

    A diagnostic of how consistently the similarities cluster: 1.0 when every
    pair of similar neighbours of a sequence is itself similar, lower when
    similarity is intransitive.  Never used by the clustering itself.

    With ``A = max(W, 0) / max(W)`` and a zeroed diagonal::

        T = Σ a_ij a_jk a_ki / Σ a_ij a_jk     (i, j, k distinct)

    Parameters
    ----------
    W : array_like
        Similarity matrix (validated here).
    backend : str, default 'best'
        'python' (numpy) or 'cpu-parallel' (numba).

    Returns
    -------
    float
        Score in [0, 1]; 0.0 when there are no wedges (n < 3 or no
        positive off-diagonal similarity).
    """
    W = as_similarity_matrix(W)

    override = get_backend_override()
    if override is not None:
        backend = override
    resolved = resolve_backend(backend)

    affinity = np.clip(W, 0.0, None)
    np.fill_diagonal(affinity, 0.0)
    peak = float(affinity.max())
    if peak <= 0.0:
        return 0.0
    affinity = np.ascontiguousarray(affinity / peak)

    if resolved == "cpu-parallel":
        _, _, kernel = import_cpu_kernels()
        if _kernel_first_call["cpu-parallel-transitivity"]:
            logger.info(
                "  Compiling cpu-parallel-transitivity kernel (cached for future calls)"
            )
            _kernel_first_call["cpu-parallel-transitivity"] = False
        triangles, wedges = kernel(affinity)
    else:
        triangles, wedges = _transitivity_python(affinity)

    if wedges <= 0.0:
        return 0.0
    return float(min(1.0, triangles / wedges))
