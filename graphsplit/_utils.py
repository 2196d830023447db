"""
_utils.py
=========
General-purpose utility functions for graphsplit.

These are standalone functions that don't depend on the main classes
and could be useful in multiple contexts.
"""

import math
from typing import Iterable, List


def clade_signature(leaves: Iterable[int]) -> int:
    """
    Return the canonical signature of a set of leaf indices.

    The signature is an integer bitmask with bit ``i`` set for every leaf
    index ``i`` in *leaves*.  It does not depend on the order in which the
    leaves are given, so two clades with the same members always produce
    the same signature, whichever tree they came from.

    Parameters
    ----------
    leaves : iterable of int
        0-based leaf indices.  Duplicates are harmless.

    Returns
    -------
    int
        Bitmask signature.

    Examples
    --------
    >>> clade_signature([0, 1])
    3
    >>> clade_signature([3, 0])
    9
    >>> clade_signature([])
    0
    """
    bits = 0
    for leaf in leaves:
        bits |= 1 << int(leaf)
    return bits


def signature_leaves(signature: int) -> List[int]:
    """
    Return the sorted 0-based leaf indices encoded in *signature*.

    Examples
    --------
    >>> signature_leaves(9)
    [0, 3]
    >>> signature_leaves(0)
    []
    """
    leaves = []
    i = 0
    while signature:
        if signature & 1:
            leaves.append(i)
        signature >>= 1
        i += 1
    return leaves


def support_percent(count: int, trials: int) -> int:
    """
    Convert a clade recurrence count into an integer percentage.

    Uses nearest-integer rounding with halves rounded up, i.e.
    ``floor(100 * count / trials + 0.5)``.  Python's built-in ``round``
    rounds halves to even, which would make 0.5% round down to 0 but 2.5%
    round down to 2; rounding half up keeps the convention monotone.

    Parameters
    ----------
    count : int
        Number of trials in which the clade occurred (0 ≤ count ≤ trials).
    trials : int
        Total number of trials; must be positive.

    Returns
    -------
    int
        Support in [0, 100].

    Examples
    --------
    >>> support_percent(3, 4)
    75
    >>> support_percent(1, 8)
    13
    >>> support_percent(0, 10)
    0
    """
    return int(math.floor(100.0 * count / trials + 0.5))


# Characters that force a Newick label to be quoted.
_NEWICK_SPECIAL = set("()[]':;, \t\n")


def quote_label(label: str) -> str:
    """
    Quote a leaf label for Newick output if it contains special characters.

    Examples
    --------
    >>> quote_label('seq1')
    'seq1'
    >>> quote_label('E. coli')
    "'E. coli'"
    >>> quote_label("it's")
    "'it''s'"
    """
    if label and not any(c in _NEWICK_SPECIAL for c in label):
        return label
    return "'" + label.replace("'", "''") + "'"


def format_newick(newick: str) -> str:
    """
    Format a NEWICK string for consistent representation.

    Ensures the NEWICK string:
    - Ends with a semicolon
    - Has no leading/trailing whitespace

    Examples
    --------
    >>> format_newick('((1,2),(3,4))')
    '((1,2),(3,4));'

    >>> format_newick('  ((1,2),3);  ')
    '((1,2),3);'
    """
    newick = newick.strip()
    if not newick.endswith(";"):
        newick += ";"
    return newick
