"""
_newick.py
==========
Tree-text serialization for graphsplit.

Public API
----------
  render_newick(tree, labels=None)
      Fully parenthesized, comma-separated, ';'-terminated text of a
      ClusterTree.  Leaves are 1-based matrix row numbers.

  annotate_support(text, tally, trials, n)
      Insert an integer support percentage after every non-root ')'.

  relabel_leaves(text, names)
      Replace leaf numbers by names, leaving support labels alone.

Traversal order
---------------
Children are visited in order of their smallest leaf index, which is how
ClusterTree stores them (left_child first).  annotate_support re-derives
each clade from the text itself, so it works on any text produced by
render_newick, with or without the tree at hand.
"""

from typing import List, Mapping, Optional, Sequence

from graphsplit._errors import ArgumentError, InputFormatError
from graphsplit._tree import ClusterTree
from graphsplit._utils import format_newick, quote_label, support_percent


_DELIMITERS = "(),;"


def render_newick(tree: ClusterTree, labels: Optional[Sequence[str]] = None) -> str:
    """
    Render *tree* as Newick text without branch lengths or support values.

    Parameters
    ----------
    tree : ClusterTree
        A finalized tree.
    labels : sequence of str, optional
        One name per leaf (matrix row order).  Numbers 1..n are used when
        omitted.

    Returns
    -------
    str
        e.g. ``'((1,2),(3,4));'``; a single leaf renders as ``'1;'``.

    Examples
    --------
    >>> render_newick(graph_split(W))
    '((1,2),(3,4));'
    """
    n = tree.n_leaves
    if labels is not None and len(labels) != n:
        raise ArgumentError(f"Expected {n} labels, got {len(labels)}")

    def leaf_text(leaf: int) -> str:
        if labels is None:
            return str(leaf + 1)
        return quote_label(str(labels[leaf]))

    parts: List[str] = []
    # Iterative pre-order walk; strings on the stack are emitted verbatim.
    stack: list = [tree.root]
    while stack:
        item = stack.pop()
        if isinstance(item, str):
            parts.append(item)
        elif item < n:
            parts.append(leaf_text(item))
        else:
            parts.append("(")
            stack.extend((")", int(tree.right_child[item]), ",", int(tree.left_child[item])))
    parts.append(";")
    return "".join(parts)


def _leaf_number(token: str, n: int) -> int:
    if not token.isdigit():
        raise InputFormatError(f"Leaf token {token!r} is not a leaf number")
    k = int(token)
    if k < 1 or k > n:
        raise InputFormatError(f"Leaf number {k} outside 1..{n}")
    return k


def annotate_support(
    text: str, tally: Mapping[int, int], trials: int, n: int
) -> str:
    """
    Insert edge-perturbation support values into base tree text.

    For every internal node except the root, the clade signature is derived
    from the leaves inside its parentheses and its recurrence count is read
    from *tally* (0 when absent).  The value
    ``floor(100 * count / trials + 0.5)`` is written immediately after the
    node's closing parenthesis.

    Parameters
    ----------
    text : str
        Unannotated tree text from render_newick().
    tally : Mapping[int, int]
        Clade signature -> number of trials in which the clade occurred.
    trials : int
        Number of trials behind *tally*; must be positive.
    n : int
        Number of leaves.

    Returns
    -------
    str
        Annotated text, e.g. ``'((1,2)100,(3,4)100);'``.

    Raises
    ------
    ArgumentError
        If trials ≤ 0.
    InputFormatError
        If the text is unbalanced, names a leaf outside 1..n or twice,
        misses a leaf, or already carries labels after ')'.
    """
    if trials <= 0:
        raise ArgumentError(f"trials must be positive, got {trials}")

    s = format_newick(text)
    length = len(s)
    out: List[str] = []
    stack: List[int] = []
    seen = 0
    done = False
    i = 0

    while i < length:
        c = s[i]

        if c.isspace():
            out.append(c)
            i += 1
            continue

        if done:
            raise InputFormatError(f"Unexpected text after ';' at position {i}")

        if c == "(":
            stack.append(0)
            out.append(c)
            i += 1
        elif c == ",":
            out.append(c)
            i += 1
        elif c == ")":
            if not stack:
                raise InputFormatError(f"Unbalanced ')' at position {i}")
            bits = stack.pop()
            out.append(c)
            i += 1
            if stack:
                stack[-1] |= bits
                out.append(str(support_percent(tally.get(bits, 0), trials)))
            if i < length and s[i] not in _DELIMITERS and not s[i].isspace():
                raise InputFormatError(
                    f"Tree text already carries a label at position {i}"
                )
        elif c == ";":
            if stack:
                raise InputFormatError("Unbalanced '(' before ';'")
            out.append(c)
            done = True
            i += 1
        else:
            j = i
            while j < length and s[j] not in _DELIMITERS and not s[j].isspace():
                j += 1
            token = s[i:j]
            bit = 1 << (_leaf_number(token, n) - 1)
            if seen & bit:
                raise InputFormatError(f"Leaf {token} appears more than once")
            seen |= bit
            if stack:
                stack[-1] |= bit
            out.append(token)
            i = j

    if seen != (1 << n) - 1:
        raise InputFormatError(f"Tree text does not contain all {n} leaves")

    return "".join(out)


def relabel_leaves(text: str, names: Sequence[str]) -> str:
    """
    Replace 1-based leaf numbers in *text* with *names*.

    Tokens that directly follow ``)`` are support labels and are kept as
    they are.  Names with Newick-special characters are single-quoted.

    Parameters
    ----------
    text : str
        Tree text with numeric leaves (annotated or not).
    names : sequence of str
        One name per leaf, in matrix row order.

    Returns
    -------
    str

    Examples
    --------
    >>> relabel_leaves('((1,2)100,3);', ['a', 'b', 'c'])
    '((a,b)100,c);'
    """
    n = len(names)
    if n == 0:
        raise ArgumentError("names must not be empty")

    s = format_newick(text)
    length = len(s)
    out: List[str] = []
    prev = "("
    i = 0

    while i < length:
        c = s[i]
        if c in _DELIMITERS or c.isspace():
            out.append(c)
            if not c.isspace():
                prev = c
            i += 1
            continue

        j = i
        while j < length and s[j] not in _DELIMITERS and not s[j].isspace():
            j += 1
        token = s[i:j]
        if prev == ")":
            out.append(token)
        else:
            out.append(quote_label(str(names[_leaf_number(token, n) - 1])))
        prev = "label"
        i = j

    return "".join(out)
