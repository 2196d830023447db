"""
_errors.py
==========
Exception taxonomy for graphsplit.

Every error raised on purpose by the package derives from
``GraphSplitError`` so callers (and the command line front end) can catch
the whole family in one clause.  Each class also derives from the closest
built-in exception, so code written against ``ValueError`` keeps working.
"""


class GraphSplitError(Exception):
    """Base class for all graphsplit errors."""


class InputFormatError(GraphSplitError, ValueError):
    """
    The similarity matrix (or a tree string) is malformed.

    Raised for non-square, non-symmetric or non-finite matrices, for a
    declared size that does not match the matrix, for unreadable matrix
    files and for tree text that cannot be parsed.
    """


class DegenerateInputError(GraphSplitError, RuntimeError):
    """
    A cluster of two or more leaves could not be split into two nonempty
    groups, even after the balanced fallback.
    """


class ArgumentError(GraphSplitError, ValueError):
    """An argument is out of range (negative trial count, bad noise level...)."""
