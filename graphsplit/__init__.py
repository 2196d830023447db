"""
graphsplit
==========

Graph Splitting (GS) trees from sequence similarity matrices, with edge
perturbation (EP) branch support.

A symmetric similarity matrix is cut in two along the sign of the Fiedler
vector of its normalized graph Laplacian, and each part is cut again until
only single sequences remain.  The resulting rooted binary tree is written as
Newick text.  EP re-runs the splitting on randomly jittered copies of the
matrix and labels every branch with the percentage of runs in which its clade
recurred.

Main Classes
------------
GraphSplit : Run driver (matrix -> GS tree -> EP support -> tree text)
ClusterTree : Binary tree produced by graph splitting
SupportTally : Clade recurrence counts accumulated over EP trials

Core Functions
--------------
graph_split : Divisive spectral bipartition of a similarity matrix
render_newick : Tree text of a ClusterTree
ep_trial : One edge-perturbation trial into a shared tally
annotate_support : Insert support values into base tree text

Input and Diagnostics
---------------------
read_matrix : Read a similarity matrix file
as_similarity_matrix : Validate an in-memory matrix
transitivity : Weighted transitivity score of a matrix

Context Managers
----------------
quiet : Suppress graphsplit logging
suppress_logger : Suppress a specific logger
suppress_warnings : Suppress specific warnings
use_backend : Force a specific computational backend

Examples
--------
>>> import numpy as np
>>> from graphsplit import GraphSplit
>>> W = np.array([[1.0, 0.9, 0.1, 0.1],
...               [0.9, 1.0, 0.1, 0.1],
...               [0.1, 0.1, 1.0, 0.9],
...               [0.1, 0.1, 0.9, 1.0]])
>>> gs = GraphSplit(W)
>>> gs.base_newick
'((1,2),(3,4));'
>>> gs.run(ep_num=100, seed=1)
'((1,2)100,(3,4)100);'

Lower-level, trial by trial:

>>> from graphsplit import graph_split, render_newick, ep_trial
>>> from graphsplit import SupportTally, make_rng, annotate_support
>>> tree = graph_split(W)
>>> text = render_newick(tree)
>>> tally, rng = SupportTally(), make_rng(7)
>>> for _ in range(50):
...     ep_trial(W, 4, rng, tally)
>>> annotate_support(text, tally, 50, 4)
'((1,2)100,(3,4)100);'
"""

__version__ = "0.1.0"
__license__ = "GPL-3.0-or-later"

# Errors
from ._errors import (
    GraphSplitError,
    InputFormatError,
    DegenerateInputError,
    ArgumentError,
)

# Core
from ._tree import ClusterTree
from ._split import graph_split, fiedler_vector
from ._newick import render_newick, annotate_support, relabel_leaves
from ._perturb import (
    SupportTally,
    make_rng,
    perturb_matrix,
    ep_trial,
    edge_perturbation,
)

# Input and diagnostics
from ._matrix import as_similarity_matrix, read_matrix, transitivity

# Driver
from ._graphsplit import GraphSplit

# Context managers
from ._context import (
    suppress_logger,
    quiet,
    suppress_warnings,
    use_backend,
)

# Utilities
from ._utils import clade_signature, signature_leaves, support_percent

# Backend information
from ._backend import (
    get_available_backends,
    get_backend_info,
    check_numba_available,
)

__all__ = [
    # Errors
    "GraphSplitError",
    "InputFormatError",
    "DegenerateInputError",
    "ArgumentError",
    # Core
    "ClusterTree",
    "graph_split",
    "fiedler_vector",
    "render_newick",
    "annotate_support",
    "relabel_leaves",
    "SupportTally",
    "make_rng",
    "perturb_matrix",
    "ep_trial",
    "edge_perturbation",
    # Input and diagnostics
    "as_similarity_matrix",
    "read_matrix",
    "transitivity",
    # Driver
    "GraphSplit",
    # Context managers
    "suppress_logger",
    "quiet",
    "suppress_warnings",
    "use_backend",
    # Utilities
    "clade_signature",
    "signature_leaves",
    "support_percent",
    # Backend information
    "get_available_backends",
    "get_backend_info",
    "check_numba_available",
    # Version info
    "__version__",
]
