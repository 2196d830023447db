"""
_graphsplit.py
==============
Run driver: matrix -> GS tree -> (optional) EP support -> tree text.

Public API
----------
  GraphSplit(matrix, names=None, backend='best', source='<array>')
      Validates the matrix and computes the transitivity diagnostic.  The
      base GS tree (.tree) and its text (.base_newick) are built on first
      use; run() builds them after logging the settings block.

  .edge_perturbation(ep_num, rng=None, seed=0, noise=DEFAULT_NOISE)
      Run the EP trials and return their SupportTally.

  .newick(tally=None, labels=False)
      Base text, or annotated text when a non-empty tally is supplied.

  .run(ep_num=0, seed=0, rng=None, noise=DEFAULT_NOISE, labels=False)
      Both of the above, as the command line does it.

  GraphSplit.from_file(path, **kwargs)
      Read a matrix file (see _matrix.py) and build the driver.

Logging
-------
The module uses Python's standard logging framework; every graphsplit module
logs to a child of the ``graphsplit`` logger.

  INFO level:    System capabilities (CPU, memory, numba version), backend
                 availability, run settings, GS tree statistics, EP progress
                 and support distribution.
  WARNING level: Caterpillar-shaped trees, power iteration that did not
                 converge, numba performance warnings.
  DEBUG level:   Per-split sizes, balanced fallbacks, per-run split summaries.

On first import the module logs system and optimization library status at
INFO level, once per Python session.

Users can control logging in the standard way::

    import logging
    logging.getLogger('graphsplit').setLevel(logging.WARNING)

or temporarily with ``graphsplit.quiet()``.
"""

import logging
import os
import time
from typing import List, Optional, Sequence, Union

import numpy as np

from graphsplit._backend import check_numba_available, get_available_backends
from graphsplit._errors import ArgumentError
from graphsplit._logging import (
    install_numba_warning_filter,
    log_backend_availability,
    log_optimization_status,
    log_run_settings,
    log_support_summary,
    log_tree_statistics,
)
from graphsplit._matrix import as_similarity_matrix, read_matrix, transitivity
from graphsplit._newick import annotate_support, relabel_leaves, render_newick
from graphsplit._perturb import DEFAULT_NOISE, SupportTally, edge_perturbation
from graphsplit._split import graph_split
from graphsplit._tree import ClusterTree
from graphsplit._utils import support_percent


logger = logging.getLogger(__name__)

_NUMBA_AVAILABLE = check_numba_available()

# Log system info and backend availability on module import
log_optimization_status(_NUMBA_AVAILABLE)
log_backend_availability(get_available_backends())
install_numba_warning_filter(_NUMBA_AVAILABLE)


class GraphSplit:
    """
    One GS/EP analysis of a similarity matrix.

    Attributes
    ----------
    W             : np.ndarray     Validated, read-only similarity matrix.
    n             : int            Number of sequences.
    names         : list[str]      One name per row ("1".."n" by default).
    source        : str            Description of where W came from.
    transitivity  : float          Diagnostic transitivity score of W.
    tree          : ClusterTree    Base (unperturbed) GS tree.
    base_newick   : str            render_newick(tree).
    """

    def __init__(
        self,
        matrix,
        names: Optional[Sequence[str]] = None,
        backend: str = "best",
        source: str = "<array>",
    ) -> None:
        self.W: np.ndarray = as_similarity_matrix(matrix)
        self.n: int = int(self.W.shape[0])
        self.backend = backend
        self.source = source

        if names is None:
            self.names: List[str] = [str(i + 1) for i in range(self.n)]
        else:
            if len(names) != self.n:
                raise ArgumentError(
                    f"Expected {self.n} names, got {len(names)}"
                )
            self.names = [str(name) for name in names]

        self.transitivity: float = transitivity(self.W, backend=backend)

        self._tree: Optional[ClusterTree] = None
        self._base_newick: Optional[str] = None

    @property
    def tree(self) -> ClusterTree:
        """Base GS tree, built on first access."""
        if self._tree is None:
            self._build_tree()
        return self._tree

    @property
    def base_newick(self) -> str:
        if self._base_newick is None:
            self._base_newick = render_newick(self.tree)
        return self._base_newick

    def _build_tree(self) -> None:
        logger.info("-GS method")
        start = time.perf_counter()
        self._tree = graph_split(self.W, self.n, backend=self.backend)
        elapsed = time.perf_counter() - start
        log_tree_statistics(
            self.n,
            self.n - 1 if self.n > 1 else 0,
            int(self._tree.depth().max()),
            elapsed,
        )

    @classmethod
    def from_file(cls, path: Union[str, os.PathLike], **kwargs) -> "GraphSplit":
        """Read a matrix file and build the driver; row names come from the file."""
        W, names = read_matrix(path)
        kwargs.setdefault("source", str(path))
        return cls(W, names=names, **kwargs)

    # ================================================================== #
    # EP                                                                   #
    # ================================================================== #

    def edge_perturbation(
        self,
        ep_num: int,
        rng=None,
        seed: int = 0,
        noise: float = DEFAULT_NOISE,
    ) -> SupportTally:
        """
        Run *ep_num* EP trials on this matrix.

        Parameters
        ----------
        ep_num : int
            Number of trials (≥ 0).
        rng : numpy.random.Generator, optional
            Random stream; made from *seed* when omitted.
        seed : int, default 0
            Positive for a reproducible stream, 0 for an entropy seed.
        noise : float, default DEFAULT_NOISE
            Jitter amplitude in [0, 1].

        Returns
        -------
        SupportTally
        """
        return edge_perturbation(
            self.W, ep_num, rng=rng, seed=seed, noise=noise, backend=self.backend
        )

    def supports(self, tally: SupportTally) -> List[int]:
        """
        Support percentage of every non-root internal node of the base tree,
        in node-ID order.
        """
        if tally.n_trials <= 0:
            raise ArgumentError("tally holds no trials")
        sigs = self.tree.clade_signatures()[1:]
        return [support_percent(tally[sig], tally.n_trials) for sig in sigs]

    # ================================================================== #
    # Output                                                               #
    # ================================================================== #

    def newick(self, tally: Optional[SupportTally] = None, labels: bool = False) -> str:
        """
        Final tree text.

        Parameters
        ----------
        tally : SupportTally, optional
            EP result.  Ignored when None or when it holds no trials, in
            which case the base text is returned unchanged.
        labels : bool, default False
            Substitute row names for leaf numbers.
        """
        text = self.base_newick
        if tally is not None and tally.n_trials > 0:
            text = annotate_support(text, tally, tally.n_trials, self.n)
            log_support_summary(self.supports(tally), tally.n_trials)
        if labels:
            text = relabel_leaves(text, self.names)
        return text

    def run(
        self,
        ep_num: int = 0,
        seed: int = 0,
        rng=None,
        noise: float = DEFAULT_NOISE,
        labels: bool = False,
    ) -> str:
        """
        Run EP (when ep_num > 0) and return the final tree text.

        ``ep_num == 0`` returns the base text exactly.
        """
        if ep_num < 0:
            raise ArgumentError(f"ep_num must be non-negative, got {ep_num}")
        log_run_settings(self.source, self.n, self.transitivity, seed, ep_num, noise)
        logger.info("Progress:")
        if self._tree is None:
            self._build_tree()
        if ep_num == 0:
            return self.newick(labels=labels)
        tally = self.edge_perturbation(ep_num, rng=rng, seed=seed, noise=noise)
        return self.newick(tally, labels=labels)

    def __repr__(self) -> str:
        return f"GraphSplit(n={self.n}, source={self.source!r})"
