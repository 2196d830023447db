"""
_tree.py
========
The binary tree produced by divisive graph splitting, stored as an arena of
parallel numpy arrays addressed by integer node IDs.

Public API
----------
  ClusterTree(n_leaves)
      Constructor.  Allocates the arena; nodes are linked with add_split()
      and the tree is sealed with finalize().

  .is_leaf(node)
  .children(node)
  .internal_nodes()
  .signature(node)
  .clade(node)
  .clade_signatures()
  .depth()

Node-ID conventions (set once; never change)
--------------------------------------------
  Leaves   : 0 … n_leaves-1   (row order of the similarity matrix)
  Internal : n_leaves … 2·n_leaves-2, in creation order
  Root     : n_leaves          (or leaf 0 when n_leaves == 1)

Internal nodes are created top-down, so every parent ID is smaller than the
IDs of its internal children; walking internal IDs in reverse therefore
visits children before parents, which is how clade signatures are built.

``left_child`` is always the child holding the smaller leaf index, which
fixes the traversal order used for rendering and annotation.
"""

from typing import List, Tuple

import numpy as np

from graphsplit._utils import signature_leaves


class ClusterTree:
    """
    A rooted, strictly bifurcating tree over ``n_leaves`` matrix rows.

    Attributes (read-only after finalize())
    ---------------------------------------
    n_leaves  : int   Number of leaves.
    n_nodes   : int   Total number of nodes (2 * n_leaves - 1).
    root      : int   Node ID of the root.

    Arrays
    ------
    parent      : int32[n_nodes]   Parent ID; -1 for the root.
    left_child  : int32[n_nodes]   Child with the smaller min_leaf; -1 for leaves.
    right_child : int32[n_nodes]   Other child; -1 for leaves.
    min_leaf    : int32[n_nodes]   Smallest leaf index below the node.
    n_members   : int32[n_nodes]   Number of leaves below the node.

    Clade signatures
    ----------------
    signatures : list[int]   Bitmask of the leaves below each node.
    """

    def __init__(self, n_leaves: int) -> None:
        if n_leaves < 1:
            raise ValueError("A tree needs at least one leaf.")

        n_nodes = 2 * n_leaves - 1
        self.n_leaves: int = int(n_leaves)
        self.n_nodes: int = n_nodes
        self.root: int = n_leaves if n_leaves > 1 else 0

        self.parent = np.full(n_nodes, -1, dtype=np.int32)
        self.left_child = np.full(n_nodes, -1, dtype=np.int32)
        self.right_child = np.full(n_nodes, -1, dtype=np.int32)
        self.min_leaf = np.full(n_nodes, -1, dtype=np.int32)
        self.n_members = np.zeros(n_nodes, dtype=np.int32)

        leaves = np.arange(n_leaves, dtype=np.int32)
        self.min_leaf[:n_leaves] = leaves
        self.n_members[:n_leaves] = 1

        self.signatures: List[int] = [0] * n_nodes
        self._next_internal = n_leaves

    # ================================================================== #
    # Construction                                                         #
    # ================================================================== #

    def new_internal(self, members: np.ndarray) -> int:
        """
        Reserve the next internal node ID for a cluster with *members*.

        Parameters
        ----------
        members : int array   Sorted leaf indices of the cluster (size ≥ 2).

        Returns
        -------
        int   The new node ID.
        """
        node = self._next_internal
        if node >= self.n_nodes:
            raise RuntimeError("ClusterTree arena is full")
        self._next_internal += 1
        self.min_leaf[node] = int(members[0])
        self.n_members[node] = len(members)
        return node

    def add_split(self, node: int, child_a: int, child_b: int) -> None:
        """
        Attach two children to internal node *node*.

        The child with the smaller ``min_leaf`` becomes ``left_child``.
        """
        if self.min_leaf[child_b] < self.min_leaf[child_a]:
            child_a, child_b = child_b, child_a
        self.left_child[node] = child_a
        self.right_child[node] = child_b
        self.parent[child_a] = node
        self.parent[child_b] = node

    def finalize(self) -> "ClusterTree":
        """
        Check that every internal node was linked and build the clade
        signatures bottom-up.

        Returns
        -------
        ClusterTree   ``self``, for chaining.
        """
        n = self.n_leaves
        if self._next_internal != self.n_nodes:
            raise RuntimeError(
                f"ClusterTree has {self._next_internal - n} internal nodes; "
                f"expected {n - 1}"
            )

        sigs = self.signatures
        for leaf in range(n):
            sigs[leaf] = 1 << leaf
        for node in range(self.n_nodes - 1, n - 1, -1):
            sigs[node] = (
                sigs[int(self.left_child[node])] | sigs[int(self.right_child[node])]
            )

        return self

    # ================================================================== #
    # Queries                                                              #
    # ================================================================== #

    def is_leaf(self, node: int) -> bool:
        return node < self.n_leaves

    def children(self, node: int) -> Tuple[int, int]:
        """Return ``(left, right)``; ``(-1, -1)`` for a leaf."""
        return int(self.left_child[node]), int(self.right_child[node])

    def internal_nodes(self) -> range:
        """Internal node IDs in creation order (root first)."""
        return range(self.n_leaves, self.n_nodes)

    def signature(self, node: int) -> int:
        """Clade signature (leaf bitmask) of *node*."""
        return self.signatures[node]

    def clade(self, node: int) -> frozenset:
        """The 0-based leaf indices below *node* as a frozenset."""
        return frozenset(signature_leaves(self.signatures[node]))

    def clade_signatures(self) -> List[int]:
        """Signatures of all internal nodes, root included, in creation order."""
        return self.signatures[self.n_leaves :]

    def clades(self) -> set:
        """The set of internal-node clades as frozensets of leaf indices."""
        return {self.clade(node) for node in self.internal_nodes()}

    def depth(self) -> np.ndarray:
        """
        Edge depth of every node from the root.

        Returns
        -------
        int32[n_nodes]
        """
        depth = np.zeros(self.n_nodes, dtype=np.int32)
        # Parents always have smaller IDs than their internal children.
        for node in self.internal_nodes():
            d = depth[node] + 1
            depth[self.left_child[node]] = d
            depth[self.right_child[node]] = d
        return depth

    def __repr__(self) -> str:
        return f"ClusterTree(n_leaves={self.n_leaves}, root={self.root})"
