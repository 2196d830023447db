"""
tests/test_graphsplit.py
========================
Pytest test suite for the GraphSplit run driver and its logging.

Reference input
---------------
four_blocks (n=4), in memory and as tests/data/four_blocks.mat with row
names seqA..seqD.  Base tree ((1,2),(3,4)); both clades recur in every EP
trial at the default noise level, so the annotated tree is
((1,2)100,(3,4)100);
"""

import logging
import os
import sys

import pytest
import numpy as np

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from graphsplit import GraphSplit, quiet
from graphsplit._errors import ArgumentError, InputFormatError
from graphsplit._logging import log_support_summary, log_tree_statistics
from graphsplit._perturb import SupportTally

_DATA_DIR = os.path.join(os.path.dirname(__file__), "data")

FOUR_BLOCKS = np.array(
    [
        [1.0, 0.9, 0.1, 0.1],
        [0.9, 1.0, 0.1, 0.1],
        [0.1, 0.1, 1.0, 0.9],
        [0.1, 0.1, 0.9, 1.0],
    ]
)


def random_symmetric(n: int, seed: int) -> np.ndarray:
    rng = np.random.default_rng(seed)
    M = rng.random((n, n))
    W = 0.5 * (M + M.T)
    np.fill_diagonal(W, 1.0)
    return W


@pytest.fixture(scope="module")
def four_blocks():
    return GraphSplit(FOUR_BLOCKS)


@pytest.fixture(scope="module")
def four_blocks_file():
    return GraphSplit.from_file(os.path.join(_DATA_DIR, "four_blocks.mat"))


# ======================================================================== #
# 1. Construction                                                           #
# ======================================================================== #


class TestConstruction:
    def test_attributes(self, four_blocks):
        assert four_blocks.n == 4
        assert four_blocks.names == ["1", "2", "3", "4"]
        assert four_blocks.base_newick == "((1,2),(3,4));"
        assert four_blocks.tree.n_leaves == 4
        assert 0.0 <= four_blocks.transitivity <= 1.0
        assert not four_blocks.W.flags.writeable

    def test_from_file(self, four_blocks_file):
        assert four_blocks_file.names == ["seqA", "seqB", "seqC", "seqD"]
        assert four_blocks_file.source.endswith("four_blocks.mat")
        assert four_blocks_file.base_newick == "((1,2),(3,4));"

    def test_from_missing_file(self):
        with pytest.raises(OSError):
            GraphSplit.from_file(os.path.join(_DATA_DIR, "missing.mat"))

    def test_from_bad_file(self):
        with pytest.raises(InputFormatError):
            GraphSplit.from_file(os.path.join(_DATA_DIR, "asymmetric.mat"))

    def test_name_count_mismatch(self):
        with pytest.raises(ArgumentError):
            GraphSplit(FOUR_BLOCKS, names=["a", "b"])

    def test_python_backend(self):
        gs = GraphSplit(FOUR_BLOCKS, backend="python")
        assert gs.base_newick == "((1,2),(3,4));"

    def test_unknown_backend(self):
        with pytest.raises(ArgumentError):
            GraphSplit(FOUR_BLOCKS, backend="gpu")

    def test_repr(self, four_blocks):
        assert repr(four_blocks) == "GraphSplit(n=4, source='<array>')"


# ======================================================================== #
# 2. Runs                                                                   #
# ======================================================================== #


class TestRun:
    def test_no_ep_returns_base_text(self, four_blocks):
        assert four_blocks.run(ep_num=0) == four_blocks.base_newick

    def test_ep_full_support(self, four_blocks):
        assert four_blocks.run(ep_num=100, seed=1) == "((1,2)100,(3,4)100);"

    def test_labels(self, four_blocks_file):
        assert four_blocks_file.run(labels=True) == "((seqA,seqB),(seqC,seqD));"

    def test_labels_with_support(self, four_blocks_file):
        text = four_blocks_file.run(ep_num=20, seed=2, labels=True)
        assert text == "((seqA,seqB)100,(seqC,seqD)100);"

    def test_single_sequence(self):
        gs = GraphSplit([[1.0]])
        assert gs.base_newick == "1;"
        assert gs.run(ep_num=5, seed=3) == "1;"

    def test_two_sequences(self):
        gs = GraphSplit([[1.0, 0.2], [0.2, 1.0]])
        assert gs.run(ep_num=5, seed=3) == "(1,2);"

    def test_negative_ep(self, four_blocks):
        with pytest.raises(ArgumentError):
            four_blocks.run(ep_num=-1)

    def test_same_seed_same_text(self):
        gs = GraphSplit(random_symmetric(12, seed=6))
        assert gs.run(ep_num=25, seed=99) == gs.run(ep_num=25, seed=99)

    def test_supports_in_range(self):
        gs = GraphSplit(random_symmetric(12, seed=6))
        tally = gs.edge_perturbation(25, seed=4)
        values = gs.supports(tally)
        assert len(values) == 10
        assert all(0 <= v <= 100 for v in values)

    def test_supports_need_trials(self, four_blocks):
        with pytest.raises(ArgumentError):
            four_blocks.supports(SupportTally())

    def test_empty_tally_gives_base_text(self, four_blocks):
        assert four_blocks.newick(SupportTally()) == four_blocks.base_newick

    def test_explicit_rng(self, four_blocks):
        text = four_blocks.run(ep_num=10, rng=np.random.default_rng(3))
        assert text == "((1,2)100,(3,4)100);"

    def test_copied_tally_annotates(self, four_blocks):
        tally = four_blocks.edge_perturbation(5, seed=1)
        assert four_blocks.newick(tally.copy()) == "((1,2)100,(3,4)100);"


# ======================================================================== #
# 3. Logging                                                                #
# ======================================================================== #


class TestLogging:
    def test_settings_logged(self, four_blocks, caplog):
        caplog.set_level(logging.INFO, logger="graphsplit")
        four_blocks.run(ep_num=3, seed=12)
        text = caplog.text
        assert "# of sequences = 4" in text
        assert "Random seed = 12" in text
        assert "# of iterations = 3" in text
        assert "EP support over 3 trials" in text

    def test_entropy_seed_logged(self, four_blocks, caplog):
        caplog.set_level(logging.INFO, logger="graphsplit")
        four_blocks.run(ep_num=0, seed=0)
        assert "a random number" in caplog.text

    def test_settings_precede_gs_progress(self, caplog):
        caplog.set_level(logging.INFO, logger="graphsplit")
        gs = GraphSplit(FOUR_BLOCKS)
        assert "-GS method" not in caplog.messages
        gs.run(ep_num=2, seed=1)
        messages = caplog.messages
        assert messages.count("-GS method") == 1
        assert messages.index("Settings:") < messages.index("Progress:")
        assert messages.index("Progress:") < messages.index("-GS method")
        assert messages.index("-GS method") < messages.index("-EP method")

    def test_tree_built_once(self, caplog):
        caplog.set_level(logging.INFO, logger="graphsplit")
        gs = GraphSplit(FOUR_BLOCKS)
        base = gs.base_newick
        assert gs.run() == base
        assert caplog.messages.count("-GS method") == 1

    def test_quiet(self, caplog):
        caplog.set_level(logging.INFO, logger="graphsplit")
        with quiet():
            GraphSplit(FOUR_BLOCKS).run(ep_num=2, seed=1)
        assert not [r for r in caplog.records if r.name.startswith("graphsplit")]

    def test_caterpillar_warning(self, caplog):
        caplog.set_level(logging.INFO, logger="graphsplit")
        log_tree_statistics(8, 7, 7, 0.01)
        assert any(r.levelno == logging.WARNING for r in caplog.records)

    def test_no_caterpillar_warning_for_small_trees(self, caplog):
        caplog.set_level(logging.INFO, logger="graphsplit")
        log_tree_statistics(3, 2, 2, 0.01)
        assert not any(r.levelno == logging.WARNING for r in caplog.records)

    def test_support_summary(self, caplog):
        caplog.set_level(logging.INFO, logger="graphsplit")
        log_support_summary([100, 50, 96], 10)
        assert "min 50" in caplog.text
        assert "2/3 branches >= 95" in caplog.text

    def test_support_summary_empty(self, caplog):
        caplog.set_level(logging.INFO, logger="graphsplit")
        log_support_summary([], 10)
        assert "no non-root internal branches" in caplog.text
