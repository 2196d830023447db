"""
tests/test_matrix.py
====================
Pytest test suite for matrix input and the transitivity diagnostic.

Matrix files are loaded from tests/data/:

  four_blocks.mat     header line, named rows, two blocks {seqA,seqB} and
                      {seqC,seqD}
  unnamed_comma.mat   comma-separated, no header, no names
  asymmetric.mat      W[1,2]=0.5 but W[2,1]=0.4
  ragged.mat          second row is one value short
  bad_header.mat      header declares 5 rows, file has 2
  non_numeric.mat     a value that is not a number
"""

import os
import sys

import pytest
import numpy as np

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from graphsplit._backend import get_available_backends
from graphsplit._errors import InputFormatError
from graphsplit._matrix import as_similarity_matrix, read_matrix, transitivity

_DATA_DIR = os.path.join(os.path.dirname(__file__), "data")


def data_file(name: str) -> str:
    return os.path.join(_DATA_DIR, name)


def block_matrix(sizes, within=0.7, across=0.0) -> np.ndarray:
    n = sum(sizes)
    W = np.full((n, n), across)
    start = 0
    for size in sizes:
        W[start : start + size, start : start + size] = within
        start += size
    np.fill_diagonal(W, 1.0)
    return W


# ======================================================================== #
# 1. as_similarity_matrix                                                   #
# ======================================================================== #


class TestValidation:
    def test_returns_read_only_float_copy(self):
        values = [[1, 0], [0, 1]]
        W = as_similarity_matrix(values)
        assert W.dtype == np.float64
        assert not W.flags.writeable
        with pytest.raises(ValueError):
            W[0, 1] = 3.0

    def test_input_not_modified(self):
        values = np.array([[1.0, 0.2], [0.2, 1.0]])
        as_similarity_matrix(values)
        assert values.flags.writeable

    def test_tiny_asymmetry_is_symmetrized(self):
        W = as_similarity_matrix([[1.0, 0.5], [0.5 + 1e-12, 1.0]])
        assert W[0, 1] == W[1, 0]

    def test_asymmetric(self):
        with pytest.raises(InputFormatError, match="symmetric"):
            as_similarity_matrix([[1.0, 0.5], [0.4, 1.0]])

    def test_empty(self):
        with pytest.raises(InputFormatError, match="empty"):
            as_similarity_matrix(np.zeros((0, 0)))

    def test_one_dimensional(self):
        with pytest.raises(InputFormatError, match="square"):
            as_similarity_matrix([1.0, 2.0])

    def test_not_numeric(self):
        with pytest.raises(InputFormatError, match="not numeric"):
            as_similarity_matrix([["a", "b"], ["c", "d"]])

    def test_declared_size(self):
        as_similarity_matrix(np.eye(3), 3)
        with pytest.raises(InputFormatError, match="declared size"):
            as_similarity_matrix(np.eye(3), 2)


# ======================================================================== #
# 2. read_matrix                                                            #
# ======================================================================== #


class TestReadMatrix:
    def test_named_rows_with_header(self):
        W, names = read_matrix(data_file("four_blocks.mat"))
        assert names == ["seqA", "seqB", "seqC", "seqD"]
        assert W.shape == (4, 4)
        assert W[0, 1] == pytest.approx(0.9)
        assert W[2, 3] == pytest.approx(0.9)
        assert W[0, 3] == pytest.approx(0.1)

    def test_comma_separated_unnamed(self):
        W, names = read_matrix(data_file("unnamed_comma.mat"))
        assert names == ["1", "2", "3"]
        assert W[0, 1] == pytest.approx(0.8)
        assert W[1, 2] == pytest.approx(0.3)

    def test_path_like(self):
        import pathlib

        W, _ = read_matrix(pathlib.Path(data_file("unnamed_comma.mat")))
        assert W.shape == (3, 3)

    def test_asymmetric_file(self):
        with pytest.raises(InputFormatError, match="not symmetric"):
            read_matrix(data_file("asymmetric.mat"))

    def test_ragged_rows(self):
        with pytest.raises(InputFormatError, match=r":2: expected 3 values, found 2"):
            read_matrix(data_file("ragged.mat"))

    def test_header_disagrees(self):
        with pytest.raises(InputFormatError, match="declares 5 rows, found 2"):
            read_matrix(data_file("bad_header.mat"))

    def test_non_numeric_value(self):
        with pytest.raises(InputFormatError, match=r":2: non-numeric value 'high'"):
            read_matrix(data_file("non_numeric.mat"))

    def test_missing_file(self):
        with pytest.raises(OSError):
            read_matrix(data_file("does_not_exist.mat"))

    def test_comments_only(self, tmp_path):
        path = tmp_path / "empty.mat"
        path.write_text("# nothing here\n\n")
        with pytest.raises(InputFormatError, match="no matrix rows"):
            read_matrix(path)

    def test_not_square(self, tmp_path):
        path = tmp_path / "wide.mat"
        path.write_text("1 0.5 0.2\n0.5 1 0.3\n")
        with pytest.raises(InputFormatError, match="2 rows of 3 values"):
            read_matrix(path)

    def test_single_row(self, tmp_path):
        path = tmp_path / "one.mat"
        path.write_text("1\nonly 1.0\n")
        W, names = read_matrix(path)
        assert W.shape == (1, 1)
        assert names == ["only"]

    def test_not_utf8_text(self, tmp_path):
        path = tmp_path / "binary.mat"
        path.write_bytes(b"2\n\xff\xfe 1.0 0.5\n0.5 1.0\n")
        with pytest.raises(InputFormatError, match="not a text matrix file"):
            read_matrix(path)

    def test_utf8_names(self, tmp_path):
        path = tmp_path / "utf8.mat"
        path.write_text("2\n\u03b1 1.0 0.5\n\u03b2 0.5 1.0\n", encoding="utf-8")
        _, names = read_matrix(path)
        assert names == ["\u03b1", "\u03b2"]


# ======================================================================== #
# 3. transitivity                                                           #
# ======================================================================== #


class TestTransitivity:
    @pytest.mark.parametrize("backend", get_available_backends())
    def test_disjoint_equal_blocks(self, backend):
        W = block_matrix([3, 4, 5])
        assert transitivity(W, backend=backend) == pytest.approx(1.0)

    @pytest.mark.parametrize("backend", get_available_backends())
    def test_star_has_no_triangles(self, backend):
        W = np.eye(5)
        W[0, 1:] = W[1:, 0] = 0.8
        assert transitivity(W, backend=backend) == 0.0

    @pytest.mark.parametrize("n", [1, 2])
    def test_too_small(self, n):
        assert transitivity(np.ones((n, n))) == 0.0

    def test_no_positive_similarity(self):
        W = -np.ones((4, 4))
        np.fill_diagonal(W, 1.0)
        assert transitivity(W) == 0.0

    def test_negative_entries_clipped(self):
        W = block_matrix([3, 3], across=-0.4)
        assert transitivity(W) == pytest.approx(1.0)

    def test_scale_invariant(self):
        rng = np.random.default_rng(2)
        M = rng.random((8, 8))
        W = M + M.T
        assert transitivity(W) == pytest.approx(transitivity(3.5 * W))

    def test_backends_agree(self):
        rng = np.random.default_rng(9)
        M = rng.random((30, 30))
        W = M + M.T
        values = [transitivity(W, backend=b) for b in get_available_backends()]
        for v in values:
            assert 0.0 <= v <= 1.0
            assert v == pytest.approx(values[0], rel=1e-10)

    def test_mixed_structure_below_one(self):
        W = block_matrix([4, 4], within=0.9, across=0.3)
        value = transitivity(W)
        assert 0.0 < value < 1.0

