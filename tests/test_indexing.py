"""Tests for tree address arithmetic."""

import numpy as np
import pytest

from wavebasis.core.indexing import (
    depth_for_count,
    flat_index,
    max_transform_levels,
    node_count,
    split_levels,
)
from wavebasis.exceptions import InvalidArgumentError


class TestMaxTransformLevels:
    """Tests for max_transform_levels()."""

    @pytest.mark.parametrize(
        "length, levels", [(1, 0), (3, 0), (8, 3), (12, 2), (16, 4), (96, 5)]
    )
    def test_lengths(self, length: int, levels: int) -> None:
        """Test the number of dyadic levels of a length."""
        assert max_transform_levels(length) == levels

    def test_shape_uses_smallest_dimension(self) -> None:
        """Test that shapes take the minimum over dimensions."""
        assert max_transform_levels((16, 8)) == 3

    def test_numpy_integer(self) -> None:
        """Test that numpy integers are accepted."""
        assert max_transform_levels(np.int64(32)) == 5

    @pytest.mark.parametrize("bad", [0, -4, (8, 0)])
    def test_non_positive(self, bad) -> None:
        """Test that non-positive dimensions raise InvalidArgumentError."""
        with pytest.raises(InvalidArgumentError, match="positive integers"):
            max_transform_levels(bad)


class TestNodeCount:
    """Tests for node counting and flat indices."""

    def test_binary(self) -> None:
        """Test binary node counts."""
        assert [node_count(d) for d in range(4)] == [1, 3, 7, 15]
        assert node_count(-1) == 0

    def test_quaternary(self) -> None:
        """Test quaternary node counts."""
        assert [node_count(d, 4) for d in range(3)] == [1, 5, 21]

    def test_flat_index(self) -> None:
        """Test that flat_index() enumerates a whole tree breadth-first."""
        for arity in (2, 4):
            flats = [
                flat_index(d, i, arity) for d in range(4) for i in range(arity**d)
            ]
            assert flats == list(range(node_count(3, arity)))

    def test_split_levels(self) -> None:
        """Test slicing a breadth-first vector into per-depth levels."""
        levels = split_levels(np.arange(7), 2)
        assert [lv.tolist() for lv in levels] == [[0], [1, 2], [3, 4, 5, 6]]
        quaternary = split_levels(np.arange(21), 2, arity=4)
        assert [lv.size for lv in quaternary] == [1, 4, 16]
        assert quaternary[2][0] == 5

    def test_depth_for_count(self) -> None:
        """Test recovering the depth of a complete tree from its size."""
        assert depth_for_count(15) == 3
        assert depth_for_count(21, 4) == 2
        assert depth_for_count(7) == 2
        assert depth_for_count(8) is None
        assert depth_for_count(0) is None

    def test_bad_arity(self) -> None:
        """Test that arities below 2 are rejected."""
        with pytest.raises(InvalidArgumentError, match="arity"):
            node_count(2, 1)
