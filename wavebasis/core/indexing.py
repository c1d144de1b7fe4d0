"""Address arithmetic for complete binary and quaternary trees.

Nodes are addressed by ``(depth, index)`` with ``0 <= index < arity**depth``.
The flat breadth-first index of ``(depth, index)`` is
``node_count(depth - 1, arity) + index``.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from wavebasis.exceptions import InvalidArgumentError


def max_transform_levels(length: int | Sequence[int]) -> int:
    """Largest L such that every dimension is divisible by 2**L.

    Args:
        length: Signal length, or a signal shape

    Raises:
        InvalidArgumentError: If any dimension is not a positive integer
    """
    dims = (length,) if isinstance(length, (int, np.integer)) else tuple(length)
    if not dims:
        raise InvalidArgumentError("Signal shape must have at least one dimension")
    levels = []
    for n in dims:
        if int(n) != n or n <= 0:
            raise InvalidArgumentError(f"Signal dimensions must be positive integers, got {n}")
        n = int(n)
        levels.append((n & -n).bit_length() - 1)
    return min(levels)


def node_count(depth: int, arity: int = 2) -> int:
    """Number of nodes of a complete tree of the given depth.

    ``2**(depth+1) - 1`` for binary trees, ``(4**(depth+1) - 1) // 3`` for
    quaternary trees. A depth of -1 gives 0.
    """
    if arity < 2:
        raise InvalidArgumentError(f"arity must be at least 2, got {arity}")
    return (arity ** (depth + 1) - 1) // (arity - 1)


def flat_index(depth: int, index: int, arity: int = 2) -> int:
    return node_count(depth - 1, arity) + index


def split_levels(values: np.ndarray, depth: int, arity: int = 2) -> list[np.ndarray]:
    """Per-depth slices of a breadth-first flat vector of ``node_count(depth)`` entries."""
    return [
        values[flat_index(d, 0, arity) : flat_index(d + 1, 0, arity)] for d in range(depth + 1)
    ]


def depth_for_count(count: int, arity: int = 2) -> int | None:
    """Depth of the complete tree with ``count`` nodes, or None if there is none."""
    depth = 0
    while node_count(depth, arity) < count:
        depth += 1
    return depth if node_count(depth, arity) == count else None
