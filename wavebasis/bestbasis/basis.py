"""Basis trees: the selected cut of a packet tree.

A basis is stored as one read-only boolean array per depth, shape
``(arity**d,)``. The flagged positions form a cut when every path from the
root to the deepest level passes through exactly one flagged node.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType

import numpy as np

from wavebasis.core.indexing import (
    depth_for_count,
    max_transform_levels,
    node_count,
    split_levels,
)
from wavebasis.exceptions import InvalidArgumentError


def _readonly(a: np.ndarray) -> np.ndarray:
    a = np.array(a, dtype=np.float64)
    a.flags.writeable = False
    return a


@dataclass(frozen=True)
class BasisTree:
    """Selected nodes of a complete tree, one boolean array per depth.

    Attributes:
        flags: ``flags[d][i]`` is True when node ``(d, i)`` is selected
        arity: 2 for 1-D trees, 4 for 2-D trees
    """

    flags: tuple[np.ndarray, ...]
    arity: int = 2

    def __post_init__(self) -> None:
        if self.arity < 2:
            raise InvalidArgumentError(f"arity must be at least 2, got {self.arity}")
        if len(self.flags) == 0:
            raise InvalidArgumentError("A basis needs at least the root level")
        levels = []
        for d, level in enumerate(self.flags):
            arr = np.array(level, dtype=bool).reshape(-1)
            if arr.shape != (self.arity**d,):
                raise InvalidArgumentError(
                    f"Level {d} must have {self.arity**d} flags, got {arr.size}"
                )
            arr.flags.writeable = False
            levels.append(arr)
        object.__setattr__(self, "flags", tuple(levels))

    @classmethod
    def from_bitvector(cls, bits: np.ndarray, arity: int = 2) -> BasisTree:
        """Build from a flat breadth-first boolean vector."""
        bits = np.asarray(bits, dtype=bool).reshape(-1)
        depth = depth_for_count(bits.size, arity)
        if depth is None:
            raise InvalidArgumentError(
                f"{bits.size} flags do not form a complete tree of arity {arity}"
            )
        return cls(flags=tuple(split_levels(bits, depth, arity)), arity=arity)

    @property
    def depth(self) -> int:
        return len(self.flags) - 1

    def is_selected(self, depth: int, index: int) -> bool:
        return bool(self.flags[depth][index])

    def selected(self) -> list[tuple[int, int]]:
        """Selected ``(depth, index)`` positions in breadth-first order."""
        return [
            (d, int(i)) for d, level in enumerate(self.flags) for i in np.flatnonzero(level)
        ]

    def to_bitvector(self) -> np.ndarray:
        return np.concatenate(self.flags)

    def __len__(self) -> int:
        return node_count(self.depth, self.arity)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BasisTree):
            return NotImplemented
        return (
            type(self) is type(other)
            and self.arity == other.arity
            and len(self.flags) == len(other.flags)
            and all(np.array_equal(a, b) for a, b in zip(self.flags, other.flags))
        )

    def __hash__(self) -> int:
        return hash((self.arity, self.to_bitvector().tobytes()))


@dataclass(frozen=True, eq=False)
class NodeRotation:
    """Decorrelating rotation of one node position across an ensemble.

    Attributes:
        mean: Ensemble mean of the normalized node vectors, shape (m,)
        vectors: Orthonormal eigenvectors as columns, descending eigenvalues
        eigenvalues: Covariance eigenvalues, descending
    """

    mean: np.ndarray
    vectors: np.ndarray
    eigenvalues: np.ndarray

    def __post_init__(self) -> None:
        for name in ("mean", "vectors", "eigenvalues"):
            object.__setattr__(self, name, _readonly(getattr(self, name)))

    def apply(self, x: np.ndarray) -> np.ndarray:
        """Rotate node vectors: ``(x - mean) @ vectors``; accepts (m,) or (N, m)."""
        x = np.asarray(x, dtype=np.float64)
        flat = x.reshape(x.shape[0], -1) if x.ndim > 1 else x
        return (flat - self.mean) @ self.vectors

    def invert(self, y: np.ndarray) -> np.ndarray:
        return np.asarray(y, dtype=np.float64) @ self.vectors.T + self.mean


@dataclass(frozen=True, eq=False)
class RotatedBasis(BasisTree):
    """Least statistically dependent basis with per-node rotations."""

    rotations: Mapping[tuple[int, int], NodeRotation] = field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__post_init__()
        object.__setattr__(self, "rotations", MappingProxyType(dict(self.rotations)))


@dataclass(frozen=True, eq=False)
class ShiftBasis(BasisTree):
    """Shift-invariant best basis.

    Attributes:
        shifts: Accumulated circular shift of each selected node
        costs: Cost of each selected node
    """

    shifts: Mapping[tuple[int, int], int] = field(default_factory=dict)
    costs: Mapping[tuple[int, int], float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__post_init__()
        object.__setattr__(self, "shifts", MappingProxyType(dict(self.shifts)))
        object.__setattr__(self, "costs", MappingProxyType(dict(self.costs)))

    def keys(self) -> list[tuple[int, int, int]]:
        """Shift-tree keys ``(depth, index, shift)`` of the selected nodes."""
        return [(d, i, self.shifts[(d, i)]) for d, i in self.selected()]


def is_valid_basis(
    signal_length: int | Sequence[int], basis: BasisTree | Sequence[np.ndarray]
) -> bool:
    """Check that ``basis`` is a valid cut for a signal of the given size.

    Args:
        signal_length: Signal length, or a signal shape
        basis: BasisTree, or one flag array per depth

    Returns:
        True when the level shapes match the signal dimensionality, the depth
        does not exceed ``max_transform_levels`` and every root-to-leaf path
        holds exactly one selected node
    """
    shape = (
        (int(signal_length),)
        if isinstance(signal_length, (int, np.integer))
        else tuple(int(n) for n in signal_length)
    )
    arity = 2 ** len(shape)
    flags = basis.flags if isinstance(basis, BasisTree) else tuple(basis)
    if isinstance(basis, BasisTree) and basis.arity != arity:
        return False
    if not flags:
        return False

    depth = len(flags) - 1
    if depth > max_transform_levels(shape):
        return False

    coverage = np.zeros(arity**depth, dtype=np.int64)
    for d, level in enumerate(flags):
        level = np.asarray(level, dtype=bool).reshape(-1)
        if level.shape != (arity**d,):
            return False
        coverage += np.repeat(level.astype(np.int64), arity ** (depth - d))
    return bool(np.all(coverage == 1))
