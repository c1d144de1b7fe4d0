"""Wavelet packet decomposition into complete trees.

Implements the ordinary (critically downsampled), stationary and
autocorrelation packet transforms for 1-D signals, and the ordinary
quaternary transform for 2-D signals. Trees are built level by level into a
single Arena, then frozen.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterator

import numpy as np

from wavebasis.core.arena import Arena, TensorRef
from wavebasis.core.indexing import max_transform_levels, node_count
from wavebasis.dsp.filters import FilterPair, autocorrelation_shell
from wavebasis.dsp.steps import (
    acwt_step,
    dwt_step,
    dwt_step_2d,
    iacwt_step,
    idwt_step,
    idwt_step_2d,
    isdwt_step,
    sdwt_step,
)
from wavebasis.exceptions import (
    InvalidArgumentError,
    LengthMismatchError,
    UnsupportedModeError,
)

logger = logging.getLogger(__name__)


class DecompositionMode(str, Enum):
    """Decomposition families."""

    ORDINARY = "ordinary"
    STATIONARY = "stationary"
    AUTOCORRELATION = "autocorrelation"
    SHIFT_INVARIANT = "shift-invariant"

    @property
    def redundant(self) -> bool:
        return self in (DecompositionMode.STATIONARY, DecompositionMode.AUTOCORRELATION)


def parse_mode(mode: DecompositionMode | str) -> DecompositionMode:
    try:
        return DecompositionMode(mode)
    except ValueError as e:
        choices = ", ".join(m.value for m in DecompositionMode)
        raise InvalidArgumentError(
            f"Unknown decomposition mode {mode!r}; expected one of {choices}"
        ) from e


@dataclass(frozen=True, eq=False)
class PacketTree:
    """Complete wavelet packet tree stored as an array of levels.

    Attributes:
        arena: Frozen arena holding every level
        levels: One TensorRef per depth, shape (arity**d, *node_shape)
        mode: Decomposition family that produced the tree
        signal_shape: Shape of the decomposed signal
        filters: Filter pair used for every step
    """

    arena: Arena
    levels: tuple[TensorRef, ...]
    mode: DecompositionMode
    signal_shape: tuple[int, ...]
    filters: FilterPair

    @property
    def depth(self) -> int:
        return len(self.levels) - 1

    @property
    def arity(self) -> int:
        return 2 ** len(self.signal_shape)

    @property
    def redundant(self) -> bool:
        return self.mode.redundant

    @property
    def root(self) -> np.ndarray:
        return self.node(0, 0)

    @property
    def root_norm(self) -> float:
        return float(np.linalg.norm(self.root))

    def level(self, depth: int) -> np.ndarray:
        """Read-only view of all nodes at ``depth``, shape (arity**depth, *node_shape)."""
        if not 0 <= depth <= self.depth:
            raise IndexError(f"Depth {depth} out of range [0, {self.depth}]")
        return self.arena.view(self.levels[depth])

    def node(self, depth: int, index: int) -> np.ndarray:
        """Read-only view of the coefficients of node ``(depth, index)``."""
        if not 0 <= depth <= self.depth:
            raise IndexError(f"Depth {depth} out of range [0, {self.depth}]")
        if not 0 <= index < self.arity**depth:
            raise IndexError(f"Node index {index} out of range at depth {depth}")
        return self.arena.view(self.levels[depth].row(index))

    def nodes(self) -> Iterator[tuple[int, int, np.ndarray]]:
        """Yield ``(depth, index, coefficients)`` in breadth-first order."""
        for depth in range(self.depth + 1):
            level = self.level(depth)
            for index in range(level.shape[0]):
                yield depth, index, level[index]

    def __len__(self) -> int:
        return node_count(self.depth, self.arity)

    def __repr__(self) -> str:
        return (
            f"PacketTree(mode={self.mode.value}, signal_shape={self.signal_shape}, "
            f"depth={self.depth}, wavelet={self.filters.name})"
        )


def check_signal(
    signal: np.ndarray, depth: int | None, mode: DecompositionMode
) -> tuple[np.ndarray, int]:
    """Validate a signal against a decomposition request.

    Returns:
        (signal as float64 array, resolved depth)

    Raises:
        InvalidArgumentError: If the signal is empty or depth is negative
        LengthMismatchError: If the shape is not divisible by 2**depth
        UnsupportedModeError: For 3-D+ signals or non-ordinary 2-D requests
    """
    x = np.asarray(signal, dtype=np.float64)
    if x.ndim == 0 or x.size == 0:
        raise InvalidArgumentError(f"Signal must be a non-empty array, got shape {x.shape}")
    if x.ndim > 2:
        raise UnsupportedModeError(f"{x.ndim}-D transforms are not implemented")
    if x.ndim == 2 and mode is not DecompositionMode.ORDINARY:
        raise UnsupportedModeError(f"2-D signals support the ordinary mode only, got {mode.value}")

    max_levels = max_transform_levels(x.shape)
    if depth is None:
        depth = max_levels
    if depth < 0:
        raise InvalidArgumentError(f"depth must be non-negative, got {depth}")
    if depth > max_levels:
        raise LengthMismatchError(
            f"Signal shape {x.shape} is not divisible by 2**{depth} "
            f"(at most {max_levels} levels)"
        )
    return x, depth


def _alloc_levels(
    x: np.ndarray, depth: int, redundant: bool
) -> tuple[Arena, list[TensorRef]]:
    arity = 2**x.ndim
    shapes = []
    for d in range(depth + 1):
        node_shape = x.shape if redundant else tuple(s >> d for s in x.shape)
        shapes.append((arity**d,) + node_shape)
    arena = Arena.for_shapes(shapes, np.float64)
    refs = [arena.alloc_tensor(shape, np.float64) for shape in shapes]
    arena.view(refs[0])[0] = x
    return arena, refs


def _freeze(
    arena: Arena,
    refs: list[TensorRef],
    mode: DecompositionMode,
    x: np.ndarray,
    filters: FilterPair,
) -> PacketTree:
    arena.freeze()
    tree = PacketTree(
        arena=arena,
        levels=tuple(refs),
        mode=mode,
        signal_shape=x.shape,
        filters=filters,
    )
    logger.debug(f"Built {tree!r} with {len(tree)} nodes")
    return tree


def wpd(signal: np.ndarray, filters: FilterPair, depth: int | None = None) -> PacketTree:
    """Ordinary wavelet packet decomposition (1-D binary or 2-D quaternary)."""
    x, depth = check_signal(signal, depth, DecompositionMode.ORDINARY)
    arena, refs = _alloc_levels(x, depth, redundant=False)

    for d in range(depth):
        parent = arena.view(refs[d])
        children = arena.view(refs[d + 1])
        if x.ndim == 1:
            children[0::2], children[1::2] = dwt_step(parent, filters)
        else:
            quads = dwt_step_2d(parent, filters)
            for k, quad in enumerate(quads):
                children[k::4] = quad
    return _freeze(arena, refs, DecompositionMode.ORDINARY, x, filters)


def swpd(signal: np.ndarray, filters: FilterPair, depth: int | None = None) -> PacketTree:
    """Stationary wavelet packet decomposition (no downsampling)."""
    x, depth = check_signal(signal, depth, DecompositionMode.STATIONARY)
    arena, refs = _alloc_levels(x, depth, redundant=True)

    for d in range(depth):
        parent = arena.view(refs[d])
        children = arena.view(refs[d + 1])
        children[0::2], children[1::2] = sdwt_step(parent, filters, d)
    return _freeze(arena, refs, DecompositionMode.STATIONARY, x, filters)


def acwpd(signal: np.ndarray, filters: FilterPair, depth: int | None = None) -> PacketTree:
    """Autocorrelation wavelet packet decomposition.

    ``filters`` is the orthogonal pair; its autocorrelation shell is derived
    here and applied with lags dilated per level.
    """
    x, depth = check_signal(signal, depth, DecompositionMode.AUTOCORRELATION)
    shell = autocorrelation_shell(filters)
    arena, refs = _alloc_levels(x, depth, redundant=True)

    for d in range(depth):
        parent = arena.view(refs[d])
        children = arena.view(refs[d + 1])
        children[0::2], children[1::2] = acwt_step(parent, shell, d)
    return _freeze(arena, refs, DecompositionMode.AUTOCORRELATION, x, filters)


def _merge(tree: PacketTree, depth: int, children: np.ndarray) -> np.ndarray:
    """Invert one level: children of shape (arity*k, ...) -> parents (k, ...)."""
    filters = tree.filters
    if tree.mode is DecompositionMode.ORDINARY:
        if tree.arity == 4:
            return idwt_step_2d(
                children[0::4], children[1::4], children[2::4], children[3::4], filters
            )
        return idwt_step(children[0::2], children[1::2], filters)
    if tree.mode is DecompositionMode.STATIONARY:
        return isdwt_step(children[0::2], children[1::2], filters, depth)
    return iacwt_step(children[0::2], children[1::2])


def reconstruct_packets(tree: PacketTree, flags: tuple[np.ndarray, ...] | None = None) -> np.ndarray:
    """Rebuild the signal from the nodes flagged at each depth.

    Args:
        tree: Complete packet tree
        flags: One boolean array per depth marking the nodes to start from;
            defaults to every node of the deepest level

    Returns:
        Reconstructed signal with ``tree.signal_shape``
    """
    if flags is None:
        flags = tuple(
            np.full(tree.arity**d, d == tree.depth, dtype=bool) for d in range(tree.depth + 1)
        )
    if len(flags) != tree.depth + 1:
        raise InvalidArgumentError(
            f"Basis has depth {len(flags) - 1}, tree has depth {tree.depth}"
        )

    current = np.where(
        flags[tree.depth].reshape((-1,) + (1,) * len(tree.signal_shape)),
        tree.level(tree.depth),
        0.0,
    )
    for d in range(tree.depth - 1, -1, -1):
        merged = _merge(tree, d, current)
        mask = flags[d].reshape((-1,) + (1,) * len(tree.signal_shape))
        current = np.where(mask, tree.level(d), merged)
    return current[0]
