"""Shift-invariant wavelet packet decomposition.

Every node below the requested depth is split twice: once as is and once
after a one-sample circular shift. The resulting irregular tree is stored as
a sparse mapping keyed by ``(depth, index, shift)`` where ``shift`` is the
accumulated circular shift in samples of the original signal. Children of
``(d, i, s)`` through shift bit ``b`` are ``(d+1, 2i, s + b*2**d)`` and
``(d+1, 2i+1, s + b*2**d)``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, Iterator

import numpy as np
from pydantic import BaseModel, Field

from wavebasis.bestbasis.costs import CostKind, cost_of
from wavebasis.dsp.filters import FilterPair
from wavebasis.dsp.packets import DecompositionMode, check_signal
from wavebasis.dsp.steps import dwt_step, idwt_step
from wavebasis.exceptions import InvalidArgumentError

logger = logging.getLogger(__name__)

NodeKey = tuple[int, int, int]


class ExpansionPolicy(BaseModel):
    """Admissibility rule for shifted decompositions.

    The defaults keep every variant at every depth, which is the full
    shift-invariant packet decomposition.

    Attributes:
        shift_depth: Shifted variants are explored only at depths below this
            (None: every depth)
        min_gain: A variant is kept only if cost(parent) - cost(lo) - cost(hi)
            reaches this value (None: always kept)
        cost: Cost functional used for the gain
    """

    model_config = {"frozen": True}

    shift_depth: int | None = Field(default=None, ge=0)
    min_gain: float | None = None
    cost: CostKind = CostKind.SHANNON

    def explores_shift(self, depth: int) -> bool:
        return self.shift_depth is None or depth < self.shift_depth

    def admits(self, parent: float, lo: float, hi: float) -> bool:
        return self.min_gain is None or parent - lo - hi >= self.min_gain


@dataclass(frozen=True)
class ShiftNode:
    """One node of a shift tree."""

    depth: int
    index: int
    shift: int
    coefficients: np.ndarray
    is_leaf: bool

    @property
    def key(self) -> NodeKey:
        return (self.depth, self.index, self.shift)


@dataclass(frozen=True, eq=False)
class ShiftTree(Mapping):
    """Read-only sparse mapping ``(depth, index, shift) -> ShiftNode``.

    Attributes:
        nodes: Mapping proxy over the retained nodes
        signal_length: Length of the decomposed signal
        depth: Requested decomposition depth
        filters: Filter pair used for every step
        policy: Expansion policy the tree was built with
        root_norm: l2 norm of the signal
    """

    nodes: Mapping[NodeKey, ShiftNode]
    signal_length: int
    depth: int
    filters: FilterPair
    policy: ExpansionPolicy
    root_norm: float

    mode = DecompositionMode.SHIFT_INVARIANT

    def __getitem__(self, key: NodeKey) -> ShiftNode:
        return self.nodes[key]

    def __iter__(self) -> Iterator[NodeKey]:
        return iter(self.nodes)

    def __len__(self) -> int:
        return len(self.nodes)

    @property
    def signal_shape(self) -> tuple[int, ...]:
        return (self.signal_length,)

    @property
    def arity(self) -> int:
        return 2

    @property
    def root(self) -> ShiftNode:
        return self.nodes[(0, 0, 0)]

    def children(self, key: NodeKey, bit: int) -> tuple[NodeKey, NodeKey] | None:
        """Keys of the (lo, hi) children through shift ``bit``, or None if absent."""
        d, i, s = key
        shift = s + (bit << d)
        lo = (d + 1, 2 * i, shift)
        hi = (d + 1, 2 * i + 1, shift)
        if lo in self.nodes and hi in self.nodes:
            return lo, hi
        return None

    def variants(self, key: NodeKey) -> tuple[int, ...]:
        """Shift bits whose decomposition of ``key`` was retained."""
        return tuple(b for b in (0, 1) if self.children(key, b) is not None)

    def at_depth(self, depth: int) -> list[ShiftNode]:
        return [node for key, node in self.nodes.items() if key[0] == depth]

    def __repr__(self) -> str:
        return (
            f"ShiftTree(signal_length={self.signal_length}, depth={self.depth}, "
            f"nodes={len(self.nodes)}, wavelet={self.filters.name})"
        )


def _frozen(v: np.ndarray) -> np.ndarray:
    v = np.array(v, dtype=np.float64)
    v.flags.writeable = False
    return v


def siwpd(
    signal: np.ndarray,
    filters: FilterPair,
    depth: int | None = None,
    policy: ExpansionPolicy | None = None,
) -> ShiftTree:
    """Shift-invariant wavelet packet decomposition of a 1-D signal.

    Args:
        signal: 1-D signal of length divisible by 2**depth
        filters: Orthogonal quadrature filter pair
        depth: Number of levels (default: maximum)
        policy: Expansion policy (default: full decomposition)

    Returns:
        Irregular ShiftTree
    """
    x, depth = check_signal(signal, depth, DecompositionMode.SHIFT_INVARIANT)
    policy = policy or ExpansionPolicy()
    root_norm = float(np.linalg.norm(x))

    coefficients: dict[NodeKey, np.ndarray] = {(0, 0, 0): _frozen(x)}
    split: set[NodeKey] = set()
    frontier: list[NodeKey] = [(0, 0, 0)]

    for d in range(depth):
        bits = (0, 1) if policy.explores_shift(d) else (0,)
        next_frontier: list[NodeKey] = []
        for key in frontier:
            _, i, s = key
            v = coefficients[key]
            parent_cost = (
                cost_of(v, policy.cost, norm=root_norm)
                if policy.min_gain is not None
                else 0.0
            )
            for b in bits:
                lo, hi = dwt_step(np.roll(v, b), filters)
                if policy.min_gain is not None and not policy.admits(
                    parent_cost,
                    cost_of(lo, policy.cost, norm=root_norm),
                    cost_of(hi, policy.cost, norm=root_norm),
                ):
                    continue
                shift = s + (b << d)
                lo_key = (d + 1, 2 * i, shift)
                hi_key = (d + 1, 2 * i + 1, shift)
                coefficients[lo_key] = _frozen(lo)
                coefficients[hi_key] = _frozen(hi)
                next_frontier.extend((lo_key, hi_key))
                split.add(key)
        frontier = next_frontier

    nodes = {
        key: ShiftNode(
            depth=key[0],
            index=key[1],
            shift=key[2],
            coefficients=v,
            is_leaf=key not in split,
        )
        for key, v in coefficients.items()
    }
    tree = ShiftTree(
        nodes=MappingProxyType(nodes),
        signal_length=x.shape[0],
        depth=depth,
        filters=filters,
        policy=policy,
        root_norm=root_norm,
    )
    logger.debug(f"Built {tree!r} ({len(split)} split nodes)")
    return tree


def merge_shift(lo: np.ndarray, hi: np.ndarray, filters: FilterPair, bit: int) -> np.ndarray:
    """Invert one shift-tree split: undo the step, then the circular shift."""
    return np.roll(idwt_step(lo, hi, filters), -bit)


def unshifted_keys(tree: ShiftTree) -> list[NodeKey]:
    """Cut reached by always splitting through the unshifted variant."""
    keys = []
    stack = [(0, 0, 0)]
    while stack:
        key = stack.pop()
        children = tree.children(key, 0)
        if children is None:
            keys.append(key)
        else:
            stack.extend(children)
    return sorted(keys)


def reconstruct_shift(tree: ShiftTree, keys: Iterable[NodeKey]) -> np.ndarray:
    """Rebuild the signal from a cut of shift-tree nodes.

    Args:
        tree: Shift tree the keys come from
        keys: ``(depth, index, shift)`` of every node of the cut

    Raises:
        InvalidArgumentError: If the keys do not form a cut of ``tree``
    """
    current: dict[NodeKey, np.ndarray] = {}
    for key in keys:
        if key not in tree:
            raise InvalidArgumentError(f"Node {key} is not part of the shift tree")
        current[key] = tree[key].coefficients

    for d in range(tree.depth, 0, -1):
        level = sorted(key for key in current if key[0] == d)
        for key in level:
            _, i, s = key
            if i % 2:
                continue
            sibling = (d, i + 1, s)
            if key not in current or sibling not in current:
                raise InvalidArgumentError(f"Node {key} has no selected sibling")
            bit = (s >> (d - 1)) & 1
            parent = (d - 1, i // 2, s & ((1 << (d - 1)) - 1))
            current[parent] = merge_shift(
                current.pop(key), current.pop(sibling), tree.filters, bit
            )
        if any(key[0] == d for key in current):
            raise InvalidArgumentError(f"Selected nodes at depth {d} do not pair up")

    if set(current) != {(0, 0, 0)}:
        raise InvalidArgumentError("Selected nodes do not form a cut of the shift tree")
    return np.array(current[(0, 0, 0)])
